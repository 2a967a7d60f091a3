from datetime import datetime, timezone

from sqlmodel import Session

from manutencao.models import ConsumptionRecord


def _consume(client, headers, equipment_id, part_id, quantity):
    return client.post(
        "/consumption",
        json={"equipment_id": equipment_id, "part_id": part_id, "quantity": quantity},
        headers=headers,
    )


def test_consume_and_list(client, staff_headers, equipment_and_part):
    equipment_id, part_id = equipment_and_part

    r = _consume(client, staff_headers, equipment_id, part_id, 2)
    assert r.status_code == 200
    assert r.json()["quantity"] == 2
    assert r.json()["operator"] == "bruno"

    assert client.get(f"/parts/{part_id}", headers=staff_headers).json()["quantity"] == 1

    r = client.get(f"/consumption?equipment_id={equipment_id}", headers=staff_headers)
    data = r.json()
    assert data["total"] == 1
    assert data["items"][0]["part_id"] == part_id


def test_insufficient_stock_over_http(client, staff_headers, equipment_and_part):
    equipment_id, part_id = equipment_and_part
    _consume(client, staff_headers, equipment_id, part_id, 2)

    r = _consume(client, staff_headers, equipment_id, part_id, 5)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "INSUFFICIENT_STOCK"
    assert client.get(f"/parts/{part_id}", headers=staff_headers).json()["quantity"] == 1
    assert client.get("/consumption", headers=staff_headers).json()["total"] == 1


def test_invalid_quantity_and_unknown_ids(client, staff_headers, equipment_and_part):
    equipment_id, part_id = equipment_and_part

    r = _consume(client, staff_headers, equipment_id, part_id, 0)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "INVALID_QUANTITY"

    assert _consume(client, staff_headers, equipment_id, 999, 1).status_code == 404
    assert _consume(client, staff_headers, 999, part_id, 1).status_code == 404


def test_operator_cannot_consume(client, operator_headers, equipment_and_part):
    equipment_id, part_id = equipment_and_part
    assert _consume(client, operator_headers, equipment_id, part_id, 1).status_code == 403


def test_list_by_period(client, engine, staff_headers, equipment_and_part):
    equipment_id, part_id = equipment_and_part
    with Session(engine) as s:
        s.add(ConsumptionRecord(equipment_id=equipment_id, part_id=part_id, quantity=1, created_at=datetime(2026, 1, 12, 2, 0, tzinfo=timezone.utc)))
        s.add(ConsumptionRecord(equipment_id=equipment_id, part_id=part_id, quantity=1, created_at=datetime(2026, 1, 13, 12, 0, tzinfo=timezone.utc)))
        s.commit()

    r = client.get("/consumption?start=2026-01-12&end=2026-01-12", headers=staff_headers)
    assert r.json()["total"] == 1

    # 02:00 UTC ainda é dia 11 em São Paulo
    r = client.get("/consumption?start=2026-01-12&end=2026-01-12&tz=America/Sao_Paulo", headers=staff_headers)
    assert r.json()["total"] == 0

    r = client.get("/consumption?start=2026-01-14&end=2026-01-12", headers=staff_headers)
    assert r.status_code == 400

    r = client.get("/consumption?tz=Marte/Base&start=2026-01-12", headers=staff_headers)
    assert r.status_code == 400
