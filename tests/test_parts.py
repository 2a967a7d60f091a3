import io

from openpyxl import load_workbook


def _create(client, headers, **body):
    r = client.post("/parts", json=body, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()


def test_create_part_and_list(client, admin_headers, operator_headers):
    part = _create(client, admin_headers, name="A-42", size="1100mm", quantity=5)
    assert part["name"] == "A-42"
    assert part["quantity"] == 5
    assert part["minimum"] == 1

    r = client.get("/parts?limit=50&offset=0&sort=name_asc", headers=operator_headers)
    assert r.status_code == 200
    data = r.json()
    assert data["total"] == 1
    assert data["items"][0]["name"] == "A-42"


def test_duplicate_part_name(client, admin_headers):
    _create(client, admin_headers, name="A-42")
    r = client.post("/parts", json={"name": "A-42"}, headers=admin_headers)
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "PART_EXISTS"


def test_negative_quantity_rejected_by_schema(client, admin_headers):
    r = client.post("/parts", json={"name": "A-43", "quantity": -1}, headers=admin_headers)
    assert r.status_code == 422
    assert r.json()["code"] == "VALIDATION_ERROR"


def test_stock_count_update(client, admin_headers, staff_headers):
    part = _create(client, admin_headers, name="B-60", quantity=0)

    r = client.patch(f"/parts/{part['id']}", json={"quantity": 10, "minimum": 3}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["quantity"] == 10
    assert r.json()["minimum"] == 3

    r = client.patch(f"/parts/{part['id']}", json={"quantity": 1}, headers=staff_headers)
    assert r.status_code == 403


def test_low_stock_filter_and_bad_sort(client, admin_headers):
    _create(client, admin_headers, name="C-1", quantity=0, minimum=1)
    _create(client, admin_headers, name="C-2", quantity=9, minimum=1)

    r = client.get("/parts?low_stock=true", headers=admin_headers)
    assert [p["name"] for p in r.json()["items"]] == ["C-1"]

    r = client.get("/parts?sort=preco", headers=admin_headers)
    assert r.status_code == 400


def test_delete_part_with_consumption_is_restricted(client, admin_headers, equipment_and_part):
    equipment_id, part_id = equipment_and_part
    r = client.post(
        "/consumption",
        json={"equipment_id": equipment_id, "part_id": part_id, "quantity": 1},
        headers=admin_headers,
    )
    assert r.status_code == 200

    r = client.delete(f"/parts/{part_id}", headers=admin_headers)
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "PART_IN_USE"


def test_delete_unused_part(client, admin_headers):
    part = _create(client, admin_headers, name="D-1")
    assert client.delete(f"/parts/{part['id']}", headers=admin_headers).json() == {"ok": True}
    assert client.get(f"/parts/{part['id']}", headers=admin_headers).status_code == 404


def test_export_xlsx(client, admin_headers):
    _create(client, admin_headers, name="A-42", quantity=0)
    _create(client, admin_headers, name="B-60", quantity=4)

    r = client.get("/parts/export.xlsx", headers=admin_headers)
    assert r.status_code == 200
    assert "attachment" in r.headers["content-disposition"]

    ws = load_workbook(io.BytesIO(r.content)).active
    assert ws["B1"].value == "Modelo"
    assert ws["B2"].value == "A-42"
    assert ws["F2"].value == "REPOR"
    assert ws["F3"].value == "OK"
