import pytest
from sqlmodel import Session, select

from manutencao.error import (
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from manutencao.models import ConsumptionRecord, Equipment, Part, User, WorkOrder
from manutencao.schemas import WorkOrderStatus
from manutencao.services import work_orders


def _user(username: str, role: str) -> User:
    return User(username=username, password_hash="x", role=role)


@pytest.fixture()
def equipment_id(session):
    eq = Equipment(name="Esteira de triagem")
    session.add(eq)
    session.commit()
    return eq.id


def test_open_order_starts_open(session, equipment_id):
    order = work_orders.open_order(
        session, "ana", "troca de correia", equipment_id=equipment_id, type="preventiva"
    )
    session.commit()

    assert order.status == WorkOrderStatus.open.value
    assert order.opened_at is not None
    assert order.closed_at is None
    assert order.outcome is None
    assert order.type == "preventiva"


def test_open_order_without_equipment_is_allowed(session):
    order = work_orders.open_order(session, "ana", "vazamento no piso")
    session.commit()
    assert order.equipment_id is None


def test_open_order_rejects_blank_description(session):
    with pytest.raises(ValidationError) as exc:
        work_orders.open_order(session, "ana", "   ")
    assert exc.value.code == "EMPTY_DESCRIPTION"


def test_open_order_unknown_equipment(session):
    with pytest.raises(NotFoundError):
        work_orders.open_order(session, "ana", "ruído", equipment_id=999)


def test_close_once_then_reject(session, equipment_id):
    order = work_orders.open_order(session, "ana", "troca de correia", equipment_id=equipment_id)
    session.commit()

    closed = work_orders.close_order(session, order.id, "correia substituída")
    session.commit()
    assert closed.status == WorkOrderStatus.closed.value
    assert closed.closed_at is not None
    assert closed.outcome == "correia substituída"
    assert closed.duration_minutes is not None and closed.duration_minutes >= 0

    with pytest.raises(InvalidStateError):
        work_orders.close_order(session, order.id, "de novo")

    session.rollback()
    again = session.get(WorkOrder, order.id)
    assert again.outcome == "correia substituída"


def test_close_requires_outcome(session):
    order = work_orders.open_order(session, "ana", "motor aquecendo")
    session.commit()
    with pytest.raises(ValidationError):
        work_orders.close_order(session, order.id, "")


def test_close_unknown_order(session):
    with pytest.raises(NotFoundError):
        work_orders.close_order(session, 4242, "ok")


def test_start_then_close_uses_started_at(session):
    order = work_orders.open_order(session, "ana", "rolamento")
    session.commit()

    started = work_orders.start_order(session, order.id)
    session.commit()
    assert started.status == WorkOrderStatus.in_progress.value
    assert started.started_at is not None
    assert started.closed_at is None

    with pytest.raises(InvalidStateError):
        work_orders.start_order(session, order.id)

    closed = work_orders.close_order(session, order.id, "rolamento trocado")
    assert closed.status == WorkOrderStatus.closed.value
    assert closed.started_at is not None


def test_list_orders_visibility_by_role(session):
    work_orders.open_order(session, "ana", "a1")
    work_orders.open_order(session, "ana", "a2")
    work_orders.open_order(session, "carlos", "c1")
    session.commit()

    items, total = work_orders.list_orders(session, _user("ana", "operador"))
    assert total == 2
    assert {o.requester for o in items} == {"ana"}

    for role in ("admin", "funcionario"):
        items, total = work_orders.list_orders(session, _user("bruno", role))
        assert total == 3


def test_list_orders_filter_status(session):
    o1 = work_orders.open_order(session, "ana", "a1")
    work_orders.open_order(session, "ana", "a2")
    session.commit()
    work_orders.close_order(session, o1.id, "feito")
    session.commit()

    items, total = work_orders.list_orders(session, _user("x", "admin"), status=WorkOrderStatus.open)
    assert total == 1
    assert items[0].description == "a2"


def test_operator_cannot_get_someone_elses_order(session):
    order = work_orders.open_order(session, "carlos", "c1")
    session.commit()

    with pytest.raises(UnauthorizedError):
        work_orders.get_order_for(session, _user("ana", "operador"), order.id)

    assert work_orders.get_order_for(session, _user("carlos", "operador"), order.id).id == order.id
    assert work_orders.get_order_for(session, _user("bruno", "funcionario"), order.id).id == order.id


def test_current_order_for_equipment(session, equipment_id):
    assert work_orders.current_order_for_equipment(session, equipment_id) is None

    first = work_orders.open_order(session, "ana", "primeira", equipment_id=equipment_id)
    session.commit()
    work_orders.close_order(session, first.id, "ok")
    second = work_orders.open_order(session, "ana", "segunda", equipment_id=equipment_id)
    session.commit()

    current = work_orders.current_order_for_equipment(session, equipment_id)
    assert current.id == second.id


def test_close_with_replacement_writes_down_stock(engine, equipment_id):
    with Session(engine) as s:
        part = Part(name="B-60", quantity=3)
        s.add(part)
        order = work_orders.open_order(s, "ana", "troca de correia", equipment_id=equipment_id)
        s.commit()
        part_id, order_id = part.id, order.id

    with Session(engine) as s:
        order, record = work_orders.close_with_replacement(s, order_id, "correia substituída", part_id, 2, operator="bruno")
        s.commit()
        assert record.work_order_id == order_id
        assert record.quantity == 2

    with Session(engine) as s:
        assert s.get(Part, part_id).quantity == 1


def test_close_with_replacement_is_all_or_nothing(engine, equipment_id):
    with Session(engine) as s:
        part = Part(name="B-61", quantity=1)
        s.add(part)
        order = work_orders.open_order(s, "ana", "troca de correia", equipment_id=equipment_id)
        s.commit()
        part_id, order_id = part.id, order.id

    with Session(engine) as s:
        with pytest.raises(InsufficientStockError):
            work_orders.close_with_replacement(s, order_id, "correia substituída", part_id, 5)
        s.rollback()

    with Session(engine) as s:
        order = work_orders.get_order(s, order_id)
        assert order.status == WorkOrderStatus.open.value
        assert order.closed_at is None and order.outcome is None
        assert s.get(Part, part_id).quantity == 1
        assert s.exec(select(ConsumptionRecord)).all() == []


def test_close_with_replacement_needs_equipment(session):
    order = work_orders.open_order(session, "ana", "sem equipamento")
    session.commit()
    with pytest.raises(ValidationError) as exc:
        work_orders.close_with_replacement(session, order.id, "ok", 1, 1)
    assert exc.value.code == "NO_EQUIPMENT"
