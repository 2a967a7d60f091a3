from datetime import datetime, timedelta, timezone

from sqlmodel import Session

from manutencao.models import Equipment, WorkOrder, as_utc, utcnow
from manutencao.services import work_orders


def test_utcnow_is_timezone_aware():
    now = utcnow()
    assert now.tzinfo is not None
    assert now.utcoffset() == timedelta(0)


def test_as_utc():
    assert as_utc(None) is None
    assert as_utc(datetime(2026, 3, 1, 8, 0)) == datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
    aware = datetime(2026, 3, 1, 8, 0, tzinfo=timezone(timedelta(hours=-3)))
    assert as_utc(aware) is aware


def test_timestamps_round_trip_as_utc(engine):
    opened = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
    with Session(engine) as s:
        eq = Equipment(name="Prensa")
        s.add(eq)
        s.commit()
        order = WorkOrder(equipment_id=eq.id, requester="ana", description="ruído", opened_at=opened)
        s.add(order)
        s.commit()
        order_id = order.id
        assert eq.created_at is not None

    with Session(engine) as s:
        stored = s.get(WorkOrder, order_id)
        assert as_utc(stored.opened_at) == opened

        # duração calculada com o valor lido do banco
        closed = work_orders.close_order(s, order_id, "ok")
        s.commit()
        assert closed.duration_minutes >= 60
