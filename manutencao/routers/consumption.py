from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlmodel import Session, select

from manutencao.db import get_session
from manutencao.deps import require_capability
from manutencao.error import ValidationError
from manutencao.models import ConsumptionRecord, User
from manutencao.schemas import ConsumptionCreate, ConsumptionListResponse, ConsumptionRead
from manutencao.services import ledger
from manutencao.services.permissions import CONSUME, VIEW_REPORTS

router = APIRouter(prefix="/consumption", tags=["consumption"])


def _zone(name: Optional[str]):
    name = (name or "").strip()
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Fuso desconhecido: {name}, ex.: America/Sao_Paulo", code="BAD_REQUEST")


def _period_bound(value: str, zone, *, exclusive_end: bool = False) -> datetime:
    """
    Converte o limite do período em UTC.

    Data pura vale pelo dia inteiro no fuso ``zone`` (o fim vira a meia-noite
    seguinte); data/hora sem offset também é lida em ``zone``.
    """
    value = value.strip()
    try:
        if len(value) == 10:
            day = date.fromisoformat(value)
            if exclusive_end:
                day += timedelta(days=1)
            moment = datetime.combine(day, time.min, tzinfo=zone)
        else:
            moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=zone)
    except ValueError:
        raise ValidationError(f"Data inválida: {value}, use AAAA-MM-DD ou AAAA-MM-DDTHH:MM", code="BAD_REQUEST")
    return moment.astimezone(timezone.utc)


@router.post("", response_model=ConsumptionRead)
def create_consumption(
    data: ConsumptionCreate,
    session: Session = Depends(get_session),
    user: User = Depends(require_capability(CONSUME)),
):
    record = ledger.consume(session, data.equipment_id, data.part_id, data.quantity, operator=user.username)
    session.commit()
    session.refresh(record)
    return record


@router.get("", response_model=ConsumptionListResponse)
def list_consumption(
    equipment_id: Optional[int] = Query(None, ge=1),
    part_id: Optional[int] = Query(None, ge=1),
    tz: Optional[str] = Query(None, description="fuso para start/end sem offset, ex.: America/Sao_Paulo"),
    start: Optional[str] = Query(None, description="ex.: 2026-01-12 ou 2026-01-12T08:30:00"),
    end: Optional[str] = Query(None, description="data inclui o dia inteiro; data/hora é exclusiva"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(VIEW_REPORTS)),
):
    conds = []
    if equipment_id is not None:
        conds.append(ConsumptionRecord.equipment_id == equipment_id)
    if part_id is not None:
        conds.append(ConsumptionRecord.part_id == part_id)

    zone = _zone(tz)
    start_dt = _period_bound(start, zone) if start else None
    end_dt = _period_bound(end, zone, exclusive_end=True) if end else None
    if start_dt is not None and end_dt is not None and start_dt >= end_dt:
        raise ValidationError("start deve ser anterior a end", code="BAD_REQUEST")
    if start_dt is not None:
        conds.append(ConsumptionRecord.created_at >= start_dt)
    if end_dt is not None:
        conds.append(ConsumptionRecord.created_at < end_dt)

    stmt = select(ConsumptionRecord)
    count_stmt = select(func.count()).select_from(ConsumptionRecord)
    if conds:
        stmt = stmt.where(*conds)
        count_stmt = count_stmt.where(*conds)

    total = session.exec(count_stmt).one()
    items = session.exec(
        stmt.order_by(ConsumptionRecord.created_at.desc(), ConsumptionRecord.id.desc()).offset(offset).limit(limit)
    ).all()
    return {"items": items, "total": total, "limit": limit, "offset": offset}
