import logging
from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, select

from manutencao.error import InvalidStateError, NotFoundError, UnauthorizedError, ValidationError
from manutencao.models import ConsumptionRecord, Equipment, User, WorkOrder, as_utc, utcnow
from manutencao.schemas import WorkOrderStatus
from manutencao.services import ledger
from manutencao.services.permissions import VIEW_ALL_ORDERS, has_capability

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (WorkOrderStatus.open.value, WorkOrderStatus.in_progress.value)


def open_order(
    session: Session,
    requester: str,
    description: str,
    *,
    equipment_id: Optional[int] = None,
    type: str = "corretiva",
    photo_before: Optional[str] = None,
) -> WorkOrder:
    description = (description or "").strip()
    if not description:
        raise ValidationError("Descreva o problema para abrir a OS", code="EMPTY_DESCRIPTION")

    if equipment_id is not None and session.get(Equipment, equipment_id) is None:
        raise NotFoundError("Equipamento não encontrado")

    order = WorkOrder(
        equipment_id=equipment_id,
        requester=requester,
        type=(type or "").strip() or "corretiva",
        description=description,
        status=WorkOrderStatus.open.value,
        photo_before=photo_before,
    )
    session.add(order)
    session.flush()

    logger.info("OS %s aberta por %s (equipment=%s)", order.id, requester, equipment_id)
    return order


def get_order(session: Session, order_id: int) -> WorkOrder:
    order = session.get(WorkOrder, order_id)
    if not order:
        raise NotFoundError("OS não encontrada")
    return order


def get_order_for(session: Session, user: User, order_id: int) -> WorkOrder:
    order = get_order(session, order_id)
    # operador só enxerga as OS que ele mesmo abriu
    if order.requester != user.username and not has_capability(user.role, VIEW_ALL_ORDERS):
        raise UnauthorizedError("Você só pode consultar as OS que abriu")
    return order


def start_order(session: Session, order_id: int) -> WorkOrder:
    order = get_order(session, order_id)
    if order.status != WorkOrderStatus.open.value:
        raise InvalidStateError(f"A OS {order.id} não está aberta (status: {order.status})")

    order.status = WorkOrderStatus.in_progress.value
    order.started_at = utcnow()
    session.add(order)
    session.flush()

    logger.info("OS %s em andamento", order.id)
    return order


def close_order(
    session: Session,
    order_id: int,
    outcome: str,
    *,
    photo_after: Optional[str] = None,
) -> WorkOrder:
    order = get_order(session, order_id)
    if order.status == WorkOrderStatus.closed.value:
        raise InvalidStateError(f"A OS {order.id} já está fechada")

    outcome = (outcome or "").strip()
    if not outcome:
        raise ValidationError("Informe o resultado do serviço para fechar a OS", code="EMPTY_OUTCOME")

    now = utcnow()
    began = as_utc(order.started_at or order.opened_at)
    order.status = WorkOrderStatus.closed.value
    order.closed_at = now
    order.outcome = outcome
    order.duration_minutes = max(0, round((now - began).total_seconds() / 60))
    if photo_after:
        order.photo_after = photo_after

    session.add(order)
    session.flush()

    logger.info("OS %s fechada (%s min)", order.id, order.duration_minutes)
    return order


def close_with_replacement(
    session: Session,
    order_id: int,
    outcome: str,
    part_id: int,
    part_quantity: int,
    *,
    operator: Optional[str] = None,
    photo_after: Optional[str] = None,
) -> tuple[WorkOrder, ConsumptionRecord]:
    """
    Fecha a OS e dá baixa na correia trocada, na mesma transação.

    Se a baixa falhar (sem estoque, correia inexistente) o rollback de quem chamou
    desfaz também o fechamento e a OS continua aberta.
    """
    if get_order(session, order_id).equipment_id is None:
        raise ValidationError("OS sem equipamento vinculado não permite baixa de correia", code="NO_EQUIPMENT")

    order = close_order(session, order_id, outcome, photo_after=photo_after)
    record = ledger.consume(
        session,
        order.equipment_id,
        part_id,
        part_quantity,
        operator=operator,
        work_order_id=order.id,
    )
    return order, record


def list_orders(
    session: Session,
    user: User,
    *,
    status: Optional[WorkOrderStatus] = None,
    equipment_id: Optional[int] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[WorkOrder], int]:
    stmt = select(WorkOrder)
    count_stmt = select(func.count()).select_from(WorkOrder)

    conds = []
    if not has_capability(user.role, VIEW_ALL_ORDERS):
        conds.append(WorkOrder.requester == user.username)
    if status is not None:
        conds.append(WorkOrder.status == status.value)
    if equipment_id is not None:
        conds.append(WorkOrder.equipment_id == equipment_id)

    if conds:
        stmt = stmt.where(*conds)
        count_stmt = count_stmt.where(*conds)

    total = session.exec(count_stmt).one()
    items = session.exec(
        stmt.order_by(WorkOrder.opened_at.desc(), WorkOrder.id.desc()).offset(offset).limit(limit)
    ).all()
    return list(items), total


def current_order_for_equipment(session: Session, equipment_id: int) -> Optional[WorkOrder]:
    stmt = (
        select(WorkOrder)
        .where(WorkOrder.equipment_id == equipment_id, WorkOrder.status.in_(ACTIVE_STATUSES))
        .order_by(WorkOrder.opened_at.desc(), WorkOrder.id.desc())
    )
    return session.exec(stmt).first()
