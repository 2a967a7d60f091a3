from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlmodel import Session

from manutencao.db import get_session
from manutencao.deps import require_capability
from manutencao.error import ValidationError
from manutencao.models import Equipment, User
from manutencao.schemas import (
    WorkOrderClose,
    WorkOrderCloseResponse,
    WorkOrderCreate,
    WorkOrderListResponse,
    WorkOrderRead,
    WorkOrderStatus,
)
from manutencao.services import reports, work_orders
from manutencao.services.permissions import CLOSE_ORDER, OPEN_ORDER, START_ORDER

router = APIRouter(prefix="/work-orders", tags=["work-orders"])


@router.post("", response_model=WorkOrderRead)
def open_work_order(
    data: WorkOrderCreate,
    session: Session = Depends(get_session),
    user: User = Depends(require_capability(OPEN_ORDER)),
):
    order = work_orders.open_order(
        session,
        user.username,
        data.description,
        equipment_id=data.equipment_id,
        type=data.type,
        photo_before=data.photo_before,
    )
    session.commit()
    session.refresh(order)
    return order


@router.get("", response_model=WorkOrderListResponse)
def list_work_orders(
    status: Optional[WorkOrderStatus] = Query(None, description="open / in_progress / closed"),
    equipment_id: Optional[int] = Query(None, ge=1),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: Session = Depends(get_session),
    user: User = Depends(require_capability(OPEN_ORDER)),
):
    items, total = work_orders.list_orders(
        session, user, status=status, equipment_id=equipment_id, limit=limit, offset=offset
    )
    return {"items": items, "total": total, "limit": limit, "offset": offset}


@router.get("/{order_id}", response_model=WorkOrderRead)
def get_work_order(
    order_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(require_capability(OPEN_ORDER)),
):
    return work_orders.get_order_for(session, user, order_id)


@router.post("/{order_id}/start", response_model=WorkOrderRead)
def start_work_order(
    order_id: int,
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(START_ORDER)),
):
    order = work_orders.start_order(session, order_id)
    session.commit()
    session.refresh(order)
    return order


@router.post("/{order_id}/close", response_model=WorkOrderCloseResponse)
def close_work_order(
    order_id: int,
    body: WorkOrderClose,
    session: Session = Depends(get_session),
    user: User = Depends(require_capability(CLOSE_ORDER)),
):
    record = None
    if body.part_id is None and body.part_quantity is None:
        order = work_orders.close_order(session, order_id, body.outcome, photo_after=body.photo_after)
    elif body.part_id is None or body.part_quantity is None:
        raise ValidationError("Informe a correia e a quantidade trocada", code="INCOMPLETE_REPLACEMENT")
    else:
        # fechamento + baixa na mesma transação
        order, record = work_orders.close_with_replacement(
            session,
            order_id,
            body.outcome,
            body.part_id,
            body.part_quantity,
            operator=user.username,
            photo_after=body.photo_after,
        )

    session.commit()
    session.refresh(order)
    if record is not None:
        session.refresh(record)
    return {"order": order, "consumption": record}


@router.get("/{order_id}/pdf")
def work_order_pdf(
    order_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(require_capability(OPEN_ORDER)),
):
    order = work_orders.get_order_for(session, user, order_id)
    equipment = session.get(Equipment, order.equipment_id) if order.equipment_id else None
    return Response(
        content=reports.work_order_pdf(order, equipment),
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="os_{order.id}.pdf"'},
    )
