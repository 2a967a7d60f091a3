from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from manutencao.db import get_session
from manutencao.deps import require_capability
from manutencao.error import NotFoundError
from manutencao.models import Equipment, Part, User
from manutencao.schemas import ConsumeEntryResponse, OrderEntryResponse
from manutencao.services import work_orders
from manutencao.services.permissions import CONSUME, OPEN_ORDER

# destinos dos QR codes colados nos equipamentos
router = APIRouter(prefix="/m/equipment", tags=["mobile"])


def _get_equipment(session: Session, equipment_id: int) -> Equipment:
    equipment = session.get(Equipment, equipment_id)
    if not equipment:
        raise NotFoundError("Equipamento não encontrado")
    return equipment


@router.get("/{equipment_id}/os", response_model=OrderEntryResponse)
def order_entry(
    equipment_id: int,
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(OPEN_ORDER)),
):
    equipment = _get_equipment(session, equipment_id)
    return {
        "equipment": equipment,
        "open_order": work_orders.current_order_for_equipment(session, equipment.id),
    }


@router.get("/{equipment_id}/baixa", response_model=ConsumeEntryResponse)
def consume_entry(
    equipment_id: int,
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(CONSUME)),
):
    equipment = _get_equipment(session, equipment_id)
    parts = session.exec(select(Part).order_by(Part.name)).all()
    return {"equipment": equipment, "parts": parts}
