import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy import func, or_
from sqlmodel import Session, select

from manutencao.config import Settings, get_settings
from manutencao.db import get_session
from manutencao.deps import require_capability
from manutencao.error import InvalidStateError, NotFoundError, ValidationError
from manutencao.models import ConsumptionRecord, Equipment, User, WorkOrder
from manutencao.schemas import EquipmentCreate, EquipmentListResponse, EquipmentRead, EquipmentUpdate
from manutencao.services import labels
from manutencao.services.permissions import MANAGE_EQUIPMENT, VIEW_CATALOG

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/equipment", tags=["equipment"])


def _get_equipment(session: Session, equipment_id: int) -> Equipment:
    equipment = session.get(Equipment, equipment_id)
    if not equipment:
        raise NotFoundError("Equipamento não encontrado")
    return equipment


@router.post("", response_model=EquipmentRead)
def create_equipment(
    data: EquipmentCreate,
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(MANAGE_EQUIPMENT)),
):
    equipment = Equipment(**data.model_dump())
    session.add(equipment)
    session.commit()
    session.refresh(equipment)
    logger.info("equipamento cadastrado: %s (%s)", equipment.id, equipment.name)
    return equipment


@router.get("", response_model=EquipmentListResponse)
def list_equipment(
    q: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(VIEW_CATALOG)),
):
    conds = []
    if q:
        conds.append(or_(Equipment.name.contains(q), Equipment.code.contains(q), Equipment.location.contains(q)))

    count_stmt = select(func.count()).select_from(Equipment)
    items_stmt = select(Equipment)
    if conds:
        count_stmt = count_stmt.where(*conds)
        items_stmt = items_stmt.where(*conds)

    total = session.exec(count_stmt).one()
    items = session.exec(items_stmt.order_by(Equipment.name.asc(), Equipment.id.asc()).offset(offset).limit(limit)).all()
    return {"items": items, "total": total, "limit": limit, "offset": offset, "q": q}


@router.get("/{equipment_id}", response_model=EquipmentRead)
def get_equipment(
    equipment_id: int,
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(VIEW_CATALOG)),
):
    return _get_equipment(session, equipment_id)


@router.patch("/{equipment_id}", response_model=EquipmentRead)
def update_equipment(
    equipment_id: int,
    data: EquipmentUpdate,
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(MANAGE_EQUIPMENT)),
):
    equipment = _get_equipment(session, equipment_id)
    changes = data.model_dump(exclude_unset=True)
    # campos opcionais podem ser limpos com null, o nome não
    if "name" in changes and not (changes["name"] or "").strip():
        raise ValidationError("O nome do equipamento é obrigatório", code="EMPTY_NAME")
    for key, value in changes.items():
        setattr(equipment, key, value)
    session.add(equipment)
    session.commit()
    session.refresh(equipment)
    return equipment


@router.delete("/{equipment_id}")
def delete_equipment(
    equipment_id: int,
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(MANAGE_EQUIPMENT)),
):
    equipment = _get_equipment(session, equipment_id)

    # histórico de OS e baixas impede a exclusão (sem referências órfãs)
    orders = session.exec(
        select(func.count()).select_from(WorkOrder).where(WorkOrder.equipment_id == equipment_id)
    ).one()
    records = session.exec(
        select(func.count()).select_from(ConsumptionRecord).where(ConsumptionRecord.equipment_id == equipment_id)
    ).one()
    if orders or records:
        raise InvalidStateError(
            f"Equipamento possui {orders} OS e {records} baixas registradas e não pode ser excluído",
            code="EQUIPMENT_IN_USE",
        )

    session.delete(equipment)
    session.commit()
    logger.info("equipamento excluído: %s", equipment_id)
    return {"ok": True}


@router.get("/{equipment_id}/qrcode.svg")
def equipment_qrcode(
    equipment_id: int,
    target: str = Query("os", description="os (abrir OS) ou baixa (baixa de correia)"),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    _user: User = Depends(require_capability(VIEW_CATALOG)),
):
    equipment = _get_equipment(session, equipment_id)
    url = labels.entry_url(settings.public_base_url, equipment.id, target)
    return Response(content=labels.qr_svg(url), media_type="image/svg+xml")


@router.get("/{equipment_id}/label.pdf")
def equipment_label(
    equipment_id: int,
    target: str = Query("os"),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    _user: User = Depends(require_capability(MANAGE_EQUIPMENT)),
):
    equipment = _get_equipment(session, equipment_id)
    url = labels.entry_url(settings.public_base_url, equipment.id, target)
    return Response(
        content=labels.qr_label_pdf(equipment, url),
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="etiqueta_{equipment.id}_{target}.pdf"'},
    )
