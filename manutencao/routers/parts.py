import io
import logging
from datetime import datetime
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.worksheet.table import Table, TableStyleInfo
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from manutencao.db import get_session
from manutencao.deps import require_capability
from manutencao.error import ConflictError, InvalidStateError, NotFoundError, ValidationError
from manutencao.models import ConsumptionRecord, Part, User, as_utc, utcnow
from manutencao.schemas import PartCreate, PartListResponse, PartRead, PartUpdate
from manutencao.services.permissions import MANAGE_PARTS, VIEW_CATALOG

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/parts", tags=["parts"])


def _get_part(session: Session, part_id: int) -> Part:
    part = session.get(Part, part_id)
    if not part:
        raise NotFoundError("Correia não encontrada")
    return part


@router.post("", response_model=PartRead)
def create_part(
    data: PartCreate,
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(MANAGE_PARTS)),
):
    name = data.name.strip()
    if session.exec(select(Part).where(Part.name == name)).first():
        raise ConflictError(f"Correia {name} já cadastrada", code="PART_EXISTS")

    part = Part(name=name, size=data.size, quantity=data.quantity, minimum=data.minimum)
    session.add(part)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(f"Correia {name} já cadastrada", code="PART_EXISTS")

    session.refresh(part)
    logger.info("correia cadastrada: %s (qtd %s)", part.name, part.quantity)
    return part


@router.get("", response_model=PartListResponse)
def list_parts(
    q: str | None = None,
    low_stock: bool = Query(False, description="só correias com quantidade <= mínimo"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    sort: str = Query("name_asc", description="name_asc/name_desc/qty_asc/qty_desc/id_desc/id_asc"),
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(VIEW_CATALOG)),
):
    conds = []
    if q:
        conds.append(or_(Part.name.contains(q), Part.size.contains(q)))
    if low_stock:
        conds.append(Part.quantity <= Part.minimum)

    count_stmt = select(func.count()).select_from(Part)
    if conds:
        count_stmt = count_stmt.where(*conds)
    total = session.exec(count_stmt).one()

    order_map = {
        "id_desc": Part.id.desc(),
        "id_asc": Part.id.asc(),
        "name_asc": Part.name.asc(),
        "name_desc": Part.name.desc(),
        "qty_asc": Part.quantity.asc(),
        "qty_desc": Part.quantity.desc(),
    }
    if sort not in order_map:
        raise ValidationError(f"Ordenação não suportada: {sort}", code="BAD_REQUEST")

    items_stmt = select(Part)
    if conds:
        items_stmt = items_stmt.where(*conds)
    items = session.exec(items_stmt.order_by(order_map[sort], Part.id.asc()).offset(offset).limit(limit)).all()

    return {"items": items, "total": total, "limit": limit, "offset": offset, "q": q}


@router.get("/export.xlsx")
def export_parts_xlsx(
    q: str | None = None,
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(VIEW_CATALOG)),
):
    stmt = select(Part).order_by(Part.name.asc())
    if q:
        stmt = stmt.where(or_(Part.name.contains(q), Part.size.contains(q)))
    parts = session.exec(stmt).all()

    header = ["Código", "Modelo", "Medida", "Quantidade", "Mínimo", "Situação", "Atualizado em"]

    wb = Workbook()
    ws = wb.active
    ws.title = "Estoque de correias"

    ws.append(header)
    ws.row_dimensions[1].height = 24
    for col in range(1, len(header) + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = Font(bold=True)
        cell.fill = PatternFill("solid", fgColor="DDDDDD")
        cell.alignment = Alignment(horizontal="center", vertical="center")

    for p in parts:
        ws.append([
            p.id,
            p.name,
            p.size or "",
            p.quantity,
            p.minimum,
            "REPOR" if p.quantity <= p.minimum else "OK",
            as_utc(p.updated_at).replace(tzinfo=None),  # Excel não guarda fuso
        ])

    data_end_row = 1 + len(parts)
    ws.freeze_panes = "A2"
    for r in range(2, data_end_row + 1):
        ws.cell(row=r, column=4).number_format = "0"
        ws.cell(row=r, column=5).number_format = "0"
        ws.cell(row=r, column=7).number_format = "dd/mm/yyyy hh:mm"

    for k, w in {"A": 8, "B": 22, "C": 14, "D": 11, "E": 9, "F": 10, "G": 18}.items():
        ws.column_dimensions[k].width = w

    table = Table(displayName="EstoqueCorreias", ref=f"A1:G{max(2, data_end_row)}")
    table.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9",
        showFirstColumn=False,
        showLastColumn=False,
        showRowStripes=True,
        showColumnStripes=False,
    )
    ws.add_table(table)

    ws.append([])
    ws.append(["Exportado em", datetime.now().strftime("%d/%m/%Y %H:%M:%S")])

    buf = io.BytesIO()
    wb.save(buf)

    filename = quote("estoque_correias.xlsx")
    return Response(
        content=buf.getvalue(),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename=\"parts.xlsx\"; filename*=UTF-8''{filename}"},
    )


@router.get("/{part_id}", response_model=PartRead)
def get_part(
    part_id: int,
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(VIEW_CATALOG)),
):
    return _get_part(session, part_id)


@router.patch("/{part_id}", response_model=PartRead)
def update_part(
    part_id: int,
    body: PartUpdate,
    session: Session = Depends(get_session),
    user: User = Depends(require_capability(MANAGE_PARTS)),
):
    part = _get_part(session, part_id)
    old_qty = part.quantity

    for key, value in body.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(part, key, value)
    part.updated_at = utcnow()

    session.add(part)
    session.commit()
    session.refresh(part)

    if part.quantity != old_qty:
        logger.info("contagem de estoque: %s %s->%s por %s", part.name, old_qty, part.quantity, user.username)
    return part


@router.delete("/{part_id}")
def delete_part(
    part_id: int,
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(MANAGE_PARTS)),
):
    part = _get_part(session, part_id)
    used = session.exec(
        select(func.count()).select_from(ConsumptionRecord).where(ConsumptionRecord.part_id == part_id)
    ).one()
    if used:
        raise InvalidStateError(
            f"Correia {part.name} possui {used} baixas registradas e não pode ser excluída",
            code="PART_IN_USE",
        )

    session.delete(part)
    session.commit()
    return {"ok": True}
