import logging
import re
from datetime import datetime, timezone
from typing import NamedTuple, Optional

from sqlalchemy import func, update
from sqlmodel import Session, select

from manutencao.error import InsufficientStockError, NotFoundError, ValidationError
from manutencao.models import ConsumptionRecord, Equipment, Part, utcnow

logger = logging.getLogger(__name__)

_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{2})$")


class ConsumptionTotal(NamedTuple):
    equipment_name: str
    part_name: str
    total_quantity: int


def consume(
    session: Session,
    equipment_id: int,
    part_id: int,
    quantity: int,
    *,
    operator: Optional[str] = None,
    work_order_id: Optional[int] = None,
) -> ConsumptionRecord:
    """
    Registra a baixa de ``quantity`` unidades de uma correia em um equipamento.

    O desconto é um UPDATE condicional (``quantity >= pedido``): chamadas
    concorrentes nunca deixam o estoque negativo. Desconto e registro ficam na
    transação da sessão; quem chama faz o commit, e qualquer erro daqui não deixa
    nada aplicado depois do rollback.
    """
    if quantity is None or quantity <= 0:
        raise ValidationError("A quantidade da baixa deve ser maior que zero", code="INVALID_QUANTITY")

    if session.get(Equipment, equipment_id) is None:
        raise NotFoundError("Equipamento não encontrado")

    result = session.exec(
        update(Part)
        .where(Part.id == part_id, Part.quantity >= quantity)
        .values(quantity=Part.quantity - quantity, updated_at=utcnow())
    )
    if result.rowcount != 1:
        part = session.get(Part, part_id, populate_existing=True)
        if part is None:
            raise NotFoundError("Correia não encontrada")
        logger.warning(
            "baixa rejeitada: part=%s on_hand=%s requested=%s", part.name, part.quantity, quantity
        )
        raise InsufficientStockError(part.name, part.quantity, quantity)

    record = ConsumptionRecord(
        equipment_id=equipment_id,
        part_id=part_id,
        quantity=quantity,
        operator=operator,
        work_order_id=work_order_id,
    )
    session.add(record)
    session.flush()

    logger.info(
        "baixa: equipment=%s part=%s qty=%s operator=%s order=%s",
        equipment_id, part_id, quantity, operator, work_order_id,
    )
    return record


def month_bounds(year_month: str) -> tuple[datetime, datetime]:
    """``"AAAA-MM"`` -> [dia 1 00:00 UTC, dia 1 do mês seguinte 00:00 UTC)."""
    m = _YEAR_MONTH.match((year_month or "").strip())
    if not m or not 1 <= int(m.group(2)) <= 12:
        raise ValidationError(f"Mês inválido: {year_month!r}, use AAAA-MM", code="INVALID_MONTH")

    year, month = int(m.group(1)), int(m.group(2))
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


def monthly_report(session: Session, year_month: str) -> list[ConsumptionTotal]:
    start, end = month_bounds(year_month)

    stmt = (
        select(Equipment.name, Part.name, func.sum(ConsumptionRecord.quantity))
        .select_from(ConsumptionRecord)
        .join(Equipment, Equipment.id == ConsumptionRecord.equipment_id)
        .join(Part, Part.id == ConsumptionRecord.part_id)
        .where(ConsumptionRecord.created_at >= start, ConsumptionRecord.created_at < end)
        .group_by(Equipment.id, Equipment.name, Part.id, Part.name)
        # ids desempatam nomes repetidos
        .order_by(Equipment.name, Part.name, Equipment.id, Part.id)
    )
    return [
        ConsumptionTotal(equipment_name, part_name, int(total))
        for equipment_name, part_name, total in session.exec(stmt).all()
    ]


def low_stock_parts(session: Session) -> list[Part]:
    stmt = select(Part).where(Part.quantity <= Part.minimum).order_by(Part.name)
    return list(session.exec(stmt).all())
