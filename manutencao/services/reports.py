import io
from datetime import datetime
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from manutencao.models import Equipment, WorkOrder
from manutencao.services.ledger import ConsumptionTotal

TITLE = "Manutenção Reciclagem Campo do Gado"
AZUL = colors.Color(25 / 255, 60 / 255, 120 / 255)

STATUS_LABELS = {
    "open": "Aberta",
    "in_progress": "Em andamento",
    "closed": "Fechada",
}


def _fmt_dt(value: Optional[datetime]) -> str:
    return value.strftime("%d/%m/%Y %H:%M") if value else "-"


def _styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="OSBody", parent=styles["Normal"], leading=14))
    styles.add(ParagraphStyle(name="SectionTitle", parent=styles["Heading3"], spaceAfter=6, textColor=AZUL))
    return styles


def _on_page(subtitle: str):
    def draw(c, doc):
        width, height = A4
        c.setStrokeColor(AZUL)
        c.setLineWidth(1.0)
        c.line(15 * mm, height - 25 * mm, width - 15 * mm, height - 25 * mm)
        c.setFont("Helvetica-Bold", 13)
        c.setFillColor(AZUL)
        c.drawCentredString(width / 2, height - 15 * mm, TITLE)
        c.setFont("Helvetica", 10)
        c.setFillColor(colors.black)
        c.drawCentredString(width / 2, height - 21 * mm, subtitle)
        c.setFont("Helvetica-Oblique", 8)
        c.drawRightString(width - 15 * mm, 8 * mm, f"Página {c.getPageNumber()}")
    return draw


def _grid(data, col_widths, header: bool = False) -> Table:
    table = Table(data, colWidths=col_widths)
    style = [
        ("BOX", (0, 0), (-1, -1), 0.8, colors.HexColor("#707070")),
        ("GRID", (0, 0), (-1, -1), 0.6, colors.HexColor("#707070")),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]
    if header:
        style += [
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#DDDDDD")),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ]
    table.setStyle(TableStyle(style))
    return table


def _build(elements, subtitle: str) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        rightMargin=20 * mm,
        leftMargin=20 * mm,
        topMargin=35 * mm,
        bottomMargin=20 * mm,
        title=subtitle,
    )
    page = _on_page(subtitle)
    doc.build(elements, onFirstPage=page, onLaterPages=page)
    return buf.getvalue()


def work_order_pdf(order: WorkOrder, equipment: Optional[Equipment]) -> bytes:
    styles = _styles()
    subtitle = f"Ordem de Serviço nº {order.id}"

    elements = [Paragraph("<b>Dados da OS</b>", styles["SectionTitle"])]
    meta = [
        ["Equipamento", equipment.name if equipment else "-"],
        ["Setor", (equipment.location if equipment else None) or "-"],
        ["Solicitante", order.requester],
        ["Tipo", order.type],
        ["Status", STATUS_LABELS.get(order.status, order.status)],
        ["Aberta em", _fmt_dt(order.opened_at)],
        ["Início", _fmt_dt(order.started_at)],
        ["Fechada em", _fmt_dt(order.closed_at)],
        ["Tempo (min)", "-" if order.duration_minutes is None else str(order.duration_minutes)],
    ]
    elements.append(_grid(meta, [40 * mm, 120 * mm]))
    elements.append(Spacer(1, 10))

    elements.append(Paragraph("<b>Problema relatado</b>", styles["SectionTitle"]))
    elements.append(Paragraph(escape(order.description), styles["OSBody"]))
    elements.append(Spacer(1, 10))

    elements.append(Paragraph("<b>Resultado</b>", styles["SectionTitle"]))
    elements.append(Paragraph(escape(order.outcome or "-"), styles["OSBody"]))

    return _build(elements, subtitle)


def consumption_pdf(year_month: str, rows: list[ConsumptionTotal]) -> bytes:
    styles = _styles()
    subtitle = f"Baixas de correias - {year_month}"

    elements = [Paragraph("<b>Consumo por equipamento</b>", styles["SectionTitle"])]
    if not rows:
        elements.append(Paragraph("Nenhuma baixa registrada no período.", styles["OSBody"]))
        return _build(elements, subtitle)

    data = [["Equipamento", "Correia", "Quantidade"]]
    for row in rows:
        data.append([
            Paragraph(escape(row.equipment_name), styles["OSBody"]),
            Paragraph(escape(row.part_name), styles["OSBody"]),
            str(row.total_quantity),
        ])
    data.append(["", "Total", str(sum(r.total_quantity for r in rows))])

    elements.append(_grid(data, [75 * mm, 60 * mm, 25 * mm], header=True))
    return _build(elements, subtitle)
