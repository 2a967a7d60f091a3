import io

from reportlab.graphics import renderPDF, renderSVG
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib.pagesizes import A6
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from manutencao.error import ValidationError
from manutencao.models import Equipment

# destinos do QR, iguais ao sufixo da rota mobile
ENTRY_TARGETS = frozenset({"os", "baixa"})


def entry_url(base_url: str, equipment_id: int, target: str = "os") -> str:
    if target not in ENTRY_TARGETS:
        raise ValidationError(f"Destino de QR inválido: {target} (use os ou baixa)", code="INVALID_TARGET")
    return f"{base_url.rstrip('/')}/m/equipment/{equipment_id}/{target}"


def _qr_drawing(data: str, size: float) -> Drawing:
    widget = QrCodeWidget(data)
    x1, y1, x2, y2 = widget.getBounds()
    w, h = x2 - x1, y2 - y1
    drawing = Drawing(size, size, transform=[size / w, 0, 0, size / h, 0, 0])
    drawing.add(widget)
    return drawing


def qr_svg(data: str, size: int = 220) -> str:
    return renderSVG.drawToString(_qr_drawing(data, size))


def qr_label_pdf(equipment: Equipment, url: str) -> bytes:
    """Etiqueta A6 para impressão com o nome do equipamento e o QR code."""
    buf = io.BytesIO()
    width, height = A6
    c = canvas.Canvas(buf, pagesize=A6)

    c.setFont("Helvetica-Bold", 14)
    c.drawCentredString(width / 2, height - 15 * mm, equipment.name)
    c.setFont("Helvetica", 9)
    sub = " - ".join(v for v in (equipment.code, equipment.location) if v)
    if sub:
        c.drawCentredString(width / 2, height - 21 * mm, sub)

    qr_size = 70 * mm
    renderPDF.draw(_qr_drawing(url, qr_size), c, (width - qr_size) / 2, height - 25 * mm - qr_size)

    c.setFont("Helvetica", 7)
    c.drawCentredString(width / 2, 10 * mm, url)
    c.showPage()
    c.save()
    return buf.getvalue()
