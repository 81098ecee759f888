import io

import pytest
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

INVOICE_LINES = (
    "Auchan Drive",
    "Facture FA-2025-0042",
    "3263859672014 Lait entier bio 1L 1,45",
    "3017620422003 Pate a tartiner 3,99",
    "Total : 5,44",
)


@pytest.fixture()
def invoice_pdf_bytes() -> bytes:
    """Single-page invoice PDF with one text line per row."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    y = 780
    for line in INVOICE_LINES:
        c.drawString(72, y, line)
        y -= 20
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.drawString(72, 780, "Page one content")
    c.showPage()
    c.drawString(72, 780, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def invoice_html_bytes() -> bytes:
    return (
        "<html><head><title>Votre commande</title><style>td { color: red; }</style></head>"
        "<body><h1>Auchan Drive</h1>"
        "<p>Facture N&deg; FA-2025-0042</p>"
        "<table>"
        "<tr><td>3263859672014</td><td>Lait entier bio 1L</td><td>1,45 &euro;</td></tr>"
        "<tr><td>3017620422003</td><td>P&acirc;te &agrave; tartiner</td><td>3,99 &euro;</td></tr>"
        "</table>"
        "<p>Total : 5,44 &euro;</p>"
        "<script>track();</script>"
        "</body></html>"
    ).encode()
