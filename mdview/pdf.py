"""Page-number stamping for PDFs produced by the preview's print engine."""

from __future__ import annotations

from io import BytesIO

from pypdf import PdfReader, PdfWriter
from reportlab.pdfgen import canvas

FOOTER_FONT = "Helvetica"
FOOTER_FONT_SIZE = 9.0
FOOTER_BASELINE = 18.0


def _footer_page(width: float, height: float, text: str):
    buffer = BytesIO()
    footer = canvas.Canvas(buffer, pagesize=(width, height))
    footer.setFont(FOOTER_FONT, FOOTER_FONT_SIZE)
    text_width = footer.stringWidth(text, FOOTER_FONT, FOOTER_FONT_SIZE)
    footer.drawString(max(0.0, (width - text_width) / 2.0), FOOTER_BASELINE, text)
    footer.save()
    buffer.seek(0)
    return PdfReader(buffer).pages[0]


def stamp_page_numbers(pdf_bytes: bytes) -> bytes:
    """Overlay centered ``N of M`` footers on every page."""
    if not pdf_bytes:
        raise ValueError("Empty PDF payload")

    reader = PdfReader(BytesIO(pdf_bytes))
    total = len(reader.pages)
    if total == 0:
        raise ValueError("PDF has no pages")

    writer = PdfWriter()
    for number, page in enumerate(reader.pages, start=1):
        width = float(page.mediabox.width)
        height = float(page.mediabox.height)
        if width > 0 and height > 0:
            page.merge_page(_footer_page(width, height, f"{number} of {total}"))
        writer.add_page(page)

    output = BytesIO()
    writer.write(output)
    return output.getvalue()
