# FILE: rxprint/services/print_surface.py
from __future__ import annotations

import html as _html
import logging
from abc import ABC, abstractmethod
from io import BytesIO, StringIO
from pathlib import Path
from typing import BinaryIO, Optional, TextIO

from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from rxprint.services.compositor import PageDescription, PrintDocument, TextElement

logger = logging.getLogger(__name__)

# 96 DPI page pixels -> PDF points
PX = 72.0 / 96.0
RTL_FONT_NAME = "RxSecondary"


class PrintSurface(ABC):
    """Renders composed pages and hands them to the host's print path."""

    @abstractmethod
    def print_document(self, document: PrintDocument) -> None:
        ...


# -------------------------------
# Helpers
# -------------------------------
def _esc(v: object) -> str:
    return _html.escape("" if v is None else str(v), quote=True)


def _try_image_reader(path: Optional[str]) -> Optional[ImageReader]:
    if not path:
        return None
    p = Path(path)
    if not (p.exists() and p.is_file()):
        logger.warning("Background image not found: %s", path)
        return None
    try:
        return ImageReader(str(p))
    except Exception:
        logger.exception("Background image load failed: %s", path)
        return None


def _register_rtl_font(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    if RTL_FONT_NAME in pdfmetrics.getRegisteredFontNames():
        return RTL_FONT_NAME
    p = Path(path)
    if not p.is_file():
        logger.warning("Secondary-script font not found: %s", path)
        return None
    pdfmetrics.registerFont(TTFont(RTL_FONT_NAME, str(p)))
    return RTL_FONT_NAME


# -------------------------------
# PDF (reportlab)
# -------------------------------
class PdfPrintSurface(PrintSurface):
    """
    Draws each page over the letterhead image with reportlab.

    Page geometry comes from the document (794 x 1123 px -> points); element
    y is the top of the line box, converted here to a PDF baseline.
    """

    def __init__(self,
                 stream: BinaryIO,
                 *,
                 background_path: Optional[str] = None,
                 rtl_font_path: Optional[str] = None,
                 font: str = "Helvetica",
                 bold_font: str = "Helvetica-Bold",
                 title: Optional[str] = None):
        self.stream = stream
        self.background_path = background_path
        self.rtl_font = _register_rtl_font(rtl_font_path)
        self.font = font
        self.bold_font = bold_font
        self.title = title

    def _font_for(self, el: TextElement) -> str:
        if el.direction == "rtl" and self.rtl_font:
            return self.rtl_font
        return self.bold_font if el.bold else self.font

    def _draw_element(self, c: canvas.Canvas, page_h: float,
                      el: TextElement) -> None:
        size = el.font_size * PX
        x = el.x * PX
        # baseline sits roughly one font size below the line-box top
        y = page_h - (el.y + el.font_size * 0.95) * PX
        c.setFont(self._font_for(el), size)
        if el.align == "right":
            c.drawRightString(x, y, el.text)
        elif el.align == "center":
            c.drawCentredString(x, y, el.text)
        else:
            c.drawString(x, y, el.text)

    def _draw_page(self, c: canvas.Canvas, page: PageDescription,
                   background: Optional[ImageReader]) -> None:
        w, h = page.width * PX, page.height * PX
        c.setPageSize((w, h))
        if background is not None:
            c.saveState()
            try:
                c.drawImage(background, 0, 0, width=w, height=h, mask="auto")
            except Exception:
                logger.exception("Failed to draw background on page %s",
                                 page.page_number)
            c.restoreState()

        c.setFillColorRGB(0, 0, 0)
        for el in page.elements:
            self._draw_element(c, h, el)

    def print_document(self, document: PrintDocument) -> None:
        background = _try_image_reader(self.background_path)
        c = canvas.Canvas(self.stream)
        if self.title:
            c.setTitle(self.title)
        for page in document.pages:
            self._draw_page(c, page, background)
            c.showPage()
        c.save()
        logger.info("Printed %s page(s) with template %s",
                    len(document.pages), document.template)


def render_pdf(document: PrintDocument, **kwargs) -> bytes:
    buf = BytesIO()
    PdfPrintSurface(buf, **kwargs).print_document(document)
    return buf.getvalue()


# -------------------------------
# HTML overlay (browser print)
# -------------------------------
_CSS = """
* {
  -webkit-print-color-adjust: exact !important;
  print-color-adjust: exact !important;
}
@page { margin: 0 !important; size: A4 !important; }
body { font-family: Arial, sans-serif; margin: 0; padding: 0; }
.page {
  position: relative;
  width: %(w)spx;
  height: %(h)spx;
  margin: 0 auto;
  page-break-after: always;
}
.page:last-child { page-break-after: auto; }
.background-image {
  position: absolute; top: 0; left: 0;
  width: 100%%; height: 100%%;
  object-fit: cover; z-index: 1;
}
.print-text {
  position: absolute;
  color: #000;
  line-height: 1.2;
  white-space: nowrap;
  z-index: 2;
}
.print-text.rtl { direction: rtl; unicode-bidi: embed; }
@media print { .no-print { display: none !important; } }
"""


class HtmlPrintSurface(PrintSurface):
    """Writes an HTML document of absolutely positioned divs over the background."""

    def __init__(self,
                 stream: TextIO,
                 *,
                 background_url: Optional[str] = None,
                 title: str = "Prescription",
                 auto_print: bool = True):
        self.stream = stream
        self.background_url = background_url
        self.title = title
        self.auto_print = auto_print

    def _element_html(self, el: TextElement) -> str:
        left = el.x
        style = [f"top: {el.y:g}px", f"font-size: {el.font_size:g}px"]
        if el.width and el.align in ("center", "right"):
            left = el.x - (el.width / 2 if el.align == "center" else el.width)
            style.append(f"width: {el.width:g}px")
            style.append(f"text-align: {el.align}")
        style.insert(1, f"left: {left:g}px")
        style.append(f"font-weight: {600 if el.bold else 400}")
        cls = "print-text rtl" if el.direction == "rtl" else "print-text"
        dir_attr = ' dir="rtl"' if el.direction == "rtl" else ""
        return (f'<div class="{cls}"{dir_attr} data-field="{_esc(el.field)}" '
                f'style="{"; ".join(style)};">{_esc(el.text)}</div>')

    def _page_html(self, page: PageDescription) -> str:
        bg = ""
        if self.background_url:
            bg = (f'<img src="{_esc(self.background_url)}" alt="" '
                  f'class="background-image" />')
        body = "\n".join(self._element_html(e) for e in page.elements)
        return (f'<div class="page" data-page="{page.page_number}">'
                f"{bg}\n{body}\n</div>")

    def print_document(self, document: PrintDocument) -> None:
        first = document.pages[0] if document.pages else None
        css = _CSS % {
            "w": f"{first.width:g}" if first else "794",
            "h": f"{first.height:g}" if first else "1123",
        }
        script = ("<script>setTimeout(function () { window.print(); }, 1000);"
                  "</script>" if self.auto_print else "")
        pages = "\n".join(self._page_html(p) for p in document.pages)
        self.stream.write(f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8" />
    <title>{_esc(self.title)}</title>
    <style>{css}</style>
  </head>
  <body>
{pages}
{script}
  </body>
</html>
""")


def render_html(document: PrintDocument, **kwargs) -> str:
    buf = StringIO()
    HtmlPrintSurface(buf, **kwargs).print_document(document)
    return buf.getvalue()
