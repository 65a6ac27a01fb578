# FILE: rxprint/services/compositor.py
"""
Print compositor: (prescription, medicine lines, layout template) -> pages of
absolutely positioned text, ready for a print surface.

Nothing here reads the clock; the "generated at" time is passed in, so the
same inputs always give the same pages.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from reportlab.pdfbase import pdfmetrics

from rxprint.core.errors import OverflowWarning, ValidationError
from rxprint.services.dosage import describe, triple_of
from rxprint.services.layout import (
    OVERLAY_V1,
    FieldSlot,
    LayoutTemplate,
    WrapPolicy,
)
from rxprint.utils.text import clean, plain_number, present

logger = logging.getLogger(__name__)

ELLIPSIS = "…"


class OverflowPolicy(str, Enum):
    PAGINATE = "paginate"  # continue on a new page over the same background
    WARN = "warn"  # raise OverflowWarning, caller decides


# -------------------------------
# Page description
# -------------------------------
@dataclass(frozen=True)
class TextElement:
    x: float
    y: float  # top of the line box
    text: str
    field: str
    font_size: float
    bold: bool = False
    align: str = "left"  # x is the left edge / centre / right edge
    direction: str = "ltr"
    width: Optional[float] = None
    entry: Optional[int] = None  # printed medicine number


@dataclass
class PageDescription:
    page_number: int
    width: float
    height: float
    background: str
    elements: List[TextElement] = field(default_factory=list)
    continuation: bool = False

    def texts(self, field_key: Optional[str] = None) -> List[str]:
        return [
            e.text for e in self.elements
            if field_key is None or e.field == field_key
        ]


@dataclass
class PrintDocument:
    pages: List[PageDescription]
    template: str
    medicine_count: int = 0

    @property
    def elements(self) -> List[TextElement]:
        return [e for p in self.pages for e in p.elements]


# -------------------------------
# Text measuring
# -------------------------------
def _width(text: str, font: str, size: float) -> float:
    try:
        return pdfmetrics.stringWidth(text, font, size)
    except (KeyError, UnicodeError, ValueError):
        # glyphs outside the base-14 encodings: rough average advance
        return len(text) * size * 0.55


def _hard_break(word: str, font: str, size: float,
                max_w: float) -> List[str]:
    out: List[str] = []
    cur = ""
    for ch in word:
        if cur and _width(cur + ch, font, size) > max_w:
            out.append(cur)
            cur = ch
        else:
            cur += ch
    if cur:
        out.append(cur)
    return out


def wrap_text(text: str, font: str, size: float, max_w: float) -> List[str]:
    s = " ".join((text or "").split())
    if not s:
        return []
    lines: List[str] = []
    cur = ""
    for w in s.split(" "):
        cand = (cur + " " + w).strip()
        if _width(cand, font, size) <= max_w:
            cur = cand
            continue
        if cur:
            lines.append(cur)
        if _width(w, font, size) <= max_w:
            cur = w
        else:
            *head, cur = _hard_break(w, font, size, max_w)
            lines.extend(head)
    if cur:
        lines.append(cur)
    return lines


def _clip(text: str, font: str, size: float, max_w: float) -> str:
    s = text
    while s and _width(s.rstrip() + ELLIPSIS, font, size) > max_w:
        s = s[:-1]
    return s.rstrip() + ELLIPSIS


def ellipsize(text: str, font: str, size: float, max_w: float) -> str:
    if _width(text, font, size) <= max_w:
        return text
    return _clip(text, font, size, max_w)


def fit_lines(text: str, font: str, size: float, max_w: float,
              max_lines: int) -> List[str]:
    """Wrap, then cut to `max_lines`, marking the cut with an ellipsis."""
    lines = wrap_text(text, font, size, max_w)
    if len(lines) <= max_lines:
        return lines
    kept = lines[:max_lines]
    kept[-1] = _clip(kept[-1], font, size, max_w)
    return kept


# -------------------------------
# Medicine entries
# -------------------------------
@dataclass(frozen=True)
class _Line:
    text: str
    field: str
    dx: float
    width: float
    font_size: float
    height: float
    bold: bool = False
    align: str = "left"
    direction: str = "ltr"


@dataclass
class _Entry:
    number: int
    lines: List[_Line]

    @property
    def height(self) -> float:
        return sum(ln.height for ln in self.lines)


def printable_medicines(medicines: Iterable[Any]) -> List[Any]:
    """Lines with a medicine name, in the order they were prescribed."""
    return [
        m for m in (medicines or [])
        if present(getattr(m, "medicine_name", None))
    ]


def medicine_header(number: int, line: Any) -> str:
    name = clean(getattr(line, "medicine_name", None)) or ""
    amount = clean(getattr(line, "dosage_amount", None))
    mtype = clean(getattr(line, "medicine_type", None))
    parts = [f"{number}.", name]
    if amount:
        parts.append(amount)
    if mtype:
        parts.append(f"({mtype})")
    return " ".join(parts)


def medicine_detail(line: Any) -> str:
    text = f"Dosage: {describe(triple_of(line))}".rstrip()
    days = getattr(line, "duration_days", None)
    if days:
        text += f" for {days} days"
    instructions = clean(getattr(line, "instructions", None))
    if instructions:
        text += f" - {instructions}"
    return text


def medicine_secondary(line: Any) -> str:
    parts = [
        clean(getattr(line, "medicine_name_urdu", None)),
        clean(getattr(line, "dose_urdu", None)),
    ]
    return " ".join(p for p in parts if p)


# -------------------------------
# Compositor
# -------------------------------
class PrintCompositor:

    def __init__(self,
                 template: Optional[LayoutTemplate] = None,
                 overflow: OverflowPolicy | str = OverflowPolicy.PAGINATE):
        self.template = template or OVERLAY_V1
        self.overflow = OverflowPolicy(overflow)

    # ---- scalar fields ----
    def field_values(self,
                     rx: Any,
                     *,
                     generated_at: Optional[datetime] = None,
                     relation: Optional[str] = None) -> Dict[str, str]:
        t = self.template

        def g(key: str) -> Any:
            return getattr(rx, key, None)

        visit_date: Optional[date] = g("visit_date")
        if visit_date is None and generated_at is not None:
            visit_date = generated_at.date()
        if isinstance(visit_date, datetime):
            visit_date = visit_date.date()

        raw: Dict[str, Any] = {
            "ref_no": clean(g("ref_no")),
            "generated_at":
            generated_at.strftime(t.time_format) if generated_at else None,
            "visit_date":
            visit_date.strftime(t.date_format) if visit_date else None,
            "visit_no": g("visit_no"),
            "patient_name": clean(g("patient_name")),
            "relation": clean(relation),
            "patient_age": g("patient_age"),
            "patient_sex": clean(g("patient_sex")),
            "patient_weight": g("patient_weight"),
            "patient_contact": clean(g("patient_contact")),
            "patient_address": g("patient_address"),
            "allergies": g("allergies"),
            "symptoms": g("symptoms"),
            "findings": g("findings"),
            "diagnosis": g("diagnosis"),
        }

        out: Dict[str, str] = {}
        for slot in t:
            v = raw.get(slot.key)
            if not present(v):
                continue
            if slot.hide_value is not None and v == slot.hide_value:
                continue
            if isinstance(v, (int, float)) or hasattr(v, "as_tuple"):
                v = plain_number(v)
            out[slot.key] = str(v)
        return out

    def _place_field(self, slot: FieldSlot, value: str) -> List[TextElement]:
        font = self.template.font_for(slot.bold)
        if slot.wrap is WrapPolicy.WRAP:
            lines = fit_lines(value, font, slot.font_size, slot.width,
                              slot.max_lines)
        else:
            one = " ".join(value.split())
            lines = [ellipsize(one, font, slot.font_size, slot.width)]
        return [
            TextElement(
                x=slot.text_x,
                y=slot.y + k * slot.line_height,
                text=ln,
                field=slot.key,
                font_size=slot.font_size,
                bold=slot.bold,
                align=slot.align,
                width=slot.width,
            ) for k, ln in enumerate(lines)
        ]

    def place_fields(self,
                     values: Dict[str, str],
                     only: Optional[Sequence[str]] = None) -> List[TextElement]:
        out: List[TextElement] = []
        for slot in self.template:
            if only is not None and slot.key not in only:
                continue
            if slot.key in values:
                out.extend(self._place_field(slot, values[slot.key]))
        return out

    # ---- medicine block ----
    def build_entry(self, number: int, line: Any) -> _Entry:
        mb = self.template.medicine_block
        t = self.template
        lines: List[_Line] = []

        bold = t.font_for(True)
        for txt in wrap_text(medicine_header(number, line), bold,
                             mb.header_font_size, mb.width):
            lines.append(
                _Line(txt, "medicine_header", 0, mb.width,
                      mb.header_font_size, mb.header_line_height, True))

        detail_w = mb.width - mb.detail_indent
        for txt in wrap_text(medicine_detail(line), t.font,
                             mb.detail_font_size, detail_w):
            lines.append(
                _Line(txt, "medicine_detail", mb.detail_indent, detail_w,
                      mb.detail_font_size, mb.detail_line_height))

        # right-aligned at the block's right edge, wrapped to the block width
        for txt in wrap_text(medicine_secondary(line), t.font,
                             mb.secondary_font_size, mb.width):
            lines.append(
                _Line(txt,
                      "medicine_secondary",
                      mb.width,
                      mb.width,
                      mb.secondary_font_size,
                      mb.secondary_line_height,
                      align="right",
                      direction="rtl"))

        return _Entry(number, lines)

    def _emit(self, page: PageDescription, entry: _Entry, ln: _Line,
              y: float) -> None:
        mb = self.template.medicine_block
        page.elements.append(
            TextElement(
                x=mb.x + ln.dx,
                y=y,
                text=ln.text,
                field=ln.field,
                font_size=ln.font_size,
                bold=ln.bold,
                align=ln.align,
                direction=ln.direction,
                width=ln.width,
                entry=entry.number,
            ))

    def _new_page(self, number: int, elements: List[TextElement],
                  continuation: bool) -> PageDescription:
        t = self.template
        return PageDescription(
            page_number=number,
            width=t.page_width,
            height=t.page_height,
            background=t.background,
            elements=list(elements),
            continuation=continuation,
        )

    def compose(self,
                prescription: Any,
                medicines: Iterable[Any] = (),
                *,
                generated_at: Optional[datetime] = None,
                relation: Optional[str] = None) -> PrintDocument:
        if not present(getattr(prescription, "patient_name", None)):
            raise ValidationError("Patient name is required for printing")

        t = self.template
        mb = t.medicine_block

        values = self.field_values(prescription,
                                   generated_at=generated_at,
                                   relation=relation)
        identifying = [s.key for s in t if s.identifying]
        continuation_header = self.place_fields(values, only=identifying)

        pages = [self._new_page(1, self.place_fields(values), False)]
        entries = [
            self.build_entry(n, ln)
            for n, ln in enumerate(printable_medicines(medicines), start=1)
        ]
        doc = PrintDocument(pages=pages,
                            template=t.label,
                            medicine_count=len(entries))

        def next_page() -> PageDescription:
            page = self._new_page(len(pages) + 1, continuation_header, True)
            pages.append(page)
            return page

        page = pages[0]
        cursor = mb.y
        for placed, entry in enumerate(entries):
            fits_here = cursor + entry.height <= mb.bottom
            fits_fresh = mb.y + entry.height <= mb.bottom

            if not fits_here and self.overflow is OverflowPolicy.WARN:
                logger.warning(
                    "Medicine block overflow: %s of %s entries fit (%s)",
                    placed, len(entries), t.label)
                raise OverflowWarning(
                    f"Only {placed} of {len(entries)} medicines fit on the page",
                    document=doc,
                    placed=placed,
                    total=len(entries),
                )

            if not fits_here and fits_fresh and cursor > mb.y:
                page = next_page()
                cursor = mb.y

            if cursor + entry.height <= mb.bottom:
                for ln in entry.lines:
                    self._emit(page, entry, ln, cursor)
                    cursor += ln.height
            else:
                # taller than a whole block: split it line by line
                logger.warning("Medicine entry %s split across pages",
                               entry.number)
                for ln in entry.lines:
                    if cursor + ln.height > mb.bottom and cursor > mb.y:
                        page = next_page()
                        cursor = mb.y
                    self._emit(page, entry, ln, cursor)
                    cursor += ln.height

            cursor += mb.entry_gap

        return doc


def compose(prescription: Any,
            medicines: Iterable[Any] = (),
            template: Optional[LayoutTemplate] = None,
            *,
            overflow: OverflowPolicy | str = OverflowPolicy.PAGINATE,
            generated_at: Optional[datetime] = None,
            relation: Optional[str] = None) -> PrintDocument:
    return PrintCompositor(template, overflow).compose(
        prescription,
        medicines,
        generated_at=generated_at,
        relation=relation,
    )
