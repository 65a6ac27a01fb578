# FILE: rxprint/services/layout.py
"""
Layout templates: where every printable field sits on the letterhead.

Coordinates are page pixels at 96 DPI (A4 = 794 x 1123), origin top-left,
y growing downward. A template is the only place coordinates live: the
compositor reads it to place text and the editing UI reads `as_dict()` to
place its inputs over the same background.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from itertools import combinations
from typing import Any, Dict, Iterator, List, Optional, Tuple

from rxprint.core.errors import NotFoundError

PAGE_WIDTH = 794
PAGE_HEIGHT = 1123


class WrapPolicy(str, Enum):
    TRUNCATE = "truncate"  # single line, ellipsised to the box width
    WRAP = "wrap"  # wrapped to the box, as many lines as the height allows


@dataclass(frozen=True)
class FieldSlot:
    key: str
    x: float
    y: float
    width: float
    height: Optional[float] = None
    wrap: WrapPolicy = WrapPolicy.TRUNCATE
    align: str = "left"  # left / center / right inside the box
    font_size: float = 14.0
    line_height: float = 16.8
    bold: bool = True
    # value that counts as "nothing to print" besides empty
    hide_value: Any = None
    # repeated on medicine continuation pages
    identifying: bool = False

    @property
    def box_height(self) -> float:
        return self.height if self.height is not None else self.line_height

    @property
    def max_lines(self) -> int:
        if self.wrap is WrapPolicy.TRUNCATE:
            return 1
        return max(1, int(self.box_height // self.line_height))

    @property
    def text_x(self) -> float:
        if self.align == "center":
            return self.x + self.width / 2
        if self.align == "right":
            return self.x + self.width
        return self.x

    def box(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.x + self.width, self.y + self.box_height)


@dataclass(frozen=True)
class MedicineBlock:
    """Region the compositor fills top-to-bottom with medicine entries."""

    x: float
    y: float
    width: float
    height: float

    header_font_size: float = 14.0
    header_line_height: float = 16.8
    detail_font_size: float = 12.0
    detail_line_height: float = 14.4
    detail_indent: float = 16.0
    secondary_font_size: float = 14.0
    secondary_line_height: float = 20.0
    entry_gap: float = 12.0

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def box(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.x + self.width, self.bottom)


@dataclass(frozen=True)
class LayoutTemplate:
    name: str
    version: int
    fields: Tuple[FieldSlot, ...]
    medicine_block: MedicineBlock
    page_width: float = PAGE_WIDTH
    page_height: float = PAGE_HEIGHT
    background: str = "prescription-bg.jpg"
    date_format: str = "%d/%m/%Y"
    time_format: str = "%I:%M %p"
    font: str = "Helvetica"
    bold_font: str = "Helvetica-Bold"
    _index: Dict[str, FieldSlot] = field(init=False,
                                         repr=False,
                                         compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_index", {f.key: f for f in self.fields})

    def __iter__(self) -> Iterator[FieldSlot]:
        return iter(self.fields)

    @property
    def keys(self) -> List[str]:
        return [f.key for f in self.fields]

    @property
    def label(self) -> str:
        return f"{self.name}@{self.version}"

    def slot(self, key: str) -> Optional[FieldSlot]:
        return self._index.get(key)

    def font_for(self, bold: bool) -> str:
        return self.bold_font if bold else self.font

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "page": {
                "width": self.page_width,
                "height": self.page_height,
                "background": self.background,
            },
            "date_format": self.date_format,
            "time_format": self.time_format,
            "fields": [{
                "key": f.key,
                "x": f.x,
                "y": f.y,
                "width": f.width,
                "height": f.box_height,
                "wrap": f.wrap.value,
                "max_lines": f.max_lines,
                "align": f.align,
                "font_size": f.font_size,
                "line_height": f.line_height,
                "bold": f.bold,
            } for f in self.fields],
            "medicine_block": {
                "x": self.medicine_block.x,
                "y": self.medicine_block.y,
                "width": self.medicine_block.width,
                "height": self.medicine_block.height,
                "header_line_height": self.medicine_block.header_line_height,
                "detail_line_height": self.medicine_block.detail_line_height,
                "secondary_line_height":
                self.medicine_block.secondary_line_height,
                "entry_gap": self.medicine_block.entry_gap,
            },
        }


# -------------------------------
# Validation
# -------------------------------
def _overlaps(a: Tuple[float, ...], b: Tuple[float, ...]) -> bool:
    ax0, ay0, ax1, ay1 = a
    bx0, by0, bx1, by1 = b
    return ax0 < bx1 and bx0 < ax1 and ay0 < by1 and by0 < ay1


def validate_template(t: LayoutTemplate) -> LayoutTemplate:
    """Every box inside the canvas, no two boxes overlapping."""
    problems: List[str] = []

    boxes: List[Tuple[str, Tuple[float, ...]]] = [(f.key, f.box())
                                                  for f in t.fields]
    boxes.append(("medicine_block", t.medicine_block.box()))

    if len(set(t.keys)) != len(t.keys):
        problems.append("duplicate field keys")

    for key, (x0, y0, x1, y1) in boxes:
        if x0 < 0 or y0 < 0 or x1 > t.page_width or y1 > t.page_height:
            problems.append(f"{key} falls outside the page")
        if x1 <= x0 or y1 <= y0:
            problems.append(f"{key} has an empty box")

    for (ka, a), (kb, b) in combinations(boxes, 2):
        if _overlaps(a, b):
            problems.append(f"{ka} overlaps {kb}")

    mb = t.medicine_block
    if min(mb.header_line_height, mb.detail_line_height,
           mb.secondary_line_height) <= 0:
        problems.append("medicine block line heights must be positive")

    if problems:
        raise ValueError(f"Layout template {t.label} is invalid: " +
                         "; ".join(problems))
    return t


# -------------------------------
# Templates
# -------------------------------
_WRAP = dict(wrap=WrapPolicy.WRAP, font_size=12.0, line_height=14.4)

OVERLAY_V1 = LayoutTemplate(
    name="overlay",
    version=1,
    fields=(
        FieldSlot("ref_no", 63, 258, 190, identifying=True),
        FieldSlot("generated_at", 271, 259, 140),
        FieldSlot("visit_date", 430, 260, 180, identifying=True),
        FieldSlot("visit_no", 632, 254, 80, align="center", hide_value=1),
        FieldSlot("patient_name", 127, 291, 330, identifying=True),
        FieldSlot("relation", 480, 292, 280),
        FieldSlot("patient_age", 60, 324, 150),
        FieldSlot("patient_sex", 232, 324, 150),
        FieldSlot("patient_weight", 414, 325, 150),
        FieldSlot("patient_contact", 588, 325, 180),
        FieldSlot("patient_address", 83, 356, 320, height=29, **_WRAP),
        FieldSlot("allergies", 480, 357, 270, height=29, **_WRAP),
        FieldSlot("symptoms", 104, 386, 300, height=29, **_WRAP),
        FieldSlot("findings", 474, 389, 300, height=29, **_WRAP),
        FieldSlot("diagnosis", 193, 421, 500, height=50, **_WRAP),
    ),
    medicine_block=MedicineBlock(x=327, y=477, width=417, height=560),
)

_REGISTRY: Dict[Tuple[str, int], LayoutTemplate] = {}


def register_template(t: LayoutTemplate) -> LayoutTemplate:
    validate_template(t)
    _REGISTRY[(t.name, t.version)] = t
    return t


def get_template(name: str, version: Optional[int] = None) -> LayoutTemplate:
    """Template by name; latest version unless one is asked for."""
    if version is not None:
        t = _REGISTRY.get((name, version))
        if t is None:
            raise NotFoundError(f"Layout template '{name}@{version}' not found")
        return t
    found = [t for (n, _), t in _REGISTRY.items() if n == name]
    if not found:
        raise NotFoundError(f"Layout template '{name}' not found")
    return max(found, key=lambda t: t.version)


def available_templates() -> List[LayoutTemplate]:
    return sorted(_REGISTRY.values(), key=lambda t: (t.name, t.version))


register_template(OVERLAY_V1)
