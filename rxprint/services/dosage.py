# FILE: rxprint/services/dosage.py
"""
Dose triple <-> "morning+afternoon+evening" pattern and descriptive text.

    encode_pattern(DoseTriple(1, 0, 2)) -> "1+0+2"
    decode_pattern("1+0+2")             -> DoseTriple(1, 0, 2)
    describe(DoseTriple(1, 0, 2))       -> "1 morning, 2 evening"

Input is assumed non-negative here; negative doses are rejected by the
form schemas before they get this far.
"""
from __future__ import annotations

import re
from typing import Dict, List, NamedTuple, Tuple

from rxprint.core.errors import ParseError, ValidationError

SLOT_NAMES = ("morning", "afternoon", "evening")

_SEGMENT = re.compile(r"^\s*([0-9]+)\s*$")


class DoseTriple(NamedTuple):
    morning: int = 0
    afternoon: int = 0
    evening: int = 0


def encode_pattern(triple: Tuple[int, int, int]) -> str:
    m, a, e = triple
    return f"{m}+{a}+{e}"


def decode_pattern(text: str) -> DoseTriple:
    """Strict: three '+'-separated non-negative integers, nothing else."""
    if text is None:
        raise ParseError("Dosage pattern is empty")
    raw = str(text).strip()
    if not raw:
        raise ParseError("Dosage pattern is empty")

    parts = raw.split("+")
    if len(parts) != 3:
        raise ParseError(
            f"Dosage pattern '{raw}' must have 3 parts (morning+afternoon+evening), got {len(parts)}"
        )

    nums: List[int] = []
    for slot, part in zip(SLOT_NAMES, parts):
        m = _SEGMENT.match(part)
        if not m:
            raise ParseError(
                f"Dosage pattern '{raw}': {slot} dose '{part.strip()}' is not a whole number"
            )
        nums.append(int(m.group(1)))
    return DoseTriple(*nums)


def describe(triple: Tuple[int, int, int]) -> str:
    parts = [
        f"{n} {slot}" for slot, n in zip(SLOT_NAMES, triple) if n > 0
    ]
    return ", ".join(parts)


def parse_pattern_input(text: str) -> DoseTriple:
    """Decode a pattern typed by the user; failures become validation messages."""
    try:
        return decode_pattern(text)
    except ParseError as e:
        raise ValidationError("Invalid dosage pattern", [str(e)]) from e


def triple_of(line) -> DoseTriple:
    """Dose triple from anything carrying morning/afternoon/evening_dose."""
    return DoseTriple(
        int(getattr(line, "morning_dose", 0) or 0),
        int(getattr(line, "afternoon_dose", 0) or 0),
        int(getattr(line, "evening_dose", 0) or 0),
    )


# -------------------------------
# Selector presets
# -------------------------------
FREQUENCY_CODES: Dict[str, DoseTriple] = {
    "OD": DoseTriple(1, 0, 0),
    "QD": DoseTriple(1, 0, 0),
    "BD": DoseTriple(1, 0, 1),
    "BID": DoseTriple(1, 0, 1),
    "TDS": DoseTriple(1, 1, 1),
    "TID": DoseTriple(1, 1, 1),
    "HS": DoseTriple(0, 0, 1),
    "NIGHT": DoseTriple(0, 0, 1),
}

_PRESETS: List[Tuple[DoseTriple, str]] = [
    (DoseTriple(1, 0, 0), "Once daily (morning)"),
    (DoseTriple(0, 0, 1), "Once daily (night)"),
    (DoseTriple(1, 0, 1), "Twice daily"),
    (DoseTriple(1, 1, 1), "Three times daily"),
    (DoseTriple(2, 0, 2), "Two, twice daily"),
    (DoseTriple(2, 2, 2), "Two, three times daily"),
    (DoseTriple(0, 1, 0), "Once daily (afternoon)"),
    (DoseTriple(0, 0, 0), "As needed"),
]

DOSAGE_PATTERNS: List[Dict[str, str]] = [{
    "value": encode_pattern(t),
    "label": label,
    "description": describe(t),
} for t, label in _PRESETS]


def pattern_for_frequency(code: str) -> str:
    key = (code or "").strip().upper()
    triple = FREQUENCY_CODES.get(key)
    if triple is None:
        raise ParseError(f"Unknown frequency code '{code}'")
    return encode_pattern(triple)
