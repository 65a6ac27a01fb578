# FILE: rxprint/api/routes_dosage.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query

from rxprint.schemas.prescription import DosagePatternOut
from rxprint.services.dosage import (
    DOSAGE_PATTERNS,
    describe,
    encode_pattern,
    parse_pattern_input,
    pattern_for_frequency,
)
from rxprint.utils.resp import ok

router = APIRouter()


@router.get("/patterns")
def api_dosage_patterns():
    return ok([DosagePatternOut(**p).model_dump() for p in DOSAGE_PATTERNS])


@router.get("/describe")
def api_describe_pattern(
    pattern: Optional[str] = Query(None, description="e.g. 1+0+1"),
    frequency: Optional[str] = Query(None, description="e.g. BD, TDS, HS"),
):
    """Decode a typed pattern (or a frequency code) into doses and text."""
    if not pattern and frequency:
        pattern = pattern_for_frequency(frequency)
    triple = parse_pattern_input(pattern)
    return ok({
        "pattern": encode_pattern(triple),
        "morning_dose": triple.morning,
        "afternoon_dose": triple.afternoon,
        "evening_dose": triple.evening,
        "description": describe(triple),
    })
