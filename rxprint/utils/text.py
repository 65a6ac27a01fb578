# FILE: rxprint/utils/text.py
from __future__ import annotations

import re
from decimal import Decimal
from typing import Any, Optional


def clean(v: Any) -> Optional[str]:
    """Trim a free-text value; blank becomes None."""
    if v is None:
        return None
    s = re.sub(r"[ \t]+", " ", str(v)).strip()
    return s or None


def present(v: Any) -> bool:
    if v is None:
        return False
    if isinstance(v, str):
        return bool(v.strip())
    return True


def plain_number(v: Any) -> str:
    """
    Integers as-is, decimals without trailing zeros.
    Example: Decimal("72.50") -> "72.5", 70.0 -> "70"
    """
    if isinstance(v, bool):
        return str(v)
    if isinstance(v, int):
        return str(v)
    d = v if isinstance(v, Decimal) else Decimal(str(v))
    if d == d.to_integral_value():
        return str(d.quantize(Decimal(1)))
    return format(d.normalize(), "f")
