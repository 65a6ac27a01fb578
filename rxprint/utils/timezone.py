# FILE: rxprint/utils/timezone.py
from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from rxprint.core.config import settings

CLINIC_TZ = ZoneInfo(settings.CLINIC_TIMEZONE)


def now_clinic() -> datetime:
    """
    Returns a *naive* datetime representing clinic-local time.
    DateTime columns are naive, same as the rest of the tables.
    """
    return datetime.now(CLINIC_TZ).replace(tzinfo=None)