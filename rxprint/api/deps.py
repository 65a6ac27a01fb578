# rxprint/api/deps.py
from __future__ import annotations

from typing import Generator, Optional

from fastapi import Query, Request

from rxprint.core.config import settings
from rxprint.core.errors import ValidationError
from rxprint.db.session import SessionLocal
from rxprint.services.compositor import OverflowPolicy, PrintCompositor
from rxprint.services.layout import get_template
from rxprint.services.record_store import RecordStore, build_record_store


def get_record_store(request: Request) -> Generator[RecordStore, None, None]:
    """
    One store per request. A process-wide store set on app.state (memory
    mode) is shared; otherwise each request gets its own SQL session.
    """
    shared: Optional[RecordStore] = getattr(request.app.state, "record_store",
                                            None)
    if shared is not None:
        yield shared
        return

    db = SessionLocal()
    try:
        yield build_record_store("sql", db)
    finally:
        db.close()


def get_compositor(
    template: Optional[str] = Query(None, description="Layout template name"),
    version: Optional[int] = Query(None, ge=1),
    overflow: Optional[str] = Query(None, description="paginate | warn"),
) -> PrintCompositor:
    policy = (overflow or settings.OVERFLOW_POLICY).strip().lower()
    try:
        policy = OverflowPolicy(policy)
    except ValueError:
        raise ValidationError("Invalid overflow policy",
                              [f"overflow: '{policy}' is not paginate or warn"])
    return PrintCompositor(
        get_template(template or settings.LAYOUT_TEMPLATE, version), policy)
