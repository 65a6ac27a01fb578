# FILE: rxprint/api/routes_prescriptions.py
from __future__ import annotations

import logging
import re
from io import BytesIO
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import HTMLResponse, StreamingResponse

from rxprint.api.deps import get_compositor, get_record_store
from rxprint.core.config import settings
from rxprint.schemas.prescription import PrescriptionDetailOut, SaveResultOut
from rxprint.services.compositor import PrintCompositor, PrintDocument
from rxprint.services.prescriptions import (
    load_for_print,
    parse_form,
    parse_medicines,
    retry_medicines,
    save_prescription,
)
from rxprint.services.print_surface import render_html, render_pdf
from rxprint.services.record_store import RecordStore
from rxprint.utils.resp import ok
from rxprint.utils.timezone import now_clinic

logger = logging.getLogger(__name__)

router = APIRouter()


def _filename(ref_no: Optional[str], fallback: str) -> str:
    base = re.sub(r"[^A-Za-z0-9_-]+", "_", (ref_no or "").strip()).strip("_")
    return f"RX_{base or fallback}.pdf"


def _pdf_response(doc: PrintDocument, compositor: PrintCompositor,
                  filename: str) -> StreamingResponse:
    pdf_bytes = render_pdf(
        doc,
        background_path=settings.BACKGROUND_IMAGE_PATH,
        rtl_font_path=settings.RTL_FONT_PATH or None,
        font=compositor.template.font,
        bold_font=compositor.template.bold_font,
        title=filename[:-4],
    )
    return StreamingResponse(
        BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


# ---------------- Save ----------------
@router.post("")
def api_create_prescription(
    payload: Dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_record_store),
):
    form = parse_form(payload)
    result = save_prescription(store, form)
    out = SaveResultOut(
        status=result.status,
        prescription=result.prescription,
        medicines=result.medicines,
        error=result.error,
    )
    # 207: the prescription exists, its medicines need a retry
    return ok(out.model_dump(), 207 if result.is_partial else 201)


@router.post("/print")
def api_print_draft(
    payload: Dict[str, Any] = Body(...),
    compositor: PrintCompositor = Depends(get_compositor),
):
    """Print straight from the form without saving it."""
    form = parse_form(payload)
    doc = compositor.compose(
        form.prescription,
        form.printable_medicines(),
        generated_at=now_clinic(),
        relation=form.relation,
    )
    return _pdf_response(doc, compositor,
                         _filename(form.prescription.ref_no, "draft"))


@router.post("/{prescription_id}/medicines")
def api_retry_medicines(
    prescription_id: str,
    medicines: List[Dict[str, Any]] = Body(..., embed=True),
    store: RecordStore = Depends(get_record_store),
):
    lines = parse_medicines(medicines)
    saved = retry_medicines(store, prescription_id, lines)
    return ok([m.model_dump() for m in saved], 201)


# ---------------- Read ----------------
@router.get("")
def api_list_prescriptions(
    q: Optional[str] = Query(
        None, description="Search patient name / ref no / diagnosis"),
    limit: int = Query(50, ge=1, le=500),
    store: RecordStore = Depends(get_record_store),
):
    rows = store.list_prescriptions(search=q, limit=limit)
    return ok([r.model_dump() for r in rows])


@router.get("/{prescription_id}")
def api_get_prescription(
    prescription_id: str,
    store: RecordStore = Depends(get_record_store),
):
    rx, medicines = load_for_print(store, prescription_id)
    out = PrescriptionDetailOut(**rx.model_dump(), medicines=medicines)
    return ok(out.model_dump())


# ---------------- Print ----------------
@router.get("/{prescription_id}/pdf")
def api_prescription_pdf(
    prescription_id: str,
    relation: Optional[str] = Query(None, description="S/o, D/o, W/o line"),
    store: RecordStore = Depends(get_record_store),
    compositor: PrintCompositor = Depends(get_compositor),
):
    rx, medicines = load_for_print(store, prescription_id)
    doc = compositor.compose(rx,
                             medicines,
                             generated_at=now_clinic(),
                             relation=relation)
    logger.info("Prescription %s composed: %s page(s), %s medicine(s)",
                rx.id, len(doc.pages), doc.medicine_count)
    return _pdf_response(doc, compositor, _filename(rx.ref_no, rx.id))


@router.get("/{prescription_id}/print", response_class=HTMLResponse)
def api_prescription_print_html(
    prescription_id: str,
    relation: Optional[str] = Query(None, description="S/o, D/o, W/o line"),
    auto_print: bool = Query(True),
    store: RecordStore = Depends(get_record_store),
    compositor: PrintCompositor = Depends(get_compositor),
):
    rx, medicines = load_for_print(store, prescription_id)
    doc = compositor.compose(rx,
                             medicines,
                             generated_at=now_clinic(),
                             relation=relation)
    html = render_html(
        doc,
        background_url=settings.BACKGROUND_IMAGE_URL,
        title=f"Prescription - {rx.patient_name}",
        auto_print=auto_print,
    )
    return HTMLResponse(html)
