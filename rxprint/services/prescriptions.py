# FILE: rxprint/services/prescriptions.py
"""
Prescription save / load workflow.

Order matters: the prescription row is written first to get its id, then the
non-empty medicine lines tagged with it. The two writes are not one
transaction; if the second fails the prescription stays and the result is
reported as "partial" so the caller can retry just the medicines.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from rxprint.core.errors import PersistenceError, ValidationError
from rxprint.schemas.prescription import (
    MedicineLineBase,
    MedicineLineCreate,
    MedicineLineOut,
    PrescriptionForm,
    PrescriptionOut,
)
from rxprint.services.record_store import RecordStore

logger = logging.getLogger(__name__)

SAVED = "saved"
PARTIAL = "partial"


def _error_messages(exc: PydanticValidationError) -> List[str]:
    out: List[str] = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        msg = err.get("msg", "invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        out.append(f"{loc}: {msg}" if loc else msg)
    return out


def parse_form(payload: Dict[str, Any]) -> PrescriptionForm:
    """Validate raw form input; every problem ends up in one ValidationError."""
    try:
        return PrescriptionForm.model_validate(payload)
    except PydanticValidationError as e:
        errors = _error_messages(e)
        logger.info("Prescription form rejected: %s", errors)
        raise ValidationError("Invalid prescription", errors) from e


def parse_medicines(payload: Iterable[Dict[str, Any]]) -> List[MedicineLineCreate]:
    out: List[MedicineLineCreate] = []
    errors: List[str] = []
    for i, item in enumerate(payload or []):
        try:
            out.append(MedicineLineCreate.model_validate(item))
        except PydanticValidationError as e:
            errors.extend(f"medicines.{i}.{m}" for m in _error_messages(e))
    if errors:
        raise ValidationError("Invalid medicines", errors)
    return out


@dataclass
class SaveResult:
    status: str
    prescription: PrescriptionOut
    medicines: List[MedicineLineOut] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_partial(self) -> bool:
        return self.status == PARTIAL


def save_prescription(store: RecordStore, form: PrescriptionForm) -> SaveResult:
    # a PersistenceError here means nothing was written; let it propagate
    rx = store.create_prescription(form.prescription)

    lines = form.printable_medicines()
    if not lines:
        return SaveResult(SAVED, rx)

    try:
        saved = store.create_medicine_lines(rx.id, lines)
    except PersistenceError as e:
        logger.warning(
            "Prescription %s saved but its %s medicine(s) were not: %s",
            rx.id, len(lines), e)
        return SaveResult(PARTIAL, rx, [], str(e))

    return SaveResult(SAVED, rx, saved)


def retry_medicines(store: RecordStore, prescription_id: str,
                    lines: Iterable[MedicineLineBase]) -> List[MedicineLineOut]:
    """Re-submit the medicine batch of a partially saved prescription."""
    store.get_prescription(prescription_id)
    already = store.list_medicine_lines(prescription_id)
    if already:
        raise ValidationError(
            "Prescription already has medicines",
            [f"{len(already)} medicine line(s) saved, nothing to retry"])
    return store.create_medicine_lines(prescription_id, lines)


def load_for_print(
        store: RecordStore,
        prescription_id: str) -> Tuple[PrescriptionOut, List[MedicineLineOut]]:
    rx = store.get_prescription(prescription_id)
    return rx, store.list_medicine_lines(prescription_id)
