# FILE: rxprint/services/record_store.py
"""
Record store: where prescriptions and their medicine lines live.

Two implementations behind one interface. `build_record_store` picks one at
startup from settings; nothing downstream checks which one it got.
"""
from __future__ import annotations

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy import or_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rxprint.core.errors import NotFoundError, PersistenceError
from rxprint.models.prescription import Prescription, PrescriptionMedicine
from rxprint.schemas.prescription import (
    MedicineLineBase,
    MedicineLineOut,
    PrescriptionCreate,
    PrescriptionOut,
)
from rxprint.utils.timezone import now_clinic

logger = logging.getLogger(__name__)

_PRESCRIPTION_FIELDS = (
    "patient_name",
    "patient_age",
    "patient_sex",
    "patient_weight",
    "patient_contact",
    "patient_address",
    "allergies",
    "symptoms",
    "findings",
    "diagnosis",
    "ref_no",
    "visit_no",
    "visit_date",
)

_LINE_FIELDS = (
    "medicine_name",
    "medicine_type",
    "dosage_amount",
    "morning_dose",
    "afternoon_dose",
    "evening_dose",
    "duration_days",
    "instructions",
    "medicine_name_urdu",
    "dose_urdu",
)


class MonotonicClock:
    """
    Clinic clock that never repeats a value within the process, so
    "most recent first" has no ties to break.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock
        self._last: Optional[datetime] = None
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        now = self._clock() if self._clock else now_clinic()
        with self._lock:
            if self._last is not None and now <= self._last:
                now = self._last + timedelta(microseconds=1)
            self._last = now
        return now


_sql_clock = MonotonicClock()


def _kept_lines(lines: Iterable[MedicineLineBase]) -> List[MedicineLineBase]:
    return [ln for ln in (lines or []) if not ln.is_blank]


def _matches(rx: PrescriptionOut, needle: str) -> bool:
    hay = (rx.patient_name, rx.ref_no, rx.diagnosis)
    return any(needle in (h or "").lower() for h in hay)


class RecordStore(ABC):

    @abstractmethod
    def create_prescription(self, data: PrescriptionCreate) -> PrescriptionOut:
        ...

    @abstractmethod
    def create_medicine_lines(
            self, prescription_id: str,
            lines: Iterable[MedicineLineBase]) -> List[MedicineLineOut]:
        ...

    @abstractmethod
    def get_prescription(self, prescription_id: str) -> PrescriptionOut:
        ...

    @abstractmethod
    def list_medicine_lines(self,
                            prescription_id: str) -> List[MedicineLineOut]:
        ...

    @abstractmethod
    def list_prescriptions(self,
                           search: Optional[str] = None,
                           limit: Optional[int] = None
                           ) -> List[PrescriptionOut]:
        ...


# =========================================================
# SQLAlchemy
# =========================================================
class SqlRecordStore(RecordStore):

    def __init__(self, db: Session):
        self.db = db

    def _fail(self, what: str, exc: Exception) -> PersistenceError:
        self.db.rollback()
        logger.exception("%s failed", what)
        return PersistenceError(f"{what} failed: {exc.__class__.__name__}")

    def create_prescription(self, data: PrescriptionCreate) -> PrescriptionOut:
        values = {k: getattr(data, k) for k in _PRESCRIPTION_FIELDS}
        now = _sql_clock()
        if values["visit_date"] is None:
            values["visit_date"] = now.date()
        row = Prescription(**values, created_at=now, updated_at=now)
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            raise self._fail("Saving prescription", e) from e
        logger.info("Prescription %s saved (ref_no=%s)", row.id, row.ref_no)
        return PrescriptionOut.model_validate(row)

    def create_medicine_lines(
            self, prescription_id: str,
            lines: Iterable[MedicineLineBase]) -> List[MedicineLineOut]:
        kept = _kept_lines(lines)
        try:
            if self.db.get(Prescription, prescription_id) is None:
                raise PersistenceError(
                    f"Prescription {prescription_id} does not exist")
            start = (self.db.query(func.count(PrescriptionMedicine.id)).filter(
                PrescriptionMedicine.prescription_id ==
                prescription_id).scalar() or 0)
            now = _sql_clock()
            rows = [
                PrescriptionMedicine(
                    prescription_id=prescription_id,
                    seq=start + i,
                    created_at=now,
                    **{k: getattr(ln, k) for k in _LINE_FIELDS},
                ) for i, ln in enumerate(kept)
            ]
            self.db.add_all(rows)
            self.db.commit()
            for r in rows:
                self.db.refresh(r)
        except SQLAlchemyError as e:
            raise self._fail("Saving medicines", e) from e
        logger.info("Saved %s medicine line(s) for prescription %s",
                    len(rows), prescription_id)
        return [MedicineLineOut.model_validate(r) for r in rows]

    def get_prescription(self, prescription_id: str) -> PrescriptionOut:
        try:
            row = self.db.get(Prescription, prescription_id)
        except SQLAlchemyError as e:
            raise self._fail("Loading prescription", e) from e
        if row is None:
            raise NotFoundError("Prescription not found")
        return PrescriptionOut.model_validate(row)

    def list_medicine_lines(self,
                            prescription_id: str) -> List[MedicineLineOut]:
        try:
            rows = (self.db.query(PrescriptionMedicine).filter(
                PrescriptionMedicine.prescription_id == prescription_id).
                    order_by(PrescriptionMedicine.seq.asc()).all())
        except SQLAlchemyError as e:
            raise self._fail("Loading medicines", e) from e
        return [MedicineLineOut.model_validate(r) for r in rows]

    def list_prescriptions(self,
                           search: Optional[str] = None,
                           limit: Optional[int] = None
                           ) -> List[PrescriptionOut]:
        q = self.db.query(Prescription)
        if search and search.strip():
            # substring match: % and _ in the needle are literal
            needle = search.strip().lower()
            q = q.filter(
                or_(
                    func.lower(Prescription.patient_name).contains(
                        needle, autoescape=True),
                    func.lower(Prescription.ref_no).contains(
                        needle, autoescape=True),
                    func.lower(Prescription.diagnosis).contains(
                        needle, autoescape=True),
                ))
        q = q.order_by(Prescription.created_at.desc(), Prescription.id.desc())
        if limit:
            q = q.limit(limit)
        try:
            rows = q.all()
        except SQLAlchemyError as e:
            raise self._fail("Listing prescriptions", e) from e
        return [PrescriptionOut.model_validate(r) for r in rows]


# =========================================================
# In-memory (demo mode, tests)
# =========================================================
class InMemoryRecordStore(RecordStore):
    """
    Process-local store. `clock` makes timestamps deterministic; set
    `fail_medicines` to make the next medicine batch save fail.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._now = MonotonicClock(clock)
        self._rx: Dict[str, PrescriptionOut] = {}
        self._order: List[str] = []
        self._lines: Dict[str, List[MedicineLineOut]] = {}
        self.fail_medicines = False

    def create_prescription(self, data: PrescriptionCreate) -> PrescriptionOut:
        now = self._now()
        values = {k: getattr(data, k) for k in _PRESCRIPTION_FIELDS}
        if values["visit_date"] is None:
            values["visit_date"] = now.date()
        rx = PrescriptionOut(id=uuid.uuid4().hex,
                             created_at=now,
                             updated_at=now,
                             **values)
        self._rx[rx.id] = rx
        self._order.append(rx.id)
        self._lines[rx.id] = []
        return rx.model_copy()

    def create_medicine_lines(
            self, prescription_id: str,
            lines: Iterable[MedicineLineBase]) -> List[MedicineLineOut]:
        if self.fail_medicines:
            self.fail_medicines = False
            raise PersistenceError("Saving medicines failed: store rejected write")
        if prescription_id not in self._rx:
            raise PersistenceError(
                f"Prescription {prescription_id} does not exist")
        now = self._now()
        out = [
            MedicineLineOut(id=uuid.uuid4().hex,
                            prescription_id=prescription_id,
                            created_at=now,
                            **{k: getattr(ln, k) for k in _LINE_FIELDS})
            for ln in _kept_lines(lines)
        ]
        self._lines[prescription_id].extend(out)
        return [m.model_copy() for m in out]

    def get_prescription(self, prescription_id: str) -> PrescriptionOut:
        rx = self._rx.get(prescription_id)
        if rx is None:
            raise NotFoundError("Prescription not found")
        return rx.model_copy()

    def list_medicine_lines(self,
                            prescription_id: str) -> List[MedicineLineOut]:
        # copies: callers must not be able to edit stored records
        return [m.model_copy() for m in self._lines.get(prescription_id, [])]

    def list_prescriptions(self,
                           search: Optional[str] = None,
                           limit: Optional[int] = None
                           ) -> List[PrescriptionOut]:
        rows = [self._rx[i].model_copy() for i in reversed(self._order)]
        needle = (search or "").strip().lower()
        if needle:
            rows = [r for r in rows if _matches(r, needle)]
        if limit:
            rows = rows[:limit]
        return rows


def build_record_store(kind: str,
                       db: Optional[Session] = None) -> RecordStore:
    kind = (kind or "").strip().lower()
    if kind == "memory":
        return InMemoryRecordStore()
    if kind == "sql":
        if db is None:
            raise ValueError("SqlRecordStore needs a database session")
        return SqlRecordStore(db)
    raise ValueError(f"Unknown record store '{kind}' (expected sql or memory)")
