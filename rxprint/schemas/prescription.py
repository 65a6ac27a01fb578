# FILE: rxprint/schemas/prescription.py
from __future__ import annotations

from datetime import datetime, date
from decimal import Decimal
from typing import Any, List, Optional, Literal

from pydantic import (
    BaseModel,
    Field,
    ConfigDict,
    field_validator,
    model_validator,
)

from rxprint.core.errors import ParseError
from rxprint.services.dosage import decode_pattern
from rxprint.utils.text import clean

MEDICINE_TYPES = (
    "tablet",
    "capsule",
    "syrup",
    "suspension",
    "injection",
    "drops",
    "cream",
    "ointment",
    "gel",
    "inhaler",
    "sachet",
    "suppository",
    "spray",
    "lotion",
)

Sex = Literal["Male", "Female"]

_TEXT_FIELDS = (
    "patient_contact",
    "patient_address",
    "allergies",
    "symptoms",
    "findings",
    "diagnosis",
    "ref_no",
)


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


# ---------- Prescription ----------


class PrescriptionBase(BaseModel):
    patient_name: str
    patient_age: Optional[int] = Field(None, ge=0)
    patient_sex: Optional[Sex] = None
    patient_weight: Optional[Decimal] = Field(None, ge=0)
    patient_contact: Optional[str] = None
    patient_address: Optional[str] = None
    allergies: Optional[str] = None
    symptoms: Optional[str] = None
    findings: Optional[str] = None
    diagnosis: Optional[str] = None
    ref_no: Optional[str] = None
    visit_no: int = Field(1, ge=1)
    visit_date: Optional[date] = None


class PrescriptionCreate(PrescriptionBase):
    """What the form submits. Blank text becomes None; name must be set."""

    @field_validator("patient_name", mode="before")
    @classmethod
    def _name_required(cls, v: Any) -> str:
        name = clean(v)
        if not name:
            raise ValueError("Patient name is required")
        return name

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _trim_text(cls, v: Any) -> Optional[str]:
        return clean(v)

    @field_validator("patient_age",
                     "patient_weight",
                     "patient_sex",
                     "visit_date",
                     mode="before")
    @classmethod
    def _blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("visit_no", mode="before")
    @classmethod
    def _default_visit(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        return 1 if v is None else v


class PrescriptionOut(PrescriptionBase):
    id: str
    visit_date: date
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------- Medicine lines ----------


class MedicineLineBase(BaseModel):
    medicine_name: str = ""
    medicine_type: str = "tablet"
    dosage_amount: str = ""
    morning_dose: int = Field(0, ge=0)
    afternoon_dose: int = Field(0, ge=0)
    evening_dose: int = Field(0, ge=0)
    duration_days: Optional[int] = Field(None, gt=0)
    instructions: Optional[str] = None
    medicine_name_urdu: Optional[str] = None
    dose_urdu: Optional[str] = None

    @property
    def is_blank(self) -> bool:
        return not (self.medicine_name or "").strip()


class MedicineLineCreate(MedicineLineBase):
    """
    One editing row. `dosage_pattern` ("1+0+1") is an alternative input
    for the three doses, coming from the pattern selector.
    """

    dosage_pattern: Optional[str] = Field(None, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _apply_pattern(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        pattern = data.get("dosage_pattern")
        if pattern is None or not str(pattern).strip():
            return data
        try:
            triple = decode_pattern(str(pattern))
        except ParseError as e:
            raise ValueError(str(e)) from e
        data = dict(data)
        data["morning_dose"] = triple.morning
        data["afternoon_dose"] = triple.afternoon
        data["evening_dose"] = triple.evening
        return data

    @field_validator("medicine_name", "dosage_amount", mode="before")
    @classmethod
    def _trim_required_text(cls, v: Any) -> str:
        return clean(v) or ""

    @field_validator("instructions",
                     "medicine_name_urdu",
                     "dose_urdu",
                     mode="before")
    @classmethod
    def _trim_text(cls, v: Any) -> Optional[str]:
        return clean(v)

    @field_validator("medicine_type", mode="before")
    @classmethod
    def _known_type(cls, v: Any) -> str:
        t = (clean(v) or "tablet").lower()
        if t not in MEDICINE_TYPES:
            raise ValueError(f"Unknown medicine type '{v}'")
        return t

    @field_validator("morning_dose",
                     "afternoon_dose",
                     "evening_dose",
                     mode="before")
    @classmethod
    def _blank_dose(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        return 0 if v is None else v

    @field_validator("duration_days", mode="before")
    @classmethod
    def _blank_duration(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        # the editing row uses 0 for "not given"
        if v in (0, "0"):
            return None
        return v


class MedicineLineOut(MedicineLineBase):
    id: str
    prescription_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------- Form / responses ----------


class PrescriptionForm(BaseModel):
    prescription: PrescriptionCreate
    medicines: List[MedicineLineCreate] = []
    # print-only "S/o, D/o, W/o" line, never stored
    relation: Optional[str] = None

    @field_validator("relation", mode="before")
    @classmethod
    def _trim_relation(cls, v: Any) -> Optional[str]:
        return clean(v)

    def printable_medicines(self) -> List[MedicineLineCreate]:
        return [m for m in self.medicines if not m.is_blank]


class PrescriptionDetailOut(PrescriptionOut):
    medicines: List[MedicineLineOut] = []


class SaveResultOut(BaseModel):
    status: Literal["saved", "partial"]
    prescription: PrescriptionOut
    medicines: List[MedicineLineOut] = []
    error: Optional[str] = None


class DosagePatternOut(BaseModel):
    value: str
    label: str
    description: str
