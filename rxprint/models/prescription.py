# FILE: rxprint/models/prescription.py
from __future__ import annotations

import uuid

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Date,
    Numeric,
    ForeignKey,
    func,
)
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import relationship

from rxprint.db.base import Base


# microsecond precision on MySQL too, "most recent first" sorts on it
Timestamp = DateTime().with_variant(mysql.DATETIME(fsp=6), "mysql")


def _new_id() -> str:
    return uuid.uuid4().hex


class Prescription(Base):
    """
    One clinical visit: patient identity + visit metadata.
    Rows are append-only; medicines hang off `medicines`.
    """

    __tablename__ = "prescriptions"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(String(32), primary_key=True, default=_new_id)

    patient_name = Column(String(255), nullable=False, index=True)
    patient_age = Column(Integer, nullable=True)
    patient_sex = Column(String(16), nullable=True)  # Male / Female
    patient_weight = Column(Numeric(6, 2), nullable=True)  # kg
    patient_contact = Column(String(64), nullable=True)
    patient_address = Column(Text, nullable=True)

    allergies = Column(Text, nullable=True)
    symptoms = Column(Text, nullable=True)
    findings = Column(Text, nullable=True)
    diagnosis = Column(Text, nullable=True)

    ref_no = Column(String(64), nullable=True, index=True)
    visit_no = Column(Integer, nullable=False, default=1)
    visit_date = Column(Date, nullable=False)

    created_at = Column(Timestamp,
                        nullable=False,
                        server_default=func.now(),
                        index=True)
    updated_at = Column(
        Timestamp,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    medicines = relationship(
        "PrescriptionMedicine",
        back_populates="prescription",
        cascade="all, delete-orphan",
        order_by="PrescriptionMedicine.seq",
    )

    def __repr__(self):
        return f"<Prescription {self.id} {self.patient_name!r}>"


class PrescriptionMedicine(Base):
    """
    One prescribed item under Prescription.
    `seq` keeps the prescribing order inside a batch.
    """

    __tablename__ = "prescription_medicines"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(String(32), primary_key=True, default=_new_id)
    prescription_id = Column(
        String(32),
        ForeignKey("prescriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    seq = Column(Integer, nullable=False, default=0)

    medicine_name = Column(String(255), nullable=False)
    medicine_type = Column(String(32), nullable=False, default="tablet")
    dosage_amount = Column(String(64), nullable=True)  # "500mg", "5 ml"

    # Dosing triple (printed as "1+0+1")
    morning_dose = Column(Integer, nullable=False, default=0)
    afternoon_dose = Column(Integer, nullable=False, default=0)
    evening_dose = Column(Integer, nullable=False, default=0)

    duration_days = Column(Integer, nullable=True)
    instructions = Column(Text, nullable=True)

    # Secondary script (Urdu) shown under the line
    medicine_name_urdu = Column(String(255), nullable=True)
    dose_urdu = Column(String(255), nullable=True)

    created_at = Column(Timestamp,
                        nullable=False,
                        server_default=func.now(),
                        index=True)

    prescription = relationship("Prescription", back_populates="medicines")
