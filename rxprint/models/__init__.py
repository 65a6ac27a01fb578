# rxprint/models/__init__.py
from .prescription import Prescription, PrescriptionMedicine

__all__ = [
    "Prescription",
    "PrescriptionMedicine",
]
