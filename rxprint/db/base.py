# rxprint/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """All tables (prescriptions, prescription_medicines) inherit from this."""
    pass
