import os
import tempfile
from datetime import datetime

# must be set before rxprint.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RECORD_STORE"] = "memory"
os.environ["STORAGE_DIR"] = tempfile.mkdtemp(prefix="rxprint-media-")
os.environ["BACKGROUND_IMAGE_PATH"] = os.path.join(os.environ["STORAGE_DIR"],
                                                   "missing-bg.jpg")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from rxprint.db.init_db import init_db  # noqa: E402
from rxprint.db.session import make_engine  # noqa: E402
from rxprint.schemas.prescription import (  # noqa: E402
    MedicineLineCreate,
    PrescriptionCreate,
)
from rxprint.services.record_store import (  # noqa: E402
    InMemoryRecordStore,
    SqlRecordStore,
)

FIXED_NOW = datetime(2026, 3, 1, 10, 30)


def make_rx(**kw) -> PrescriptionCreate:
    data = {"patient_name": "Ali Khan"}
    data.update(kw)
    return PrescriptionCreate(**data)


def make_line(name: str = "Paracetamol", **kw) -> MedicineLineCreate:
    data = {
        "medicine_name": name,
        "medicine_type": "tablet",
        "dosage_amount": "500mg",
        "morning_dose": 1,
        "evening_dose": 1,
        "duration_days": 5,
    }
    data.update(kw)
    return MedicineLineCreate(**data)


@pytest.fixture
def memory_store():
    return InMemoryRecordStore(clock=lambda: FIXED_NOW)


@pytest.fixture
def sql_session():
    engine = make_engine("sqlite://")
    init_db(engine)
    session = sessionmaker(bind=engine, autoflush=False, future=True)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def sql_store(sql_session):
    return SqlRecordStore(sql_session)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        return request.getfixturevalue("memory_store")
    return request.getfixturevalue("sql_store")


@pytest.fixture
def app():
    from rxprint.main import create_app
    return create_app("memory")


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
