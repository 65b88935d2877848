"""
Test configuration: every test gets its own file-backed SQLite database
(aiosqlite) so the billing transaction runs against a real store with real
row counts.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./opd_pharmacy_test.db")
os.environ.setdefault("DB_AUTO_CREATE", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import date, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

from opd_pharmacy.api.deps import get_db  # noqa: E402
from opd_pharmacy.db.init_db import init_db  # noqa: E402
from opd_pharmacy.db.session import make_engine, make_sessionmaker  # noqa: E402
from opd_pharmacy.main import app  # noqa: E402
from opd_pharmacy.models import Hospital, InventoryItem, Patient, Visit  # noqa: E402
from factories import make_token  # noqa: E402


@pytest.fixture
async def engine(tmp_path):
    eng = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'opd.db'}")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_sessionmaker(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ---------- tenants / patients ----------


async def _add(db, obj):
    db.add(obj)
    await db.commit()
    return obj


@pytest.fixture
async def hospital(db):
    return await _add(db, Hospital(name="City Clinic", code="CITY"))


@pytest.fixture
async def other_hospital(db):
    return await _add(db, Hospital(name="Lake Clinic", code="LAKE"))


@pytest.fixture
async def patient(db, hospital):
    return await _add(db, Patient(hospital_id=hospital.id, name="Asha Raman",
                                  phone_number="9000000001", age=34, gender="Female"))


@pytest.fixture
async def visit(db, hospital, patient):
    return await _add(db, Visit(hospital_id=hospital.id, patient_id=patient.id,
                                doctor_id=11, status="pending"))


@pytest.fixture
def make_item(db, hospital):
    async def _make(item_name="Paracetamol", quantity=20, **kw):
        kw.setdefault("hospital_id", hospital.id)
        kw.setdefault("category", "tablet")
        kw.setdefault("selling_price", Decimal("2.50"))
        kw.setdefault("expiry_date", date.today() + timedelta(days=365))
        return await _add(db, InventoryItem(item_name=item_name, quantity=quantity, **kw))

    return _make


# ---------- HTTP ----------


@pytest.fixture
def auth_headers(hospital):
    return {"Authorization": f"Bearer {make_token(hospital.id)}"}


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides = {}
