import os
import tempfile
from decimal import Decimal
from pathlib import Path

# settings are read at import time, so the environment goes first
TEST_DB = Path(tempfile.gettempdir()) / f"royaltymeds-test-{os.getpid()}.db"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["CLOUDINARY_CLOUD_NAME"] = "test-cloud"
os.environ["CLOUDINARY_API_KEY"] = "test-key"
os.environ["CLOUDINARY_API_SECRET"] = "test-api-secret"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from httpx import ASGITransport, AsyncClient

from royaltymeds.core.db import Base, SessionLocal, engine
from royaltymeds.core.security import create_access_token, hash_password
from royaltymeds.main import app
from royaltymeds.models import Drug, User
from royaltymeds.models.user import RoleEnum
from royaltymeds.api.v1 import admin_prescriptions, doctor_prescriptions, orders, patient_prescriptions

PASSWORD = "secret123"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
async def db_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def session(db_schema):
    async with SessionLocal() as s:
        yield s


@pytest.fixture
async def client(db_schema):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def uploads(monkeypatch):
    """Replaces Cloudinary; returns the list of (folder, filename) uploaded."""
    calls = []

    def fake_upload(file_bytes, folder, filename=None):
        calls.append((folder, filename))
        n = len(calls)
        return f"https://res.cloudinary.test/{folder}/file-{n}", f"{folder}/file-{n}"

    for module in (patient_prescriptions, doctor_prescriptions, admin_prescriptions, orders):
        monkeypatch.setattr(module, "upload_document", fake_upload)
    monkeypatch.setattr(doctor_prescriptions, "destroy", lambda public_id: calls.append(("destroy", public_id)))
    return calls


async def _make_user(session, role: RoleEnum, email: str, full_name: str) -> User:
    user = User(email=email, full_name=full_name, role=role, hashed_password=PASSWORD_HASH)
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def admin(session):
    return await _make_user(session, RoleEnum.admin, "pharmacist@royaltymeds.com", "Paula Pharmacist")


@pytest.fixture
async def patient(session):
    return await _make_user(session, RoleEnum.patient, "patient@royaltymeds.com", "Pat Patient")


@pytest.fixture
async def other_patient(session):
    return await _make_user(session, RoleEnum.patient, "other@royaltymeds.com", "Olive Other")


@pytest.fixture
async def doctor(session):
    return await _make_user(session, RoleEnum.doctor, "doctor@royaltymeds.com", "Dana Doctor")


def auth(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(subject=user.id, extra={'role': user.role.value})}"}


@pytest.fixture
def make_drug(session):
    async def _make(**kw) -> Drug:
        n = kw.pop("n", 1)
        values = dict(
            name=f"Drug {n}",
            sku=f"SKU-{n:04d}",
            category="Pain Relief",
            unit_price=Decimal("20.00"),
            is_on_sale=False,
            pharm_confirm=False,
            quantity_on_hand=100,
        )
        values.update(kw)
        drug = Drug(**values)
        session.add(drug)
        await session.commit()
        return drug
    return _make
