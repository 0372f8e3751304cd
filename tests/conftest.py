import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENV", "test")

from datetime import datetime, timedelta

import httpx
import pytest
import pytest_asyncio

from medvisit.core.db import get_session, init_db, make_engine, make_session_maker
from medvisit.core.permission import Principal
from medvisit.main import app
from medvisit.models.appointment import Appointment, AppointmentStatus
from medvisit.models.schedule import AvailabilityRule, RuleKind
from medvisit.models.user import Role, User, UserCreate
from medvisit.services.auth_service import create_user
from medvisit.services.doctor_service import create_doctor

PATIENT = {"full_name": "Ann Patient", "gender": "F", "age": 34}


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'medvisit.db'}")
    await init_db(bind=eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_maker(engine):
    return make_session_maker(engine)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as s:
        yield s


@pytest_asyncio.fixture
async def client(session_maker):
    async def override_get_session():
        async with session_maker() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def add_user(session, email: str, role: Role = Role.PATIENT, doctor_id: int | None = None) -> User:
    return await create_user(
        session,
        UserCreate(email=email, password="secret123", full_name=email.split("@")[0].title(), role=role, doctor_id=doctor_id),
    )


async def add_doctor_with_user(session, email: str = "house@example.com"):
    doctor = await create_doctor(session, "Gregory House", "Diagnostics")
    user = await add_user(session, email, Role.DOCTOR, doctor.id)
    return doctor, user


def weekday_rule(doctor_id: int, date_from: str, date_to: str, start="09:00", end="12:00", days=(1, 2, 3, 4, 5)):
    return AvailabilityRule(
        doctor_id=doctor_id,
        kind=RuleKind.RECURRING,
        date_from=date_from,
        date_to=date_to,
        days_of_week=list(days),
        time_ranges=[{"start": start, "end": end}],
    )


def make_appointment(doctor_id: int, patient_id: int, start: datetime, minutes: int = 30, status=AppointmentStatus.CONFIRMED):
    return Appointment(
        doctor_id=doctor_id,
        patient_id=patient_id,
        start_at=start,
        end_at=start + timedelta(minutes=minutes),
        status=status,
        visit_type="consultation",
        patient_snapshot=dict(PATIENT),
    )


def principal_for(user: User) -> Principal:
    return Principal(subject_id=user.id, role=user.role, doctor_id=user.doctor_id)


async def login(client: httpx.AsyncClient, email: str, password: str = "secret123") -> dict[str, str]:
    r = await client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}
