import os
import tempfile
import uuid
from dataclasses import dataclass
from datetime import datetime, date, time, timedelta, timezone

# Settings are read at import time; point them at a throwaway sqlite file first.
_tmpdir = tempfile.mkdtemp(prefix="crewdesk-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmpdir}/default.db"
os.environ["ENV"] = "test"
os.environ["TIMEZONE"] = "UTC"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["QR_TOKEN_SECRET"] = "test-qr-secret"
os.environ["PUBLIC_APP_URL"] = "https://crew.example.test"
os.environ["EVENT_BUS_PROVIDER"] = "noop"

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from crewdesk.core.base import Base
from crewdesk.core.db import register_models
from crewdesk.core.locks import KeyedLocks
from crewdesk.core.security import Principal
from crewdesk.modules.departments.models import Department, DepartmentCategory, AppointmentType
from crewdesk.modules.schedules.models import DaySchedule

register_models()


class FakeClock:
    """Settable stand-in for now_local()."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def utc(y, m, d, hh=0, mm=0, ss=0) -> datetime:
    return datetime(y, m, d, hh, mm, ss, tzinfo=timezone.utc)


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/crewdesk.db")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def clock():
    # the day before the scenario date, mid-day
    return FakeClock(utc(2025, 3, 9, 12, 0))


@pytest.fixture
def locks():
    return {"day_guard": KeyedLocks(), "appointment_guard": KeyedLocks()}


@pytest.fixture
def crew():
    return Principal(user_id=uuid.uuid4(), roles=["crew"], scopes=["appointments:read", "appointments:write"])


@pytest.fixture
def other_crew():
    return Principal(user_id=uuid.uuid4(), roles=["crew"], scopes=["appointments:read", "appointments:write"])


@pytest.fixture
def staff():
    return Principal(user_id=uuid.uuid4(), roles=["staff"], scopes=["appointments:admin", "schedules:write"])


@dataclass(frozen=True)
class Seed:
    department_id: uuid.UUID
    type_id: uuid.UUID
    retired_type_id: uuid.UUID


@pytest.fixture
async def seed(session) -> Seed:
    # plain ids: a service rollback expires every instance in the session
    category = DepartmentCategory(name="Crew Services")
    session.add(category)
    await session.flush()
    dept = Department(name="Crew Management", category_id=category.id)
    session.add(dept)
    await session.flush()
    active = AppointmentType(department_id=dept.id, name="Contract Signing")
    retired = AppointmentType(department_id=dept.id, name="Retired Type", is_active=False)
    session.add_all([active, retired])
    await session.commit()
    return Seed(department_id=dept.id, type_id=active.id, retired_type_id=retired.id)


@pytest.fixture
def add_schedule(session):
    async def _add(department_id, day: date, opening=time(8, 0), closing=time(12, 0),
                   minutes: int = 30, capacity: int = 1) -> DaySchedule:
        sc = DaySchedule(department_id=department_id, date=day, opening_time=opening, closing_time=closing,
                         slot_duration_minutes=minutes, slot_capacity=capacity)
        session.add(sc)
        await session.commit()
        return sc
    return _add
