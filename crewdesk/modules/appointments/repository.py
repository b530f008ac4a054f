import uuid
from collections import defaultdict
from datetime import date, time
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func, text
from crewdesk.modules.appointments.models import Appointment, LIVE_STATUSES, CANCELLED

def day_lock_key(department_id: uuid.UUID, day: date) -> tuple[int, int]:
    # two signed int4s for pg_advisory_xact_lock(int, int)
    k1 = int.from_bytes(department_id.bytes[:4], "big", signed=True)
    k2 = day.toordinal()
    return k1, k2

class AppointmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def _dialect(self) -> str:
        return self.session.get_bind().dialect.name

    async def create(self, **data) -> Appointment:
        obj = Appointment(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, appt_id: uuid.UUID, *, for_update: bool = False) -> Appointment | None:
        q = select(Appointment).where(
            and_(Appointment.id == appt_id,
                 Appointment.deleted_at.is_(None))
        )
        if for_update:
            # a locked read must not be served from the identity map
            q = q.with_for_update().execution_options(populate_existing=True)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def lock_day(self, department_id: uuid.UUID, day: date) -> None:
        """Transaction-scoped lock on one department day; released on commit/rollback.

        Taken by bookings and by schedule edits for that day.
        """
        if self._dialect() != "postgresql":
            return
        k1, k2 = day_lock_key(department_id, day)
        await self.session.execute(text("SELECT pg_advisory_xact_lock(:k1, :k2)"), {"k1": k1, "k2": k2})

    async def count_live_by_slot(self, department_id: uuid.UUID, day: date) -> dict[time, int]:
        res = await self.session.execute(
            select(Appointment.time, func.count(Appointment.id)).where(
                Appointment.department_id == department_id,
                Appointment.date == day,
                Appointment.status.in_(LIVE_STATUSES),
                Appointment.deleted_at.is_(None),
            ).group_by(Appointment.time)
        )
        return {t: n for t, n in res.all()}

    async def count_live_in_range(self, department_id: uuid.UUID, start: date, end: date) -> dict[date, dict[time, int]]:
        res = await self.session.execute(
            select(Appointment.date, Appointment.time, func.count(Appointment.id)).where(
                Appointment.department_id == department_id,
                Appointment.date >= start,
                Appointment.date <= end,
                Appointment.status.in_(LIVE_STATUSES),
                Appointment.deleted_at.is_(None),
            ).group_by(Appointment.date, Appointment.time)
        )
        out: dict[date, dict[time, int]] = defaultdict(dict)
        for d, t, n in res.all():
            out[d][t] = n
        return dict(out)

    async def count_cancelled_in_range(self, department_id: uuid.UUID, start: date, end: date) -> dict[date, int]:
        res = await self.session.execute(
            select(Appointment.date, func.count(Appointment.id)).where(
                Appointment.department_id == department_id,
                Appointment.date >= start,
                Appointment.date <= end,
                Appointment.status == CANCELLED,
                Appointment.deleted_at.is_(None),
            ).group_by(Appointment.date)
        )
        return {d: n for d, n in res.all()}

    async def list(self, *, crew_id: uuid.UUID | None = None, department_id: uuid.UUID | None = None,
                   status: str | None = None, date_from: date | None = None, date_to: date | None = None,
                   limit: int = 50, offset: int = 0) -> Sequence[Appointment]:
        cond = [Appointment.deleted_at.is_(None)]
        if crew_id:
            cond.append(Appointment.crew_id == crew_id)
        if department_id:
            cond.append(Appointment.department_id == department_id)
        if status:
            cond.append(Appointment.status == status)
        if date_from:
            cond.append(Appointment.date >= date_from)
        if date_to:
            cond.append(Appointment.date <= date_to)
        q = (select(Appointment).where(and_(*cond))
             .order_by(Appointment.date.desc(), Appointment.time.desc())
             .limit(limit).offset(offset))
        res = await self.session.execute(q)
        return res.scalars().all()
