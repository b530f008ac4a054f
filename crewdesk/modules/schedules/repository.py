import uuid
from datetime import date
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from crewdesk.modules.schedules.models import DaySchedule

class DayScheduleRepository:
    def __init__(self, s: AsyncSession): self.s = s

    async def create(self, **data) -> DaySchedule:
        obj = DaySchedule(**data); self.s.add(obj); await self.s.flush(); return obj

    async def get(self, schedule_id: uuid.UUID, *, for_update: bool = False) -> DaySchedule | None:
        q = select(DaySchedule).where(DaySchedule.id == schedule_id, DaySchedule.deleted_at.is_(None))
        if for_update:
            q = q.with_for_update().execution_options(populate_existing=True)
        res = await self.s.execute(q)
        return res.scalar_one_or_none()

    async def get_for_day(self, department_id: uuid.UUID, day: date) -> DaySchedule | None:
        res = await self.s.execute(select(DaySchedule).where(
            DaySchedule.department_id == department_id,
            DaySchedule.date == day,
            DaySchedule.deleted_at.is_(None),
        ))
        return res.scalars().first()

    async def list_in_range(self, department_id: uuid.UUID, start: date, end: date) -> Sequence[DaySchedule]:
        """Live schedules with start <= date <= end."""
        res = await self.s.execute(select(DaySchedule).where(and_(
            DaySchedule.department_id == department_id,
            DaySchedule.date >= start,
            DaySchedule.date <= end,
            DaySchedule.deleted_at.is_(None),
        )).order_by(DaySchedule.date.asc()))
        return res.scalars().all()

    async def existing_dates(self, department_id: uuid.UUID, days: list[date]) -> list[date]:
        if not days:
            return []
        res = await self.s.execute(select(DaySchedule.date).where(
            DaySchedule.department_id == department_id,
            DaySchedule.date.in_(days),
            DaySchedule.deleted_at.is_(None),
        ))
        return sorted(res.scalars().all())
