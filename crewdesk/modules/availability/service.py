import uuid
import logging
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession
from crewdesk.core.clock import Clock, now_local
from crewdesk.core.errors import ValidationError
from crewdesk.modules.availability import slots as slot_math
from crewdesk.modules.availability.slots import TimeSlot
from crewdesk.modules.appointments.repository import AppointmentRepository
from crewdesk.modules.schedules.repository import DayScheduleRepository

logger = logging.getLogger(__name__)

class SlotAllocator:
    """Answers "what can be booked on this day, right now"."""

    def __init__(self, s: AsyncSession, clock: Clock = now_local):
        self.s = s
        self.clock = clock
        self.schedules = DayScheduleRepository(s)
        self.appts = AppointmentRepository(s)

    async def day_slots(self, department_id: uuid.UUID, day: date) -> list[TimeSlot]:
        now = self.clock()
        today = now.date()
        if day < today:
            return []
        schedule = await self.schedules.get_for_day(department_id, day)
        if schedule is None:
            return []
        booked = await self.appts.count_live_by_slot(department_id, day)
        out = schedule.shape().remaining(booked)
        if day == today:
            out = [s for s in out if s.start >= now.time()]
        return out


class ScheduleCalendarService:
    def __init__(self, s: AsyncSession):
        self.s = s
        self.schedules = DayScheduleRepository(s)
        self.appts = AppointmentRepository(s)

    async def month_view(self, department_id: uuid.UUID, year_month: str) -> dict:
        year, month = self._parse(year_month)
        blanks = slot_math.leading_blanks(year, month)
        cells: list[dict | None] = [None] * blanks
        cells.extend(await self._day_cells(department_id, year, month))
        return {"department_id": department_id, "month": f"{year:04d}-{month:02d}", "leading_blanks": blanks, "cells": cells}

    async def day_summaries(self, department_id: uuid.UUID, year_month: str) -> list[dict]:
        """Flat per-day counts for the staff calendar; no grid padding."""
        year, month = self._parse(year_month)
        return await self._day_cells(department_id, year, month)

    @staticmethod
    def _parse(year_month: str) -> tuple[int, int]:
        try:
            return slot_math.parse_year_month(year_month)
        except ValueError as e:
            raise ValidationError(str(e), field="month")

    async def _day_cells(self, department_id: uuid.UUID, year: int, month: int) -> list[dict]:
        days = slot_math.month_days(year, month)
        schedules = {sc.date: sc for sc in await self.schedules.list_in_range(department_id, days[0], days[-1])}
        counts = await self.appts.count_live_in_range(department_id, days[0], days[-1])
        cancelled = await self.appts.count_cancelled_in_range(department_id, days[0], days[-1])

        cells = []
        for d in days:
            sc = schedules.get(d)
            booked = counts.get(d, {})
            if sc is None:
                total = available = 0
            else:
                shape = sc.shape()
                total = shape.total_slots
                available = shape.available_slots(booked)
            cells.append({
                "date": d,
                "total_slots": total,
                "booked_slots": sum(booked.values()),
                "cancelled_slots": cancelled.get(d, 0),
                "available_slots": available,
                "derived_status": slot_math.classify_day(total, available, has_schedule=sc is not None),
            })
        logger.debug(f"Day cells {year:04d}-{month:02d} for department {department_id}: {len(schedules)} scheduled days")
        return cells
