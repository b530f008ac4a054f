import uuid
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from crewdesk.core.clock import Clock, now_local
from crewdesk.core.locks import KeyedLocks, day_locks
from crewdesk.core.errors import ValidationError, InvalidStateError, NotFoundError
from crewdesk.modules.availability import slots as slot_math
from crewdesk.modules.availability.slots import DayShape
from crewdesk.modules.schedules.models import DaySchedule
from crewdesk.modules.schedules.repository import DayScheduleRepository
from crewdesk.modules.schedules.schemas import ScheduleCreate, ScheduleUpdate, MAX_BULK_DAYS
from crewdesk.modules.departments.repository import DepartmentRepository
from crewdesk.modules.appointments.repository import AppointmentRepository
from crewdesk.modules.events.outbox import OutboxService

logger = logging.getLogger(__name__)

def _check_shape(shape: DayShape) -> None:
    if shape.opening >= shape.closing:
        raise ValidationError("Opening time must be before closing time.", field="closing_time")
    if not shape.windows():
        raise ValidationError("Opening hours are shorter than one slot.", field="slot_duration_minutes")

class DayScheduleService:
    def __init__(self, s: AsyncSession, clock: Clock = now_local, day_guard: KeyedLocks = day_locks):
        self.s = s
        self.clock = clock
        self.day_guard = day_guard
        self.repo = DayScheduleRepository(s)
        self.appts = AppointmentRepository(s)
        self.departments = DepartmentRepository(s)

    async def create(self, payload: ScheduleCreate) -> list[DaySchedule]:
        if not await self.departments.get(payload.department_id):
            raise ValidationError("Unknown department.", field="department_id")
        days = payload.target_dates()
        if not days:
            raise ValidationError("End date must be the same as or later than start date.", field="end_date")
        if len(days) > MAX_BULK_DAYS:
            raise ValidationError(f"At most {MAX_BULK_DAYS} days per request.", field="end_date")
        if days[0] < self.clock().date():
            raise ValidationError("Schedules cannot be created for past dates.", field="date")
        taken = await self.repo.existing_dates(payload.department_id, days)
        if taken:
            raise ValidationError(
                "A schedule already exists for some of these dates.",
                field="dates", details={"conflicts": [d.isoformat() for d in taken]},
            )
        shape = payload.model_dump(include={"opening_time", "closing_time", "slot_duration_minutes", "slot_capacity"})
        _check_shape(DaySchedule(**shape).shape())
        created = []
        for d in days:
            created.append(await self.repo.create(department_id=payload.department_id, date=d, **shape))
        await OutboxService(self.s).enqueue(
            "SCHEDULE_CREATED", "department", payload.department_id, {"dates": [d.isoformat() for d in days]}
        )
        await self.s.commit()
        logger.info(f"Created {len(created)} day schedule(s) for department {payload.department_id}")
        return created

    async def get(self, schedule_id: uuid.UUID) -> DaySchedule:
        obj = await self.repo.get(schedule_id)
        if not obj:
            raise NotFoundError("Schedule not found")
        return obj

    async def update(self, schedule_id: uuid.UUID, payload: ScheduleUpdate) -> DaySchedule:
        obj = await self.get(schedule_id)
        data = payload.model_dump(exclude_unset=True)
        if data.get("slot_capacity") is None:
            data.pop("slot_capacity", None)
        key = (obj.department_id, obj.date)
        # bookings on this day hold the same key while they check capacity
        async with self.day_guard.hold(key):
            try:
                await self.appts.lock_day(*key)
                obj = await self._get_locked(schedule_id)
                for k, v in data.items():
                    setattr(obj, k, v)
                _check_shape(obj.shape())
                booked = await self.appts.count_live_by_slot(*key)
                stranded = obj.shape().stranded(booked)
                if stranded:
                    raise InvalidStateError(
                        "Change would leave existing bookings without a slot.",
                        details={"times": [t.strftime("%H:%M") for t in stranded]},
                    )
                await OutboxService(self.s).enqueue("SCHEDULE_UPDATED", "schedule", obj.id, {"date": obj.date.isoformat()})
                await self.s.commit()
            except Exception:
                await self.s.rollback()
                raise
        logger.info(f"Day schedule {schedule_id} updated")
        return obj

    async def delete(self, schedule_id: uuid.UUID) -> None:
        obj = await self.get(schedule_id)
        key = (obj.department_id, obj.date)
        async with self.day_guard.hold(key):
            try:
                await self.appts.lock_day(*key)
                obj = await self._get_locked(schedule_id)
                booked = await self.appts.count_live_by_slot(*key)
                if any(booked.values()):
                    raise InvalidStateError("Cancel the day's bookings before deleting its schedule.",
                                            details={"bookings": sum(booked.values())})
                obj.deleted_at = self.clock()
                await OutboxService(self.s).enqueue("SCHEDULE_DELETED", "schedule", obj.id, {"date": obj.date.isoformat()})
                await self.s.commit()
            except Exception:
                await self.s.rollback()
                raise
        logger.info(f"Day schedule {schedule_id} deleted")

    async def _get_locked(self, schedule_id: uuid.UUID) -> DaySchedule:
        # re-read under the day lock; a concurrent delete may have won
        obj = await self.repo.get(schedule_id, for_update=True)
        if not obj:
            raise NotFoundError("Schedule not found")
        return obj


    async def list_month(self, department_id: uuid.UUID, year_month: str):
        try:
            year, month = slot_math.parse_year_month(year_month)
        except ValueError as e:
            raise ValidationError(str(e), field="month")
        days = slot_math.month_days(year, month)
        return await self.repo.list_in_range(department_id, days[0], days[-1])
