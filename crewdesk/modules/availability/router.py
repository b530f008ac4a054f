from datetime import date
import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from crewdesk.core.db import get_session
from crewdesk.core.security import require_scopes
from crewdesk.modules.availability.service import SlotAllocator, ScheduleCalendarService
from crewdesk.modules.availability.schemas import SlotOut, MonthViewOut, CalendarDayOut

router = APIRouter()

@router.get("/appointments/calendar", response_model=MonthViewOut, dependencies=[Depends(require_scopes("appointments:read"))])
async def month_calendar(department_id: uuid.UUID, month: str, s: AsyncSession = Depends(get_session)):
    return await ScheduleCalendarService(s).month_view(department_id, month)

@router.get("/appointments/slots", response_model=list[SlotOut], dependencies=[Depends(require_scopes("appointments:read"))])
async def day_slots(department_id: uuid.UUID, date: date, s: AsyncSession = Depends(get_session)):
    slots = await SlotAllocator(s).day_slots(department_id, date)
    return [{"time": sl.start, "end_time": sl.end, "capacity_remaining": sl.capacity_remaining} for sl in slots]

@router.get("/admin/appointments/calendar", response_model=list[CalendarDayOut],
            dependencies=[Depends(require_scopes("appointments:admin"))])
async def staff_calendar(department_id: uuid.UUID, month: str, s: AsyncSession = Depends(get_session)):
    return await ScheduleCalendarService(s).day_summaries(department_id, month)
