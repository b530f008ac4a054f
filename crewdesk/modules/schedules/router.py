import uuid
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from crewdesk.core.db import get_session
from crewdesk.core.security import require_scopes
from crewdesk.modules.schedules.service import DayScheduleService
from crewdesk.modules.schedules.schemas import ScheduleCreate, ScheduleUpdate, ScheduleOut

router = APIRouter()

def svc(s: AsyncSession = Depends(get_session)) -> DayScheduleService:
    return DayScheduleService(s)

@router.post("/admin/department-schedules", response_model=list[ScheduleOut], status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_scopes("schedules:write"))])
async def create_schedules(payload: ScheduleCreate, service: DayScheduleService = Depends(svc)):
    return await service.create(payload)

@router.get("/admin/department-schedules", response_model=list[ScheduleOut], dependencies=[Depends(require_scopes("schedules:read"))])
async def list_schedules(department_id: uuid.UUID, month: str, service: DayScheduleService = Depends(svc)):
    return await service.list_month(department_id, month)

@router.put("/admin/department-schedules/{schedule_id}", response_model=ScheduleOut, dependencies=[Depends(require_scopes("schedules:write"))])
async def update_schedule(schedule_id: uuid.UUID, payload: ScheduleUpdate, service: DayScheduleService = Depends(svc)):
    return await service.update(schedule_id, payload)

@router.delete("/admin/department-schedules/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_scopes("schedules:write"))])
async def delete_schedule(schedule_id: uuid.UUID, service: DayScheduleService = Depends(svc)):
    await service.delete(schedule_id)
