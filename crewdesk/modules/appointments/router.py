import uuid
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from crewdesk.core.db import get_session
from crewdesk.core.security import get_principal, Principal, require_scopes
from crewdesk.modules.appointments.schemas import AppointmentCreate, AppointmentCancel, AppointmentOut
from crewdesk.modules.appointments.service import BookingService

router = APIRouter()

STATUS_PATTERN = "^(pending|confirmed|cancelled)$"

def svc(session: AsyncSession = Depends(get_session)) -> BookingService:
    return BookingService(session)

# ---- Crew ----

@router.post("/appointments", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_scopes("appointments:write"))])
async def book_appointment(
    payload: AppointmentCreate,
    principal: Principal = Depends(get_principal),
    service: BookingService = Depends(svc),
):
    return await service.create(principal, payload)

@router.get("/appointments/mine", response_model=list[AppointmentOut], dependencies=[Depends(require_scopes("appointments:read"))])
async def my_appointments(
    status: str | None = Query(default=None, pattern=STATUS_PATTERN),
    limit: int = Query(50, ge=1, le=200), offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    service: BookingService = Depends(svc),
):
    return await service.list_for_crew(principal, status, limit=limit, offset=offset)

@router.get("/appointments/{appointment_id}", response_model=AppointmentOut, dependencies=[Depends(require_scopes("appointments:read"))])
async def get_appointment(
    appointment_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: BookingService = Depends(svc),
):
    return await service.get(principal, appointment_id)

@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentOut, dependencies=[Depends(require_scopes("appointments:write"))])
async def cancel_appointment(
    appointment_id: uuid.UUID,
    payload: AppointmentCancel,
    principal: Principal = Depends(get_principal),
    service: BookingService = Depends(svc),
):
    return await service.cancel(principal, appointment_id, payload.reason)

# ---- Staff ----

@router.get("/admin/appointments", response_model=list[AppointmentOut], dependencies=[Depends(require_scopes("appointments:admin"))])
async def list_appointments(
    status: str | None = Query(default=None, pattern=STATUS_PATTERN),
    department_id: uuid.UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = Query(50, ge=1, le=200), offset: int = Query(0, ge=0),
    service: BookingService = Depends(svc),
):
    return await service.list_all(status=status, department_id=department_id, date_from=date_from,
                                  date_to=date_to, limit=limit, offset=offset)

@router.post("/admin/appointments/{appointment_id}/confirm", response_model=AppointmentOut, dependencies=[Depends(require_scopes("appointments:admin"))])
async def confirm_appointment(
    appointment_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: BookingService = Depends(svc),
):
    return await service.confirm(principal, appointment_id)

@router.post("/admin/appointments/{appointment_id}/cancel", response_model=AppointmentOut, dependencies=[Depends(require_scopes("appointments:admin"))])
async def staff_cancel_appointment(
    appointment_id: uuid.UUID,
    payload: AppointmentCancel,
    principal: Principal = Depends(get_principal),
    service: BookingService = Depends(svc),
):
    return await service.cancel(principal, appointment_id, payload.reason)
