from fastapi import APIRouter
from crewdesk.modules.departments.router import router as departments_router
from crewdesk.modules.availability.router import router as availability_router
from crewdesk.modules.schedules.router import router as schedules_router
from crewdesk.modules.appointments.router import router as appointments_router
from crewdesk.modules.qr.router import router as qr_router

api_router = APIRouter()
api_router.include_router(departments_router, tags=["departments"])
# availability before appointments: /appointments/calendar must not match /appointments/{appointment_id}
api_router.include_router(availability_router, tags=["availability"])
api_router.include_router(schedules_router, tags=["schedules"])
api_router.include_router(appointments_router, tags=["appointments"])
api_router.include_router(qr_router, tags=["qr"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
