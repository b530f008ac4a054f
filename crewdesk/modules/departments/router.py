import uuid
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from crewdesk.core.db import get_session
from crewdesk.core.errors import NotFoundError
from crewdesk.core.security import require_scopes
from crewdesk.modules.departments.repository import DepartmentRepository, AppointmentTypeRepository
from crewdesk.modules.departments.schemas import DepartmentOut, AppointmentTypeCreate, AppointmentTypeOut

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/departments", response_model=list[DepartmentOut], dependencies=[Depends(require_scopes("appointments:read"))])
async def list_departments(category_id: uuid.UUID | None = None, s: AsyncSession = Depends(get_session)):
    return await DepartmentRepository(s).list(category_id=category_id)

@router.get("/departments/{department_id}/appointment-types", response_model=list[AppointmentTypeOut], dependencies=[Depends(require_scopes("appointments:read"))])
async def list_department_types(department_id: uuid.UUID, s: AsyncSession = Depends(get_session)):
    return await AppointmentTypeRepository(s).list_for_department(department_id)

@router.get("/admin/appointment-types", response_model=list[AppointmentTypeOut], dependencies=[Depends(require_scopes("appointments:admin"))])
async def list_all_types(department_id: uuid.UUID, s: AsyncSession = Depends(get_session)):
    return await AppointmentTypeRepository(s).list_for_department(department_id, active_only=False)

@router.post("/admin/appointment-types", response_model=AppointmentTypeOut, dependencies=[Depends(require_scopes("appointments:admin"))])
async def create_type(payload: AppointmentTypeCreate, s: AsyncSession = Depends(get_session)):
    if not await DepartmentRepository(s).get(payload.department_id):
        raise NotFoundError("Department not found")
    obj = await AppointmentTypeRepository(s).create(department_id=payload.department_id, name=payload.name.strip())
    await s.commit()
    logger.info(f"Appointment type {obj.id} created for department {obj.department_id}")
    return obj

@router.patch("/admin/appointment-types/{type_id}/toggle", response_model=AppointmentTypeOut, dependencies=[Depends(require_scopes("appointments:admin"))])
async def toggle_type(type_id: uuid.UUID, s: AsyncSession = Depends(get_session)):
    obj = await AppointmentTypeRepository(s).get(type_id)
    if not obj:
        raise NotFoundError("Appointment type not found")
    obj.is_active = not obj.is_active
    await s.commit()
    return obj
