import uuid
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from crewdesk.modules.departments.models import Department, DepartmentCategory, AppointmentType

class DepartmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, department_id: uuid.UUID) -> Department | None:
        q = select(Department).where(and_(Department.id == department_id, Department.deleted_at.is_(None)))
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list(self, *, category_id: uuid.UUID | None = None) -> Sequence[Department]:
        cond = [Department.deleted_at.is_(None)]
        if category_id:
            cond.append(Department.category_id == category_id)
        res = await self.session.execute(select(Department).where(and_(*cond)).order_by(Department.name.asc()))
        return res.scalars().all()

    async def get_category_by_name(self, name: str) -> DepartmentCategory | None:
        res = await self.session.execute(select(DepartmentCategory).where(DepartmentCategory.name == name))
        return res.scalars().first()

    async def get_by_name(self, name: str) -> Department | None:
        res = await self.session.execute(select(Department).where(Department.name == name, Department.deleted_at.is_(None)))
        return res.scalars().first()


class AppointmentTypeRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> AppointmentType:
        obj = AppointmentType(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, type_id: uuid.UUID) -> AppointmentType | None:
        q = select(AppointmentType).where(and_(AppointmentType.id == type_id, AppointmentType.deleted_at.is_(None)))
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list_for_department(self, department_id: uuid.UUID, *, active_only: bool = True) -> Sequence[AppointmentType]:
        cond = [AppointmentType.department_id == department_id, AppointmentType.deleted_at.is_(None)]
        if active_only:
            cond.append(AppointmentType.is_active.is_(True))
        res = await self.session.execute(select(AppointmentType).where(and_(*cond)).order_by(AppointmentType.name.asc()))
        return res.scalars().all()
