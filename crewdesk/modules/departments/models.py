import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Boolean, ForeignKey
from crewdesk.core.base import Base, TimestampedMixin

class DepartmentCategory(Base, TimestampedMixin):
    __tablename__ = "department_category"
    name: Mapped[str] = mapped_column(String(120), unique=True)

class Department(Base, TimestampedMixin):
    name: Mapped[str] = mapped_column(String(160), index=True)
    category_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("department_category.id"), nullable=True)

class AppointmentType(Base, TimestampedMixin):
    __tablename__ = "appointment_type"
    department_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("department.id"), index=True)
    name: Mapped[str] = mapped_column(String(120))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
