import uuid
from pydantic import BaseModel, ConfigDict, Field

class DepartmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    name: str
    category_id: uuid.UUID | None = None

class AppointmentTypeCreate(BaseModel):
    department_id: uuid.UUID
    name: str = Field(min_length=1, max_length=120)

class AppointmentTypeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    department_id: uuid.UUID
    name: str
    is_active: bool
