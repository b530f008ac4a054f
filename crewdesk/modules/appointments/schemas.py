from pydantic import BaseModel, ConfigDict, Field
import uuid
import datetime as dt
from typing import Literal

AppointmentStatus = Literal["pending", "confirmed", "cancelled"]

# ---- Appointments ----

class AppointmentCreate(BaseModel):
    department_id: uuid.UUID
    appointment_type_id: uuid.UUID
    date: dt.date
    time: dt.time
    purpose: str = Field(max_length=2000)
    crew_id: uuid.UUID | None = None  # staff booking on behalf of a crew member

class AppointmentCancel(BaseModel):
    reason: str = Field(max_length=2000)

class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    crew_id: uuid.UUID
    department_id: uuid.UUID
    appointment_type_id: uuid.UUID
    date: dt.date
    time: dt.time
    purpose: str
    status: AppointmentStatus
    confirmed_at: dt.datetime | None = None
    cancellation_reason: str | None = None
    cancelled_at: dt.datetime | None = None
    cancelled_by_type: str | None = None
    created_at: dt.datetime | None = None
