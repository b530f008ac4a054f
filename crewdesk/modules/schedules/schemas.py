import uuid
import datetime as dt
from pydantic import BaseModel, ConfigDict, Field, model_validator

MAX_BULK_DAYS = 366

class ScheduleShape(BaseModel):
    opening_time: dt.time | None = None
    closing_time: dt.time | None = None
    slot_duration_minutes: int | None = Field(default=None, ge=5, le=240)
    slot_capacity: int = Field(default=1, ge=1, le=500)

class ScheduleCreate(ScheduleShape):
    """One of: ``date``, ``dates`` or ``start_date``..``end_date``."""
    department_id: uuid.UUID
    date: dt.date | None = None
    dates: list[dt.date] | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None

    @model_validator(mode="after")
    def _one_mode(self):
        modes = [self.date is not None, bool(self.dates), self.start_date is not None or self.end_date is not None]
        if sum(modes) != 1:
            raise ValueError("provide exactly one of date, dates, or start_date/end_date")
        if modes[2] and (self.start_date is None or self.end_date is None):
            raise ValueError("start_date and end_date are both required for a range")
        return self

    def target_dates(self) -> list[dt.date]:
        if self.date is not None:
            return [self.date]
        if self.dates:
            return sorted(set(self.dates))
        span = (self.end_date - self.start_date).days
        return [self.start_date + dt.timedelta(days=i) for i in range(span + 1)]

class ScheduleUpdate(BaseModel):
    opening_time: dt.time | None = None
    closing_time: dt.time | None = None
    slot_duration_minutes: int | None = Field(default=None, ge=5, le=240)
    slot_capacity: int | None = Field(default=None, ge=1, le=500)

class ScheduleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    department_id: uuid.UUID
    date: dt.date
    opening_time: dt.time | None = None
    closing_time: dt.time | None = None
    slot_duration_minutes: int | None = None
    slot_capacity: int
    total_slots: int
