import uuid
import datetime as dt
from pydantic import BaseModel

class SlotOut(BaseModel):
    time: dt.time
    end_time: dt.time
    capacity_remaining: int

class CalendarDayOut(BaseModel):
    date: dt.date
    total_slots: int
    booked_slots: int
    cancelled_slots: int
    available_slots: int
    derived_status: str  # available | limited | full | no_slots

class MonthViewOut(BaseModel):
    department_id: uuid.UUID
    month: str
    leading_blanks: int
    cells: list[CalendarDayOut | None]
