import uuid
import datetime as dt
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Date, Time, Integer, ForeignKey
from crewdesk.core.base import Base, TimestampedMixin
from crewdesk.core.config import settings
from crewdesk.modules.availability.slots import DayShape

# One operating day for a department; opening/closing/duration fall back to settings when unset
class DaySchedule(Base, TimestampedMixin):
    __tablename__ = "day_schedule"
    department_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("department.id"), index=True)
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    opening_time: Mapped[dt.time | None] = mapped_column(Time, nullable=True)
    closing_time: Mapped[dt.time | None] = mapped_column(Time, nullable=True)
    slot_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    slot_capacity: Mapped[int] = mapped_column(Integer, default=1)  # per slot

    def shape(self) -> DayShape:
        return DayShape(
            opening=self.opening_time or settings.DEFAULT_OPENING_TIME,
            closing=self.closing_time or settings.DEFAULT_CLOSING_TIME,
            slot_minutes=self.slot_duration_minutes or settings.DEFAULT_SLOT_MINUTES,
            slot_capacity=self.slot_capacity,
        )

    @property
    def total_slots(self) -> int:
        return self.shape().total_slots
