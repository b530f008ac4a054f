import uuid
import datetime as dt
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, TIMESTAMP, Date, Time, Integer, ForeignKey, Index
from crewdesk.core.base import Base, TimestampedMixin

PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"

LIVE_STATUSES = (PENDING, CONFIRMED)

class Appointment(Base, TimestampedMixin):
    __table_args__ = (Index("ix_appointment_slot", "department_id", "date", "time"),)

    crew_id: Mapped[uuid.UUID] = mapped_column(index=True)
    department_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("department.id"))
    appointment_type_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("appointment_type.id"))

    # Slot
    date: Mapped[dt.date] = mapped_column(Date)
    time: Mapped[dt.time] = mapped_column(Time)
    purpose: Mapped[str] = mapped_column(Text)

    status: Mapped[str] = mapped_column(String(16), default=PENDING)  # pending, confirmed, cancelled

    confirmed_at: Mapped[dt.datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    confirmed_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)

    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[dt.datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    cancelled_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    cancelled_by_type: Mapped[str | None] = mapped_column(String(16), nullable=True)  # crew | department

    # QR: only the token whose jti matches is live
    active_qr_token_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    qr_version: Mapped[int] = mapped_column(Integer, default=0)
