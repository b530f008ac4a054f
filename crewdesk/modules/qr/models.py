import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, TIMESTAMP, ForeignKey
from crewdesk.core.base import Base, TimestampedMixin

# Issuance history; Appointment.active_qr_token_id says which one is live
class QrTokenRecord(Base, TimestampedMixin):
    __tablename__ = "qr_token"
    appointment_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("appointment.id"), index=True)
    token_version: Mapped[int] = mapped_column(Integer)
    issued_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    issued_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    revoke_reason: Mapped[str | None] = mapped_column(String(16), nullable=True)  # superseded | cancelled
