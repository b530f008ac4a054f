import uuid
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from sqlalchemy.ext.asyncio import AsyncSession

from crewdesk.core.clock import Clock, now_local, at_local, end_of_day
from crewdesk.core.config import settings
from crewdesk.core.errors import InvalidStateError, NotFoundError, InvalidTokenError, ExpiredTokenError
from crewdesk.core.locks import KeyedLocks, appointment_locks
from crewdesk.core.security import Principal
from crewdesk.modules.appointments.models import CONFIRMED
from crewdesk.modules.appointments.repository import AppointmentRepository
from crewdesk.modules.departments.repository import DepartmentRepository, AppointmentTypeRepository
from crewdesk.modules.events.outbox import OutboxService
from crewdesk.modules.qr.repository import QrTokenRepository
from crewdesk.modules.qr.tokens import QrClaims, encode_qr_token, decode_qr_token, extract_token, verification_url

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class IssuedQr:
    token: str
    version: int
    expires_at: datetime
    verification_url: str

class QrTokenService:
    def __init__(self, session: AsyncSession, clock: Clock = now_local, *,
                 secret: str | None = None, ttl_minutes: int | None = None,
                 appointment_guard: KeyedLocks = appointment_locks):
        self.session = session
        self.clock = clock
        self.secret = secret or settings.qr_secret
        self.ttl = timedelta(minutes=ttl_minutes or settings.QR_TOKEN_TTL_MINUTES)
        self.appointment_guard = appointment_guard
        self.appts = AppointmentRepository(session)
        self.tokens = QrTokenRepository(session)
        self.departments = DepartmentRepository(session)
        self.types = AppointmentTypeRepository(session)

    async def issue(self, actor: Principal, appt_id: uuid.UUID) -> IssuedQr:
        async with self.appointment_guard.hold(appt_id):
            appt = await self.appts.get(appt_id, for_update=True)
            if not appt or (not actor.is_staff and appt.crew_id != actor.user_id):
                await self.session.rollback()
                raise NotFoundError("Appointment not found")
            # read before any rollback, which expires the instance
            status, starts_at = appt.status, at_local(appt.date, appt.time)
            if status != CONFIRMED:
                await self.session.rollback()
                raise InvalidStateError(f"QR is only available for confirmed appointments (status: {status}).",
                                        details={"status": status})
            now = self.clock()
            if now > starts_at:
                await self.session.rollback()
                raise InvalidStateError("Appointment time has already passed.", details={"status": status})

            expires = min(now + self.ttl, end_of_day(appt.date))
            version = (appt.qr_version or 0) + 1
            token_id = uuid.uuid4()
            if appt.active_qr_token_id:
                await self.tokens.revoke(appt.active_qr_token_id, at=now, reason="superseded")
            await self.tokens.create(
                id=token_id,
                appointment_id=appt.id,
                token_version=version,
                issued_at=now,
                expires_at=expires,
                issued_by=actor.user_id,
            )
            appt.active_qr_token_id = str(token_id)
            appt.qr_version = version
            claims = QrClaims(
                appointment_id=appt.id,
                token_id=str(token_id),
                version=version,
                issued_at=int(now.timestamp()),
                expires_at=int(expires.timestamp()),
            )
            token = encode_qr_token(claims, self.secret)
            await OutboxService(self.session).enqueue(
                "QR_ISSUED", "appointment", appt.id, {"version": version, "expires_at": claims.expires_at_dt().isoformat()}
            )
            await self.session.commit()
        logger.info(f"QR v{version} issued for appointment {appt_id}, expires {claims.expires_at_dt().isoformat()}")
        return IssuedQr(
            token=token,
            version=version,
            expires_at=claims.expires_at_dt(),
            verification_url=verification_url(settings.PUBLIC_APP_URL, token),
        )

    async def verify(self, token_or_url: str) -> dict:
        """Check a scanned token against the live appointment; read-only."""
        claims = decode_qr_token(extract_token(token_or_url), self.secret)
        if claims.is_expired(self.clock()):
            logger.info(f"Expired QR presented for appointment {claims.appointment_id}")
            raise ExpiredTokenError("QR code has expired.", details={"expired_at": claims.expires_at_dt().isoformat()})

        appt = await self.appts.get(claims.appointment_id)
        if not appt:
            raise InvalidTokenError("Invalid QR code.")
        if appt.status != CONFIRMED:
            logger.info(f"QR presented for appointment {appt.id} in state {appt.status}")
            raise InvalidTokenError(f"Appointment is {appt.status}.", details={"status": appt.status})
        if appt.active_qr_token_id != claims.token_id or appt.qr_version != claims.version:
            logger.info(f"Superseded QR v{claims.version} presented for appointment {appt.id}")
            raise InvalidTokenError("QR code has been replaced by a newer one.", details={"reason": "superseded"})

        department = await self.departments.get(appt.department_id)
        appt_type = await self.types.get(appt.appointment_type_id)
        return {
            "appointment_id": appt.id,
            "crew_id": appt.crew_id,
            "department": {"id": appt.department_id, "name": department.name if department else None},
            "appointment_type": {"id": appt.appointment_type_id, "name": appt_type.name if appt_type else None},
            "date": appt.date,
            "time": appt.time,
            "purpose": appt.purpose,
            "status": appt.status,
            "token_version": claims.version,
            "expires_at": claims.expires_at_dt(),
        }
