import uuid
import logging
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession

from crewdesk.core.clock import Clock, now_local
from crewdesk.core.errors import ValidationError, CapacityExceededError, InvalidStateError, NotFoundError
from crewdesk.core.locks import KeyedLocks, day_locks, appointment_locks
from crewdesk.core.security import Principal
from crewdesk.modules.appointments.models import Appointment, PENDING, CONFIRMED, CANCELLED
from crewdesk.modules.appointments.repository import AppointmentRepository
from crewdesk.modules.appointments.schemas import AppointmentCreate
from crewdesk.modules.availability.service import SlotAllocator
from crewdesk.modules.departments.repository import DepartmentRepository, AppointmentTypeRepository
from crewdesk.modules.events.outbox import OutboxService
from crewdesk.modules.qr.repository import QrTokenRepository

logger = logging.getLogger(__name__)

VALID_NEXT = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {CANCELLED},
    CANCELLED: set(),
}

def can_transition(current: str, nxt: str) -> bool:
    return nxt in VALID_NEXT.get(current, set())

class BookingService:
    def __init__(self, session: AsyncSession, clock: Clock = now_local,
                 day_guard: KeyedLocks = day_locks, appointment_guard: KeyedLocks = appointment_locks):
        self.session = session
        self.clock = clock
        self.day_guard = day_guard
        self.appointment_guard = appointment_guard
        self.appts = AppointmentRepository(session)
        self.departments = DepartmentRepository(session)
        self.types = AppointmentTypeRepository(session)
        self.qr_tokens = QrTokenRepository(session)

    # ---- Booking ----
    async def create(self, actor: Principal, payload: AppointmentCreate) -> Appointment:
        purpose = (payload.purpose or "").strip()
        if not purpose:
            raise ValidationError("Purpose is required.", field="purpose")
        crew_id = payload.crew_id or actor.user_id
        if crew_id != actor.user_id and not actor.is_staff:
            raise ValidationError("Cannot book on behalf of another crew member.", field="crew_id")
        if payload.date < self.clock().date():
            raise ValidationError("Appointment date is in the past.", field="date")
        if not await self.departments.get(payload.department_id):
            raise ValidationError("Unknown department.", field="department_id")
        appt_type = await self.types.get(payload.appointment_type_id)
        if not appt_type or appt_type.department_id != payload.department_id:
            raise ValidationError("Appointment type does not belong to this department.", field="appointment_type_id")
        if not appt_type.is_active:
            raise ValidationError("Appointment type is not active.", field="appointment_type_id")

        at = payload.time.replace(tzinfo=None)
        # same key as schedule edits, so a capacity cut cannot interleave with this check
        async with self.day_guard.hold((payload.department_id, payload.date)):
            try:
                await self.appts.lock_day(payload.department_id, payload.date)
                slots = await SlotAllocator(self.session, self.clock).day_slots(payload.department_id, payload.date)
                slot = next((s for s in slots if s.start == at), None)
                if slot is None:
                    raise ValidationError("Selected time is not an open slot for this date.", field="time")
                if slot.capacity_remaining <= 0:
                    logger.warning(f"Slot {payload.date} {at:%H:%M} in department {payload.department_id} is full")
                    raise CapacityExceededError(
                        "This slot is fully booked.",
                        details={"date": payload.date.isoformat(), "time": at.strftime("%H:%M")},
                    )
                obj = await self.appts.create(
                    crew_id=crew_id,
                    department_id=payload.department_id,
                    appointment_type_id=payload.appointment_type_id,
                    date=payload.date,
                    time=at,
                    purpose=purpose,
                    status=PENDING,
                )
                await OutboxService(self.session).enqueue(
                    "APPOINTMENT_BOOKED", "appointment", obj.id,
                    {"department_id": str(obj.department_id), "date": obj.date.isoformat(), "time": at.strftime("%H:%M"), "crew_id": str(crew_id)}
                )
                await self.session.commit()
            except Exception:
                # releases the advisory lock along with the transaction
                await self.session.rollback()
                raise
        logger.info(f"Appointment {obj.id} booked for {obj.date} {at:%H:%M} in department {obj.department_id}")
        return obj

    # ---- Transitions ----
    async def _refuse(self, action: str, appt_id: uuid.UUID, status: str):
        # rollback expires the instance; only plain values past this point
        await self.session.rollback()
        logger.warning(f"Refused {action} of appointment {appt_id} in state {status}")
        raise InvalidStateError(f"Cannot {action} an appointment that is {status}.", details={"status": status})

    async def confirm(self, actor: Principal, appt_id: uuid.UUID) -> Appointment:
        async with self.appointment_guard.hold(appt_id):
            obj = await self.appts.get(appt_id, for_update=True)
            if not obj:
                await self.session.rollback()
                raise NotFoundError("Appointment not found")
            status = obj.status
            if not can_transition(status, CONFIRMED):
                await self._refuse("confirm", appt_id, status)
            obj.status = CONFIRMED
            obj.confirmed_at = self.clock()
            obj.confirmed_by = actor.user_id
            await OutboxService(self.session).enqueue(
                "APPOINTMENT_CONFIRMED", "appointment", obj.id, {"from": PENDING, "to": CONFIRMED}
            )
            await self.session.commit()
        logger.info(f"Appointment {appt_id} confirmed by {actor.user_id}")
        return obj

    async def cancel(self, actor: Principal, appt_id: uuid.UUID, reason: str) -> Appointment:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A cancellation reason is required.", field="reason")
        async with self.appointment_guard.hold(appt_id):
            obj = await self.appts.get(appt_id, for_update=True)
            if not obj or (not actor.is_staff and obj.crew_id != actor.user_id):
                await self.session.rollback()
                raise NotFoundError("Appointment not found")
            prev = obj.status
            if not can_transition(prev, CANCELLED):
                await self._refuse("cancel", appt_id, prev)
            now = self.clock()
            obj.status = CANCELLED
            obj.cancellation_reason = reason
            obj.cancelled_at = now
            obj.cancelled_by = actor.user_id
            obj.cancelled_by_type = actor.actor_type
            if obj.active_qr_token_id:
                await self.qr_tokens.revoke(obj.active_qr_token_id, at=now, reason="cancelled")
                obj.active_qr_token_id = None
            await OutboxService(self.session).enqueue(
                "APPOINTMENT_CANCELLED", "appointment", obj.id,
                {"from": prev, "to": CANCELLED, "by": actor.actor_type}
            )
            await self.session.commit()
        logger.info(f"Appointment {appt_id} cancelled ({prev} -> cancelled) by {actor.actor_type} {actor.user_id}")
        return obj

    # ---- Reads ----
    async def get(self, actor: Principal, appt_id: uuid.UUID) -> Appointment:
        obj = await self.appts.get(appt_id)
        if not obj or (not actor.is_staff and obj.crew_id != actor.user_id):
            raise NotFoundError("Appointment not found")
        return obj

    async def list_for_crew(self, actor: Principal, status: str | None, limit: int = 50, offset: int = 0):
        return await self.appts.list(crew_id=actor.user_id, status=status, limit=limit, offset=offset)

    async def list_all(self, *, status: str | None = None, department_id: uuid.UUID | None = None,
                       date_from: date | None = None, date_to: date | None = None, limit: int = 50, offset: int = 0):
        if date_from and date_to and date_to < date_from:
            raise ValidationError("date_to must not be before date_from.", field="date_to")
        return await self.appts.list(status=status, department_id=department_id, date_from=date_from,
                                     date_to=date_to, limit=limit, offset=offset)
