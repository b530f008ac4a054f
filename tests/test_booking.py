import uuid
from datetime import date, time

import pytest
from sqlalchemy import select

from crewdesk.core.errors import ValidationError, CapacityExceededError, InvalidStateError, NotFoundError
from crewdesk.modules.appointments.models import PENDING, CONFIRMED, CANCELLED
from crewdesk.modules.appointments.schemas import AppointmentCreate
from crewdesk.modules.appointments.service import BookingService, can_transition
from crewdesk.modules.availability.service import SlotAllocator
from crewdesk.modules.departments.models import AppointmentType, Department
from crewdesk.modules.events.outbox import EventOutbox

DAY = date(2025, 3, 10)


def _payload(seed, at=time(9, 0), day=DAY, purpose="Contract signing", type_id=None, **extra):
    return AppointmentCreate(
        department_id=seed.department_id, appointment_type_id=type_id or seed.type_id,
        date=day, time=at, purpose=purpose, **extra,
    )


@pytest.fixture
def booking(session, clock, locks):
    return BookingService(session, clock, **locks)


@pytest.fixture
async def scheduled(seed, add_schedule):
    await add_schedule(seed.department_id, DAY)
    return seed


def test_transition_table() -> None:
    assert can_transition(PENDING, CONFIRMED)
    assert can_transition(PENDING, CANCELLED)
    assert can_transition(CONFIRMED, CANCELLED)
    assert not can_transition(CONFIRMED, PENDING)
    assert not can_transition(CANCELLED, CONFIRMED)
    assert not can_transition(CANCELLED, CANCELLED)


async def test_full_slot_then_cancel_restores_capacity(session, booking, crew, other_crew, scheduled, clock) -> None:
    first = await booking.create(crew, _payload(scheduled))
    first_id = first.id
    assert first.status == PENDING
    assert first.crew_id == crew.user_id

    with pytest.raises(CapacityExceededError):
        await booking.create(other_crew, _payload(scheduled))

    cancelled = await booking.cancel(crew, first_id, "Schedule conflict")
    assert cancelled.status == CANCELLED
    assert cancelled.cancelled_by_type == "crew"
    assert cancelled.cancellation_reason == "Schedule conflict"

    slots = await SlotAllocator(session, clock).day_slots(scheduled.department_id, DAY)
    nine = next(s for s in slots if s.start == time(9, 0))
    assert nine.capacity_remaining == 1

    # freed capacity is bookable again
    second = await booking.create(other_crew, _payload(scheduled))
    assert second.status == PENDING


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"purpose": "   "}, "purpose"),
        ({"day": date(2025, 3, 8)}, "date"),
        ({"at": time(9, 10)}, "time"),
        ({"at": time(12, 0)}, "time"),
        ({"day": date(2025, 3, 11)}, "time"),
    ],
)
async def test_create_validates_input(booking, crew, scheduled, overrides, field) -> None:
    with pytest.raises(ValidationError) as ei:
        await booking.create(crew, _payload(scheduled, **overrides))
    assert ei.value.details["field"] == field


async def test_create_rejects_foreign_or_inactive_type(session, booking, crew, scheduled) -> None:
    other = Department(name="Medical Clinic")
    session.add(other)
    await session.flush()
    foreign = AppointmentType(department_id=other.id, name="Vaccination")
    session.add(foreign)
    await session.commit()
    foreign_id = foreign.id

    with pytest.raises(ValidationError) as ei:
        await booking.create(crew, _payload(scheduled, type_id=foreign_id))
    assert ei.value.details["field"] == "appointment_type_id"

    with pytest.raises(ValidationError) as ei:
        await booking.create(crew, _payload(scheduled, type_id=scheduled.retired_type_id))
    assert ei.value.details["field"] == "appointment_type_id"


async def test_crew_cannot_book_for_someone_else(booking, crew, staff, scheduled) -> None:
    target = uuid.uuid4()
    with pytest.raises(ValidationError):
        await booking.create(crew, _payload(scheduled, crew_id=target))

    appt = await booking.create(staff, _payload(scheduled, crew_id=target))
    assert appt.crew_id == target


async def test_confirm_and_cancel_transitions(booking, crew, staff, scheduled) -> None:
    appt_id = (await booking.create(crew, _payload(scheduled))).id

    confirmed = await booking.confirm(staff, appt_id)
    assert confirmed.status == CONFIRMED
    assert confirmed.confirmed_by == staff.user_id

    with pytest.raises(InvalidStateError):
        await booking.confirm(staff, appt_id)

    cancelled = await booking.cancel(staff, appt_id, "Department closed")
    assert cancelled.status == CANCELLED
    assert cancelled.cancelled_by_type == "department"

    with pytest.raises(InvalidStateError):
        await booking.cancel(crew, appt_id, "again")
    with pytest.raises(InvalidStateError):
        await booking.confirm(staff, appt_id)


async def test_refusals_report_state_and_leave_session_usable(booking, crew, staff, scheduled) -> None:
    appt_id = (await booking.create(crew, _payload(scheduled))).id
    await booking.cancel(crew, appt_id, "Sailing early")

    # each refusal rolls back first; the error still names the state it saw
    with pytest.raises(InvalidStateError) as ei:
        await booking.cancel(staff, appt_id, "again")
    assert ei.value.details["status"] == CANCELLED
    with pytest.raises(InvalidStateError) as ei:
        await booking.confirm(staff, appt_id)
    assert ei.value.details["status"] == CANCELLED

    assert (await booking.get(crew, appt_id)).status == CANCELLED



async def test_cancel_requires_reason_and_ownership(booking, crew, other_crew, scheduled) -> None:
    appt_id = (await booking.create(crew, _payload(scheduled))).id

    with pytest.raises(ValidationError):
        await booking.cancel(crew, appt_id, "  ")
    with pytest.raises(NotFoundError):
        await booking.cancel(other_crew, appt_id, "not mine")
    with pytest.raises(NotFoundError):
        await booking.get(other_crew, appt_id)
    with pytest.raises(NotFoundError):
        await booking.confirm(other_crew, uuid.uuid4())

    assert (await booking.get(crew, appt_id)).status == PENDING


async def test_lists_and_outbox_events(session, booking, crew, staff, scheduled) -> None:
    a_id = (await booking.create(crew, _payload(scheduled, at=time(8, 0)))).id
    b_id = (await booking.create(crew, _payload(scheduled, at=time(8, 30)))).id
    await booking.confirm(staff, b_id)

    mine = await booking.list_for_crew(crew, None)
    assert {x.id for x in mine} == {a_id, b_id}
    assert [x.id for x in await booking.list_for_crew(crew, CONFIRMED)] == [b_id]
    assert [x.id for x in await booking.list_all(status=PENDING, department_id=scheduled.department_id)] == [a_id]

    with pytest.raises(ValidationError):
        await booking.list_all(date_from=date(2025, 3, 10), date_to=date(2025, 3, 1))

    res = await session.execute(select(EventOutbox.event_type))
    assert sorted(res.scalars().all()) == ["APPOINTMENT_BOOKED", "APPOINTMENT_BOOKED", "APPOINTMENT_CONFIRMED"]
