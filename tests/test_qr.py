import uuid
from datetime import date, time, timedelta, timezone, datetime

import pytest
from jose import jwt

from crewdesk.core.errors import InvalidTokenError, ExpiredTokenError, InvalidStateError, NotFoundError
from crewdesk.modules.appointments.models import CONFIRMED
from crewdesk.modules.appointments.schemas import AppointmentCreate
from crewdesk.modules.appointments.service import BookingService
from crewdesk.modules.qr.repository import QrTokenRepository
from crewdesk.modules.qr.service import QrTokenService
from crewdesk.modules.qr.tokens import QrClaims, encode_qr_token, decode_qr_token, extract_token

DAY = date(2025, 3, 10)


@pytest.fixture
def morning(clock):
    clock.set(datetime(2025, 3, 10, 7, 0, tzinfo=timezone.utc))
    return clock


@pytest.fixture
def booking(session, morning, locks):
    return BookingService(session, morning, **locks)


@pytest.fixture
def qr(session, morning, locks):
    return QrTokenService(session, morning, ttl_minutes=60, appointment_guard=locks["appointment_guard"])


@pytest.fixture
async def confirmed_id(seed, add_schedule, booking, crew, staff):
    await add_schedule(seed.department_id, DAY)
    appt = await booking.create(crew, AppointmentCreate(
        department_id=seed.department_id, appointment_type_id=seed.type_id,
        date=DAY, time=time(9, 0), purpose="Contract signing",
    ))
    await booking.confirm(staff, appt.id)
    return appt.id


async def test_issue_then_verify_round_trip(qr, crew, confirmed_id, seed) -> None:
    issued = await qr.issue(crew, confirmed_id)

    assert issued.version == 1
    assert issued.verification_url.startswith("https://crew.example.test/guard/verify?token=")

    snapshot = await qr.verify(issued.token)
    assert snapshot["appointment_id"] == confirmed_id
    assert snapshot["crew_id"] == crew.user_id
    assert snapshot["status"] == CONFIRMED
    assert snapshot["department"] == {"id": seed.department_id, "name": "Crew Management"}
    assert snapshot["appointment_type"]["name"] == "Contract Signing"
    assert snapshot["date"] == DAY
    assert snapshot["time"] == time(9, 0)

    # scanned URL works the same as the bare token
    assert await qr.verify(issued.verification_url) == snapshot


async def test_verify_is_repeatable(qr, crew, confirmed_id) -> None:
    issued = await qr.issue(crew, confirmed_id)
    first = await qr.verify(issued.token)
    second = await qr.verify(issued.token)
    assert first == second


async def test_expiry_boundary(qr, crew, confirmed_id, morning) -> None:
    issued = await qr.issue(crew, confirmed_id)
    assert issued.expires_at == datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc)

    morning.set(issued.expires_at)
    assert (await qr.verify(issued.token))["appointment_id"] == confirmed_id

    morning.advance(seconds=1)
    with pytest.raises(ExpiredTokenError) as ei:
        await qr.verify(issued.token)
    assert ei.value.kind == "expired_token"


async def test_expiry_capped_at_end_of_appointment_day(session, morning, locks, crew, confirmed_id) -> None:
    long_lived = QrTokenService(session, morning, ttl_minutes=48 * 60, appointment_guard=locks["appointment_guard"])
    issued = await long_lived.issue(crew, confirmed_id)
    assert issued.expires_at == datetime(2025, 3, 11, 0, 0, tzinfo=timezone.utc)


async def test_reissue_supersedes_previous_token(session, qr, crew, confirmed_id) -> None:
    old = await qr.issue(crew, confirmed_id)
    new = await qr.issue(crew, confirmed_id)
    assert new.version == 2

    with pytest.raises(InvalidTokenError) as ei:
        await qr.verify(old.token)
    assert ei.value.details["reason"] == "superseded"
    assert (await qr.verify(new.token))["token_version"] == 2

    records = await QrTokenRepository(session).list_for_appointment(confirmed_id)
    assert [r.token_version for r in records] == [1, 2]
    assert records[0].revoke_reason == "superseded"
    assert records[1].revoked_at is None


async def test_cancel_invalidates_issued_token(session, qr, booking, crew, confirmed_id) -> None:
    issued = await qr.issue(crew, confirmed_id)
    await booking.cancel(crew, confirmed_id, "Sailing early")

    with pytest.raises(InvalidTokenError):
        await qr.verify(issued.token)

    records = await QrTokenRepository(session).list_for_appointment(confirmed_id)
    assert records[0].revoke_reason == "cancelled"


async def test_issue_preconditions(qr, booking, crew, other_crew, seed, add_schedule, morning) -> None:
    await add_schedule(seed.department_id, DAY)
    pending_id = (await booking.create(crew, AppointmentCreate(
        department_id=seed.department_id, appointment_type_id=seed.type_id,
        date=DAY, time=time(10, 0), purpose="Briefing",
    ))).id

    with pytest.raises(InvalidStateError) as ei:
        await qr.issue(crew, pending_id)
    assert ei.value.details["status"] == "pending"
    with pytest.raises(NotFoundError):
        await qr.issue(other_crew, pending_id)
    with pytest.raises(NotFoundError):
        await qr.issue(crew, uuid.uuid4())


async def test_issue_refused_after_appointment_start(qr, crew, confirmed_id, morning) -> None:
    morning.set(datetime(2025, 3, 10, 9, 0, 1, tzinfo=timezone.utc))
    with pytest.raises(InvalidStateError) as ei:
        await qr.issue(crew, confirmed_id)
    assert ei.value.details["status"] == "confirmed"
    # the refused request left the session usable
    with pytest.raises(InvalidStateError):
        await qr.issue(crew, confirmed_id)


async def test_forged_and_garbage_tokens_are_invalid(qr, crew, confirmed_id) -> None:
    issued = await qr.issue(crew, confirmed_id)
    claims = decode_qr_token(issued.token, "test-qr-secret")
    forged = encode_qr_token(claims, "someone-elses-secret")
    not_qr = jwt.encode({"sub": str(confirmed_id), "exp": claims.expires_at}, "test-qr-secret", algorithm="HS256")

    for bad in (forged, not_qr, "not-a-token", "https://crew.example.test/guard/verify?other=1"):
        with pytest.raises(InvalidTokenError):
            await qr.verify(bad)


def test_token_claims_round_trip() -> None:
    claims = QrClaims(appointment_id=uuid.uuid4(), token_id=str(uuid.uuid4()), version=3,
                      issued_at=1_700_000_000, expires_at=1_700_003_600)
    decoded = decode_qr_token(encode_qr_token(claims, "k"), "k")
    assert decoded == claims
    assert decoded.is_expired(decoded.expires_at_dt()) is False
    assert decoded.is_expired(decoded.expires_at_dt() + timedelta(seconds=1)) is True


def test_extract_token_from_url_or_raw() -> None:
    assert extract_token("  abc.def.ghi ") == "abc.def.ghi"
    assert extract_token("https://x.test/guard/verify?token=abc.def.ghi&lang=en") == "abc.def.ghi"
    for empty in ("", None, "https://x.test/guard/verify"):
        with pytest.raises(InvalidTokenError):
            extract_token(empty)
