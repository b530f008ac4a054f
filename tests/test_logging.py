import logging

import pytest

from crewdesk.core import logging as crew_logging
from crewdesk.core.config import settings


def test_level_defaults_follow_env(monkeypatch) -> None:
    monkeypatch.setattr(settings, "LOG_LEVEL", None)
    monkeypatch.setattr(settings, "ENV", "local")
    assert crew_logging.resolve_level() == logging.DEBUG
    monkeypatch.setattr(settings, "ENV", "prod")
    assert crew_logging.resolve_level() == logging.INFO


def test_explicit_level_wins_and_rejects_unknown(monkeypatch) -> None:
    monkeypatch.setattr(settings, "LOG_LEVEL", "warning")
    assert crew_logging.resolve_level() == logging.WARNING
    monkeypatch.setattr(settings, "LOG_LEVEL", "chatty")
    with pytest.raises(ValueError):
        crew_logging.resolve_level()


def test_setup_quiets_drivers_and_stamps_request_id(monkeypatch) -> None:
    monkeypatch.setattr(settings, "LOG_LEVEL", "DEBUG")
    assert crew_logging.setup_logging() == logging.DEBUG
    crew_logging.setup_logging()  # idempotent

    assert logging.getLogger("aiosqlite").level == logging.WARNING

    token = crew_logging.request_id_ctx.set("req-42")
    try:
        record = logging.getLogRecordFactory()("crewdesk", logging.INFO, __file__, 1, "booked", (), None)
    finally:
        crew_logging.request_id_ctx.reset(token)
    assert record.request_id == "req-42"
