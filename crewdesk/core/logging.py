import logging
from contextvars import ContextVar
from .config import settings

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")

# driver chatter that drowns out booking logs at DEBUG
QUIET_LOGGERS = ("aiosqlite", "asyncio", "sqlalchemy.engine.Engine")

def resolve_level() -> int:
    if settings.LOG_LEVEL:
        level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if isinstance(level, int):
            return level
        raise ValueError(f"Unknown LOG_LEVEL {settings.LOG_LEVEL!r}")
    return logging.DEBUG if settings.ENV == "local" else logging.INFO

def _install_request_id_factory():
    old_factory = logging.getLogRecordFactory()
    if getattr(old_factory, "_crewdesk_request_id", False):
        return
    def record_factory(*args, **kwargs):
        record = old_factory(*args, **kwargs)
        record.request_id = request_id_ctx.get()
        return record
    record_factory._crewdesk_request_id = True
    logging.setLogRecordFactory(record_factory)

def setup_logging():
    level = resolve_level()
    _install_request_id_factory()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s",
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return level
