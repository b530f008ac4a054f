from datetime import datetime, date, time, timedelta
from typing import Callable
from zoneinfo import ZoneInfo
from .config import settings

Clock = Callable[[], datetime]

def local_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)

def now_local() -> datetime:
    return datetime.now(local_tz())

def at_local(d: date, t: time) -> datetime:
    return datetime.combine(d, t, tzinfo=local_tz())

def end_of_day(d: date) -> datetime:
    # midnight that closes the day
    return at_local(d + timedelta(days=1), time(0, 0))
