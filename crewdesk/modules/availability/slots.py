"""Pure slot arithmetic shared by the allocator, the calendar and schedule admin.

Nothing in here touches the database or the clock.
"""
import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Mapping

LIMITED_THRESHOLD = 2

NO_SLOTS = "no_slots"
FULL = "full"
LIMITED = "limited"
AVAILABLE = "available"

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True)
class TimeSlot:
    start: time
    end: time
    capacity_remaining: int


@dataclass(frozen=True)
class DayShape:
    opening: time
    closing: time
    slot_minutes: int
    slot_capacity: int

    def windows(self) -> list[tuple[time, time]]:
        return expand_slots(self.opening, self.closing, self.slot_minutes)

    @property
    def total_slots(self) -> int:
        return len(self.windows()) * self.slot_capacity

    def remaining(self, booked: Mapping[time, int]) -> list[TimeSlot]:
        return [
            TimeSlot(start=s, end=e, capacity_remaining=max(self.slot_capacity - booked.get(s, 0), 0))
            for s, e in self.windows()
        ]

    def available_slots(self, booked: Mapping[time, int]) -> int:
        return sum(s.capacity_remaining for s in self.remaining(booked))

    def stranded(self, booked: Mapping[time, int]) -> list[time]:
        """Booked start times this shape can no longer hold."""
        starts = {s for s, _ in self.windows()}
        return sorted(t for t, n in booked.items() if n > 0 and (t not in starts or n > self.slot_capacity))


def expand_slots(opening: time, closing: time, slot_minutes: int) -> list[tuple[time, time]]:
    """Step from opening to closing; a slot must finish by closing."""
    if slot_minutes <= 0:
        raise ValueError("slot_minutes must be positive")
    anchor = date(2000, 1, 1)
    cur = datetime.combine(anchor, opening)
    stop = datetime.combine(anchor, closing)
    step = timedelta(minutes=slot_minutes)
    out = []
    while cur + step <= stop:
        out.append((cur.time(), (cur + step).time()))
        cur += step
    return out


def classify_day(total_slots: int, available_slots: int, has_schedule: bool = True) -> str:
    if not has_schedule:
        return NO_SLOTS
    if total_slots > 0 and available_slots == 0:
        return FULL
    if 0 < available_slots <= LIMITED_THRESHOLD:
        return LIMITED
    return AVAILABLE


def parse_year_month(value: str) -> tuple[int, int]:
    m = _MONTH_RE.match(value or "")
    if not m:
        raise ValueError(f"expected YYYY-MM, got {value!r}")
    year, month = int(m.group(1)), int(m.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"month out of range: {value!r}")
    return year, month


def month_days(year: int, month: int) -> list[date]:
    _, n = calendar.monthrange(year, month)
    return [date(year, month, d) for d in range(1, n + 1)]


def leading_blanks(year: int, month: int) -> int:
    # Sunday-first grid; date.weekday() is Monday=0
    return (date(year, month, 1).weekday() + 1) % 7
