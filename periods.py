import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings

MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end


def local_today() -> date:
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.now(tz).date()


def month_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def is_month_key(value: str) -> bool:
    if not MONTH_PATTERN.match(value):
        return False
    return 1 <= int(value[5:]) <= 12


def month_period(year: int, month: int) -> Period:
    first = date(year, month, 1)
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return Period(month_key(first), first, next_month - date.resolution)


def parse_month(value: str) -> Period:
    value = value.strip()
    if not is_month_key(value):
        raise ValueError("Month must be in YYYY-MM format")
    return month_period(int(value[:4]), int(value[5:]))


def resolve_month(value: Optional[str], *, today: Optional[date] = None) -> Period:
    """Return the requested month, or the current local month when unset."""
    if value:
        return parse_month(value)
    today = today or local_today()
    return month_period(today.year, today.month)
