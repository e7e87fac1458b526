from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Union
from zoneinfo import ZoneInfo

from config import get_settings


DateLike = Union[date, datetime]


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def local_now() -> datetime:
    settings = get_settings()
    return datetime.now(ZoneInfo(settings.timezone))


def local_today() -> date:
    return local_now().date()


def days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days


def month_anchor(value: DateLike) -> date:
    """Return the first day of the calendar month containing ``value``.

    Datetimes are reduced to their own calendar date first, so the hour and
    any tz offset carried by the value never move it to another month.
    """
    if isinstance(value, datetime):
        value = value.date()
    return date(value.year, value.month, 1)


def add_months(anchor: date, months: int) -> date:
    total_months = anchor.year * 12 + anchor.month - 1 + months
    return date(total_months // 12, total_months % 12 + 1, 1)


def months_between(start: DateLike, end: DateLike) -> int:
    """Signed number of calendar months from ``start``'s month to ``end``'s."""
    a = month_anchor(start)
    b = month_anchor(end)
    return (b.year - a.year) * 12 + (b.month - a.month)


def clamped_date(original_day: int, target_month: int, target_year: int) -> date:
    """Place ``original_day`` in the target month, snapping to its last day.

    Each call only looks at the target month, so a day-31 series comes back
    to the 31st after passing through a shorter month.
    """
    dim = days_in_month(target_year, target_month)
    return date(target_year, target_month, min(original_day, dim))


def month_window(reference: DateLike, offsets: Iterable[int]) -> list[date]:
    base = month_anchor(reference)
    return sorted({add_months(base, offset) for offset in offsets})


def month_period(anchor: date) -> Period:
    anchor = month_anchor(anchor)
    end = date(anchor.year, anchor.month, days_in_month(anchor.year, anchor.month))
    return Period(anchor.strftime("%Y-%m"), anchor, end)


def parse_month(value: str) -> date:
    """Parse ``YYYY-MM`` into a month anchor."""
    parsed = datetime.strptime(value, "%Y-%m")
    return date(parsed.year, parsed.month, 1)


def parse_date(value: Union[date, datetime, str], fmt: Optional[str] = None) -> date:
    """Parse user input into a calendar date.

    Accepts ``date``/``datetime`` objects, the configured textual format
    (``dd/mm/yyyy`` by default) and ISO ``yyyy-mm-dd``. Raises ``ValueError``.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Unparseable date: {value!r}")
    text = value.strip()
    fmt = fmt or get_settings().date_format
    try:
        return datetime.strptime(text, fmt).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"Unparseable date: {value!r}") from exc


def days_until(day: date, today: date) -> int:
    return (day - today).days
