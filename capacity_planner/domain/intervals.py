"""Calendar date parsing and inclusive date-range algebra."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from capacity_planner.domain.errors import ValidationError

DATE_FORMAT = "%Y-%m-%d"
MONTH_FORMAT = "%Y-%m"

# Open commitment ends normalise to these sentinels.
EPOCH_LOW = date(1970, 1, 1)
EPOCH_HIGH = date(9999, 12, 31)

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True, slots=True)
class DateRange:
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def parse_date(value: str, *, field: str = "date") -> date:
    """Parse a canonical ``YYYY-MM-DD`` string."""

    text = value.strip() if isinstance(value, str) else value
    try:
        parsed = datetime.strptime(text, DATE_FORMAT).date()
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be a YYYY-MM-DD calendar date.") from exc
    if parsed.isoformat() != text:
        raise ValidationError(f"{field} must be a YYYY-MM-DD calendar date.")
    return parsed


def parse_month(value: str, *, field: str = "month") -> str:
    """Validate a canonical ``YYYY-MM`` string and return it normalised."""

    text = value.strip() if isinstance(value, str) else value
    try:
        parsed = datetime.strptime(text, MONTH_FORMAT)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be a YYYY-MM month.") from exc
    normalized = parsed.strftime(MONTH_FORMAT)
    if normalized != text:
        raise ValidationError(f"{field} must be a YYYY-MM month.")
    return normalized


def parse_date_range(start: str, end: str) -> DateRange:
    """Parse a closed range where both ends are required."""

    start_date = parse_date(start, field="from_date")
    end_date = parse_date(end, field="to_date")
    if end_date < start_date:
        raise ValidationError("to_date must be greater than or equal to from_date.")
    return DateRange(start_date, end_date)


def parse_open_range(start: str | None, end: str | None) -> DateRange:
    """Parse a range whose empty ends stand for the epoch sentinels."""

    start_text = (start or "").strip()
    end_text = (end or "").strip()

    start_date = parse_date(start_text, field="start_date") if start_text else EPOCH_LOW
    end_date = parse_date(end_text, field="end_date") if end_text else EPOCH_HIGH
    if end_date < start_date:
        raise ValidationError("end_date must be greater than or equal to start_date.")
    return DateRange(start_date, end_date)


def overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> DateRange | None:
    """Inclusive intersection of two closed ranges, ``None`` when disjoint."""

    start = max(a_start, b_start)
    end = min(a_end, b_end)
    if end < start:
        return None
    return DateRange(start, end)


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        if current == date.max:
            return
        current += ONE_DAY


def day_after(value: date) -> date | None:
    """Next calendar day, ``None`` past the last representable date."""

    if value == date.max:
        return None
    return value + ONE_DAY
