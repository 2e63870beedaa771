"""Effective employment percentage resolution over dated overrides."""

from __future__ import annotations

import math
from datetime import date

from capacity_planner.domain.errors import ValidationError
from capacity_planner.domain.intervals import MONTH_FORMAT, parse_date, parse_month
from capacity_planner.domain.types import EmploymentChange, Person


def validate_percent(value: float, *, field: str = "employment_pct") -> float:
    if value is None or math.isnan(value) or value < 0 or value > 100:
        raise ValidationError(f"{field} must be between 0 and 100.")
    return value


def employment_percent_on_date(person: Person, day: date | str) -> float:
    """Employment percentage in force for ``person`` on ``day``.

    The change with the latest effective month not after the query month
    wins; without one the baseline percentage applies. Change records are
    validated on every call, so a corrupt timeline fails the caller instead
    of silently resolving.
    """

    if not isinstance(day, date):
        day = parse_date(day)
    month = day.strftime(MONTH_FORMAT)

    validate_percent(person.employment_pct)

    result = person.employment_pct
    latest_month = ""
    seen_months: set[str] = set()
    for change in person.employment_changes:
        effective_month = parse_month(change.effective_month, field="effective_month")
        if effective_month in seen_months:
            raise ValidationError(f"Duplicate employment change for month {effective_month}.")
        seen_months.add(effective_month)
        validate_percent(change.employment_pct)
        if latest_month < effective_month <= month:
            result = change.employment_pct
            latest_month = effective_month

    return result


def upsert_employment_change(
    changes: tuple[EmploymentChange, ...] | list[EmploymentChange],
    month: str,
    employment_pct: float,
) -> list[EmploymentChange]:
    """Replace or append the change for ``month``; result is sorted by month."""

    normalized_month = parse_month(month, field="employment_effective_from_month")
    validate_percent(employment_pct)

    result = [change for change in changes if change.effective_month != normalized_month]
    result.append(EmploymentChange(effective_month=normalized_month, employment_pct=employment_pct))
    result.sort(key=lambda change: change.effective_month)
    return result
