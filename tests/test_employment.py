from __future__ import annotations

from datetime import date

import pytest

from capacity_planner.domain.employment import employment_percent_on_date, upsert_employment_change
from capacity_planner.domain.errors import ValidationError
from capacity_planner.domain.types import EmploymentChange, Person


def _person(employment_pct: float = 100.0, *changes: tuple[str, float]) -> Person:
    return Person(
        id="p1",
        organisation_id="org-1",
        name="Ada",
        employment_pct=employment_pct,
        employment_changes=tuple(EmploymentChange(month, pct) for month, pct in changes),
    )


def test_baseline_applies_without_changes() -> None:
    assert employment_percent_on_date(_person(80.0), "2026-05-17") == 80.0


def test_latest_change_not_after_query_month_wins() -> None:
    person = _person(100.0, ("2026-06", 50.0), ("2026-03", 80.0))

    assert employment_percent_on_date(person, date(2026, 2, 28)) == 100.0
    assert employment_percent_on_date(person, date(2026, 3, 1)) == 80.0
    assert employment_percent_on_date(person, date(2026, 5, 31)) == 80.0
    assert employment_percent_on_date(person, "2026-06-01") == 50.0
    assert employment_percent_on_date(person, "2030-01-01") == 50.0


def test_dates_within_one_segment_resolve_identically() -> None:
    person = _person(100.0, ("2026-03", 60.0), ("2026-09", 40.0))

    assert employment_percent_on_date(person, "2026-03-01") == employment_percent_on_date(person, "2026-08-31")


def test_duplicate_change_month_is_rejected() -> None:
    person = _person(100.0, ("2026-03", 60.0), ("2026-03", 40.0))

    with pytest.raises(ValidationError, match="Duplicate"):
        employment_percent_on_date(person, "2026-04-01")


@pytest.mark.parametrize(
    "person",
    [
        _person(120.0),
        _person(100.0, ("2026-3", 50.0)),
        _person(100.0, ("2026-03", -1.0)),
    ],
)
def test_invalid_timeline_fails_instead_of_resolving(person: Person) -> None:
    with pytest.raises(ValidationError):
        employment_percent_on_date(person, "2026-04-01")


def test_upsert_replaces_existing_month_and_keeps_order() -> None:
    changes = [EmploymentChange("2026-06", 50.0), EmploymentChange("2026-01", 90.0)]

    result = upsert_employment_change(changes, "2026-06", 70.0)
    assert result == [EmploymentChange("2026-01", 90.0), EmploymentChange("2026-06", 70.0)]

    result = upsert_employment_change(result, "2026-03", 60.0)
    assert [change.effective_month for change in result] == ["2026-01", "2026-03", "2026-06"]


def test_upsert_validates_month_and_percent() -> None:
    with pytest.raises(ValidationError):
        upsert_employment_change([], "March", 50.0)
    with pytest.raises(ValidationError):
        upsert_employment_change([], "2026-03", 101.0)
