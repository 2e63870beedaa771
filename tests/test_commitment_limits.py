from __future__ import annotations

from datetime import date

import pytest

from capacity_planner.domain.errors import ValidationError
from capacity_planner.domain.intervals import DateRange
from capacity_planner.domain.limits import (
    LIMIT_EXCEEDED_DETAIL,
    build_events,
    max_commitment_percent,
    validate_commitment_limit,
)
from capacity_planner.domain.types import Commitment, CommitmentTarget, Person, TargetType, Team

PEOPLE = {
    person_id: Person(id=person_id, organisation_id="org-1", name=person_id, employment_pct=100.0)
    for person_id in ("p1", "p2")
}
TEAMS = {"t1": Team(id="t1", organisation_id="org-1", name="Core", member_ids=("p1", "p2"))}


def _commitment(
    commitment_id: str,
    percent: float,
    start: str,
    end: str,
    *,
    target: CommitmentTarget = CommitmentTarget(TargetType.PERSON, "p1"),
) -> Commitment:
    return Commitment(
        id=commitment_id,
        organisation_id="org-1",
        target=target,
        project_id="pr1",
        start_date=start,
        end_date=end,
        percent=percent,
    )


def _validate(candidate: Commitment, existing: list[Commitment], *, hours_per_day: float = 8.0, **kwargs) -> None:
    validate_commitment_limit(
        candidate,
        hours_per_day=hours_per_day,
        people_by_id=PEOPLE,
        teams_by_id=TEAMS,
        commitments=existing,
        **kwargs,
    )


def test_ceiling_is_derived_from_hours_per_day() -> None:
    assert max_commitment_percent(8.0) == 300.0
    assert max_commitment_percent(24.0) == 100.0
    with pytest.raises(ValidationError):
        max_commitment_percent(0.0)


def test_overlapping_commitment_within_ceiling_passes() -> None:
    existing = [_commitment("a", 60.0, "2026-01-01", "2026-01-10")]

    _validate(_commitment("b", 30.0, "2026-01-05", "2026-01-15"), existing)


def test_overlapping_commitment_above_ceiling_fails() -> None:
    existing = [_commitment("a", 60.0, "2026-01-01", "2026-01-10")]

    with pytest.raises(ValidationError, match="24 hours/day"):
        _validate(_commitment("b", 250.0, "2026-01-05", "2026-01-15"), existing)


@pytest.mark.parametrize("hours_per_day", [8.0, 7.5, 6.0])
def test_single_commitment_at_exact_ceiling_is_accepted(hours_per_day: float) -> None:
    ceiling = 24 * 100 / hours_per_day

    _validate(_commitment("b", ceiling, "2026-01-01", "2026-01-31"), [], hours_per_day=hours_per_day)
    with pytest.raises(ValidationError) as excinfo:
        _validate(_commitment("b", ceiling + 1e-6, "2026-01-01", "2026-01-31"), [], hours_per_day=hours_per_day)
    assert excinfo.value.detail == LIMIT_EXCEEDED_DETAIL


def test_updated_commitment_is_excluded_from_its_own_check() -> None:
    existing = [_commitment("a", 200.0, "2026-01-01", "2026-01-31")]
    candidate = _commitment("a", 250.0, "2026-01-01", "2026-01-31")

    _validate(candidate, existing, exclude_commitment_id="a")
    with pytest.raises(ValidationError):
        _validate(candidate, existing)


def test_team_commitments_count_for_each_member() -> None:
    existing = [_commitment("team", 200.0, "2026-01-01", "2026-01-31", target=CommitmentTarget(TargetType.TEAM, "t1"))]

    with pytest.raises(ValidationError):
        _validate(
            _commitment("b", 150.0, "2026-01-20", "2026-02-10", target=CommitmentTarget(TargetType.PERSON, "p2")),
            existing,
        )


def test_team_candidate_is_checked_for_every_member() -> None:
    existing = [_commitment("a", 280.0, "2026-03-01", "2026-03-31", target=CommitmentTarget(TargetType.PERSON, "p2"))]

    with pytest.raises(ValidationError):
        _validate(
            _commitment("b", 50.0, "2026-03-15", "2026-04-15", target=CommitmentTarget(TargetType.TEAM, "t1")),
            existing,
        )


def test_sequential_commitments_do_not_stack() -> None:
    existing = [
        _commitment("a", 200.0, "2026-01-01", "2026-01-10"),
        _commitment("b", 200.0, "2026-01-11", "2026-01-20"),
        _commitment("c", 290.0, "2026-02-01", "2026-02-28"),
    ]

    _validate(_commitment("d", 100.0, "2026-01-01", "2026-01-20"), existing)


def test_unresolvable_candidate_only_checks_its_own_percentage() -> None:
    existing = [_commitment("a", 290.0, "2026-01-01", "2026-01-31")]
    orphan = _commitment("b", 100.0, "2026-01-01", "2026-01-31", target=CommitmentTarget(TargetType.PERSON, "ghost"))

    _validate(orphan, existing)
    with pytest.raises(ValidationError):
        _validate(_commitment("c", 301.0, "2026-01-01", "2026-01-31", target=orphan.target), existing)


def test_malformed_existing_commitment_fails_the_check() -> None:
    existing = [_commitment("a", 10.0, "2026-13-01", "2026-01-31")]

    with pytest.raises(ValidationError):
        _validate(_commitment("b", 10.0, "2026-01-01", "2026-01-31"), existing)


def test_build_events_merges_and_sorts_deltas() -> None:
    existing = [
        _commitment("a", 40.0, "2026-01-10", "2026-01-20"),
        _commitment("b", 10.0, "2025-12-01", "2026-01-09"),
        _commitment("c", 99.0, "2026-01-01", "2026-01-31", target=CommitmentTarget(TargetType.PERSON, "p2")),
        _commitment("d", 5.0, "", ""),
    ]

    events = build_events(
        existing,
        person_id="p1",
        candidate_period=DateRange(date(2026, 1, 1), date(2026, 1, 15)),
        teams_by_id=TEAMS,
    )

    assert events == [
        (date(2026, 1, 1), 15.0),
        (date(2026, 1, 10), 30.0),
        (date(2026, 1, 16), -45.0),
    ]


def test_overlapping_zero_percent_fits_beside_an_at_ceiling_commitment() -> None:
    ceiling = 24 * 100 / 7.0
    existing = [_commitment("a", ceiling, "2026-01-01", "2026-01-31")]

    _validate(_commitment("b", 0.0, "2026-01-10", "2026-01-20"), existing, hours_per_day=7.0)
    with pytest.raises(ValidationError):
        _validate(_commitment("c", 0.01, "2026-01-10", "2026-01-20"), existing, hours_per_day=7.0)


@pytest.mark.parametrize("percent", [float("nan"), float("inf"), -1.0])
def test_candidate_percent_must_be_finite_and_non_negative(percent: float) -> None:
    existing = [_commitment("a", 300.0, "2026-01-01", "2026-01-31")]

    with pytest.raises(ValidationError, match="percent"):
        _validate(_commitment("b", percent, "2026-01-01", "2026-01-31"), existing)
    with pytest.raises(ValidationError, match="percent"):
        _validate(_commitment("b", percent, "2026-01-01", "2026-01-31"), [])
