from __future__ import annotations

from datetime import date

import pytest

from capacity_planner.domain.calculation import calculate_availability_load, period_start
from capacity_planner.domain.errors import NotFoundError, ValidationError
from capacity_planner.domain.types import (
    CalculationInput,
    Commitment,
    CommitmentTarget,
    EmploymentChange,
    Granularity,
    Organisation,
    OrgHoliday,
    Person,
    PersonAbsence,
    PlanningSnapshot,
    Project,
    ReportRequest,
    TargetType,
    Team,
    TeamAbsence,
)

ORGANISATION = Organisation(
    id="org-1",
    name="Acme",
    hours_per_day=8.0,
    hours_per_week=40.0,
    hours_per_year=1760.0,
)
PROJECT = Project(
    id="pr1",
    organisation_id="org-1",
    name="Apollo",
    start_date="2026-01-01",
    end_date="2026-12-31",
    estimated_effort_hours=16.0,
)


def _person(person_id: str = "p1", employment_pct: float = 100.0, *changes: EmploymentChange) -> Person:
    return Person(
        id=person_id,
        organisation_id="org-1",
        name=person_id,
        employment_pct=employment_pct,
        employment_changes=changes,
    )


def _commitment(
    commitment_id: str = "c1",
    *,
    target: CommitmentTarget = CommitmentTarget(TargetType.PERSON, "p1"),
    project_id: str = "pr1",
    start: str = "2026-01-01",
    end: str = "2026-01-31",
    percent: float = 50.0,
) -> Commitment:
    return Commitment(
        id=commitment_id,
        organisation_id="org-1",
        target=target,
        project_id=project_id,
        start_date=start,
        end_date=end,
        percent=percent,
    )


def _calculate(
    snapshot: PlanningSnapshot,
    *,
    scope: str = "person",
    ids: tuple[str, ...] = ("p1",),
    from_date: str = "2026-01-01",
    to_date: str = "2026-01-01",
    granularity: str = "day",
):
    request = ReportRequest(scope=scope, from_date=from_date, to_date=to_date, granularity=granularity, ids=ids)
    return calculate_availability_load(CalculationInput(snapshot=snapshot, request=request))


def test_single_day_with_half_day_commitment() -> None:
    snapshot = PlanningSnapshot(
        organisation=ORGANISATION,
        people=(_person(),),
        projects=(PROJECT,),
        commitments=(_commitment(),),
    )

    buckets = _calculate(snapshot)

    assert len(buckets) == 1
    bucket = buckets[0]
    assert bucket.period_start == "2026-01-01"
    assert bucket.availability_hours == 8.0
    assert bucket.load_hours == 4.0
    assert bucket.free_hours == 4.0
    assert bucket.utilization_pct == 50.0
    assert bucket.project_load_hours is None
    assert bucket.project_completion_pct is None


def test_full_day_holiday_leaves_load_and_negative_free_hours() -> None:
    snapshot = PlanningSnapshot(
        organisation=ORGANISATION,
        people=(_person(),),
        projects=(PROJECT,),
        commitments=(_commitment(),),
        holidays=(OrgHoliday(id="h1", organisation_id="org-1", date="2026-01-02", hours=8.0),),
    )

    first, second = _calculate(snapshot, to_date="2026-01-02")

    assert first.availability_hours == 8.0
    assert second.period_start == "2026-01-02"
    assert second.availability_hours == 0.0
    assert second.load_hours == 4.0
    assert second.free_hours == -4.0
    assert second.utilization_pct == 0.0


def test_project_scope_reports_cumulative_load_and_completion() -> None:
    snapshot = PlanningSnapshot(
        organisation=ORGANISATION,
        people=(_person(),),
        projects=(PROJECT,),
        commitments=(_commitment(end="2026-01-30"),),
    )

    first, second = _calculate(snapshot, scope="project", ids=("pr1",), to_date="2026-01-02")

    assert (first.project_load_hours, first.project_completion_pct) == (4.0, 25.0)
    assert (second.project_load_hours, second.project_completion_pct) == (8.0, 50.0)
    assert first.project_estimation_hours == 16.0
    assert second.load_hours == 4.0


def test_project_scope_counts_only_target_project_load() -> None:
    other = Project(
        id="pr2",
        organisation_id="org-1",
        name="Gemini",
        start_date="2026-01-01",
        end_date="2026-12-31",
        estimated_effort_hours=100.0,
    )
    snapshot = PlanningSnapshot(
        organisation=ORGANISATION,
        people=(_person(),),
        projects=(PROJECT, other),
        commitments=(_commitment("c1"), _commitment("c2", project_id="pr2", percent=25.0)),
    )

    [bucket] = _calculate(snapshot, scope="project", ids=("pr1",))
    [combined] = _calculate(snapshot, scope="project", ids=())

    assert bucket.load_hours == 4.0
    assert combined.load_hours == 6.0
    assert combined.project_estimation_hours == 116.0


def test_project_cumulative_load_never_decreases() -> None:
    snapshot = PlanningSnapshot(
        organisation=ORGANISATION,
        people=(_person(),),
        projects=(PROJECT,),
        commitments=(_commitment(start="2026-02-10", end="2026-03-05", percent=30.0),),
    )

    buckets = _calculate(
        snapshot,
        scope="project",
        ids=("pr1",),
        from_date="2026-01-01",
        to_date="2026-04-30",
        granularity="month",
    )

    loads = [bucket.project_load_hours for bucket in buckets]
    assert [bucket.period_start for bucket in buckets] == ["2026-01-01", "2026-02-01", "2026-03-01", "2026-04-01"]
    assert loads == sorted(loads)
    assert loads[0] == 0.0
    assert loads[-1] == loads[-2] > 0


@pytest.mark.parametrize("employment_pct", [100.0, 75.0, 20.0])
def test_idle_person_has_full_availability_and_no_load(employment_pct: float) -> None:
    snapshot = PlanningSnapshot(organisation=ORGANISATION, people=(_person(employment_pct=employment_pct),))

    buckets = _calculate(snapshot, to_date="2026-01-05")

    assert len(buckets) == 5
    for bucket in buckets:
        assert bucket.availability_hours == pytest.approx(8.0 * employment_pct / 100)
        assert bucket.load_hours == 0.0
        assert bucket.utilization_pct == 0.0


def test_week_buckets_start_on_monday() -> None:
    snapshot = PlanningSnapshot(organisation=ORGANISATION, people=(_person(),))

    buckets = _calculate(snapshot, from_date="2026-01-01", to_date="2026-01-07", granularity="week")

    assert [(bucket.period_start, bucket.availability_hours) for bucket in buckets] == [
        ("2025-12-29", 32.0),
        ("2026-01-05", 24.0),
    ]


def test_period_start_per_granularity() -> None:
    day = date(2026, 8, 13)

    assert period_start(day, Granularity.DAY) == day
    assert period_start(day, Granularity.WEEK) == date(2026, 8, 10)
    assert period_start(day, Granularity.MONTH) == date(2026, 8, 1)
    assert period_start(day, Granularity.YEAR) == date(2026, 1, 1)
    assert period_start(day, "fortnight") == day


def test_zero_capacity_person_contributes_nothing() -> None:
    snapshot = PlanningSnapshot(
        organisation=ORGANISATION,
        people=(_person(employment_pct=0.0),),
        projects=(PROJECT,),
        commitments=(_commitment(),),
    )

    [bucket] = _calculate(snapshot)

    assert (bucket.availability_hours, bucket.load_hours, bucket.utilization_pct) == (0.0, 0.0, 0.0)


def test_absences_are_summed_then_clipped_to_capacity() -> None:
    snapshot = PlanningSnapshot(
        organisation=ORGANISATION,
        people=(_person(employment_pct=50.0), _person("p2")),
        teams=(Team(id="t1", organisation_id="org-1", name="Core", member_ids=("p1", "p2")),),
        holidays=(OrgHoliday(id="h1", organisation_id="org-1", date="2026-01-01", hours=2.0),),
        team_absences=(TeamAbsence(id="ta1", organisation_id="org-1", team_id="t1", date="2026-01-01", hours=1.0),),
        person_absences=(
            PersonAbsence(id="pa1", organisation_id="org-1", person_id="p1", date="2026-01-01", hours=3.0),
        ),
    )

    [p1_bucket] = _calculate(snapshot, ids=("p1",))
    [p2_bucket] = _calculate(snapshot, ids=("p2",))

    assert p1_bucket.availability_hours == 0.0
    assert p2_bucket.availability_hours == 5.0


def test_employment_change_scales_availability_but_not_load() -> None:
    snapshot = PlanningSnapshot(
        organisation=ORGANISATION,
        people=(_person("p1", 100.0, EmploymentChange("2026-02", 50.0)),),
        projects=(PROJECT,),
        commitments=(_commitment(end="2026-02-28"),),
    )

    jan, feb = _calculate(snapshot, from_date="2026-01-31", to_date="2026-02-01")

    assert (jan.availability_hours, jan.load_hours, jan.utilization_pct) == (8.0, 4.0, 50.0)
    assert (feb.availability_hours, feb.load_hours, feb.utilization_pct) == (4.0, 4.0, 100.0)


def test_team_commitment_loads_every_member() -> None:
    snapshot = PlanningSnapshot(
        organisation=ORGANISATION,
        people=(_person("p1"), _person("p2")),
        teams=(Team(id="t1", organisation_id="org-1", name="Core", member_ids=("p1", "p2")),),
        projects=(PROJECT,),
        commitments=(_commitment(target=CommitmentTarget(TargetType.TEAM, "t1"), percent=25.0),),
    )

    [bucket] = _calculate(snapshot, scope="team", ids=("t1",))

    assert bucket.availability_hours == 16.0
    assert bucket.load_hours == 4.0
    assert bucket.utilization_pct == 25.0


def test_results_are_rounded_only_at_the_end() -> None:
    snapshot = PlanningSnapshot(
        organisation=ORGANISATION,
        people=(_person(),),
        projects=(PROJECT,),
        commitments=(
            _commitment("c1", percent=100 / 3),
            _commitment("c2", percent=100 / 3),
            _commitment("c3", percent=100 / 3),
        ),
    )

    [bucket] = _calculate(snapshot, granularity="month", to_date="2026-01-03")

    assert bucket.load_hours == 24.0
    assert bucket.utilization_pct == 100.0


def test_output_is_rounded_to_two_decimals() -> None:
    snapshot = PlanningSnapshot(
        organisation=ORGANISATION,
        people=(_person(),),
        projects=(PROJECT,),
        commitments=(_commitment(percent=33.333333),),
    )

    [bucket] = _calculate(snapshot)

    assert bucket.load_hours == 2.67
    assert bucket.free_hours == 5.33
    assert bucket.utilization_pct == 33.33


def test_dangling_commitment_is_skipped_but_malformed_one_fails() -> None:
    dangling = PlanningSnapshot(
        organisation=ORGANISATION,
        people=(_person(),),
        projects=(PROJECT,),
        commitments=(_commitment(target=CommitmentTarget(TargetType.TEAM, "gone")),),
    )
    [bucket] = _calculate(dangling)
    assert bucket.load_hours == 0.0

    malformed = PlanningSnapshot(
        organisation=ORGANISATION,
        people=(_person(),),
        projects=(PROJECT,),
        commitments=(_commitment(target=CommitmentTarget(TargetType.TEAM, "gone"), start="2026-00-01"),),
    )
    with pytest.raises(ValidationError):
        _calculate(malformed)


@pytest.mark.parametrize(
    "overrides",
    [
        {"scope": "galaxy"},
        {"granularity": "quarter"},
        {"from_date": "2026-01-02", "to_date": "2026-01-01"},
        {"from_date": "01/01/2026"},
    ],
)
def test_invalid_requests_are_validation_errors(overrides: dict[str, str]) -> None:
    snapshot = PlanningSnapshot(organisation=ORGANISATION, people=(_person(),))

    with pytest.raises(ValidationError):
        _calculate(snapshot, **overrides)


def test_unknown_scope_id_is_not_found() -> None:
    snapshot = PlanningSnapshot(organisation=ORGANISATION, people=(_person(),))

    with pytest.raises(NotFoundError):
        _calculate(snapshot, ids=("p404",))


def test_project_scope_rounds_very_large_estimates() -> None:
    huge = Project(
        id="pr1",
        organisation_id="org-1",
        name="Apollo",
        start_date="2026-01-01",
        end_date="2026-12-31",
        estimated_effort_hours=1e27,
    )
    snapshot = PlanningSnapshot(
        organisation=ORGANISATION,
        people=(_person(),),
        projects=(huge,),
        commitments=(_commitment(),),
    )

    [bucket] = _calculate(snapshot, scope="project", ids=("pr1",))

    assert bucket.project_estimation_hours == 1e27
    assert bucket.project_load_hours == 4.0
    assert bucket.project_completion_pct == 0.0
