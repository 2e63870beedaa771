"""Availability and committed-load calculation over a planning snapshot."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Context, Decimal

from capacity_planner.domain.commitments import ResolvedCommitment, resolve_commitment
from capacity_planner.domain.employment import employment_percent_on_date
from capacity_planner.domain.errors import ValidationError
from capacity_planner.domain.intervals import iter_days, parse_date_range
from capacity_planner.domain.scope import ScopeSelection, parse_scope, resolve_scope
from capacity_planner.domain.types import (
    CalculationInput,
    Granularity,
    Person,
    PlanningSnapshot,
    ReportBucket,
    Scope,
    Team,
)

logger = logging.getLogger(__name__)

Q2 = Decimal("0.01")
# Wide enough to quantize any finite float to two places.
ROUNDING_CONTEXT = Context(prec=400, rounding=ROUND_HALF_UP)


def _r2(value: float) -> float:
    return float(Decimal(repr(value)).quantize(Q2, context=ROUNDING_CONTEXT))


def parse_granularity(value: str | Granularity) -> Granularity:
    try:
        return Granularity(value)
    except ValueError as exc:
        raise ValidationError(
            f"granularity must be one of: {', '.join(member.value for member in Granularity)}."
        ) from exc


def period_start(day: date, granularity: Granularity | str) -> date:
    if granularity == Granularity.DAY:
        return day
    if granularity == Granularity.WEEK:
        return day - timedelta(days=day.weekday())
    if granularity == Granularity.MONTH:
        return day.replace(day=1)
    if granularity == Granularity.YEAR:
        return date(day.year, 1, 1)
    return day


@dataclass(slots=True)
class _Accumulator:
    availability_hours: float = 0.0
    load_hours: float = 0.0
    project_load_hours: float = 0.0


@dataclass(slots=True)
class _Lookups:
    people_by_id: dict[str, Person]
    teams_by_id: dict[str, Team]
    person_team_ids: dict[str, list[str]]
    commitments_by_person: dict[str, list[ResolvedCommitment]]
    holiday_hours: dict[str, float]
    team_absence_hours: dict[tuple[str, str], float]
    person_absence_hours: dict[tuple[str, str], float]


def _build_lookups(snapshot: PlanningSnapshot) -> _Lookups:
    people_by_id = {person.id: person for person in snapshot.people}
    teams_by_id = {team.id: team for team in snapshot.teams}

    person_team_ids: dict[str, list[str]] = defaultdict(list)
    for team in snapshot.teams:
        for member_id in dict.fromkeys(team.member_ids):
            person_team_ids[member_id].append(team.id)

    commitments_by_person: dict[str, list[ResolvedCommitment]] = defaultdict(list)
    for commitment in snapshot.commitments:
        resolved = resolve_commitment(commitment, people_by_id, teams_by_id)
        if resolved is None:
            continue
        for person_id in resolved.person_ids:
            commitments_by_person[person_id].append(resolved)

    holiday_hours: dict[str, float] = defaultdict(float)
    for holiday in snapshot.holidays:
        holiday_hours[holiday.date] += holiday.hours

    team_absence_hours: dict[tuple[str, str], float] = defaultdict(float)
    for entry in snapshot.team_absences:
        team_absence_hours[(entry.team_id, entry.date)] += entry.hours

    person_absence_hours: dict[tuple[str, str], float] = defaultdict(float)
    for entry in snapshot.person_absences:
        person_absence_hours[(entry.person_id, entry.date)] += entry.hours

    return _Lookups(
        people_by_id=people_by_id,
        teams_by_id=teams_by_id,
        person_team_ids=person_team_ids,
        commitments_by_person=commitments_by_person,
        holiday_hours=holiday_hours,
        team_absence_hours=team_absence_hours,
        person_absence_hours=person_absence_hours,
    )


def absence_hours(lookups: _Lookups, person_id: str, day_key: str, capacity: float) -> float:
    """Absence for a person-day, clipped to ``[0, capacity]``."""

    hours = lookups.holiday_hours.get(day_key, 0.0)
    hours += lookups.person_absence_hours.get((person_id, day_key), 0.0)
    for team_id in lookups.person_team_ids.get(person_id, ()):
        hours += lookups.team_absence_hours.get((team_id, day_key), 0.0)
    return min(max(hours, 0.0), capacity)


def committed_percent(
    commitments: list[ResolvedCommitment],
    day: date,
    project_ids: frozenset[str] | None,
) -> float:
    total = 0.0
    for commitment in commitments:
        if project_ids is not None and commitment.project_id not in project_ids:
            continue
        if commitment.active_on(day):
            total += commitment.percent
    return total


def calculate_availability_load(data: CalculationInput) -> list[ReportBucket]:
    """Roll per-day availability and load up into report buckets."""

    request = data.request
    snapshot = data.snapshot
    scope = parse_scope(request.scope)
    granularity = parse_granularity(request.granularity)
    period = parse_date_range(request.from_date, request.to_date)

    lookups = _build_lookups(snapshot)
    selection: ScopeSelection = resolve_scope(
        scope,
        request.ids,
        people_by_id=lookups.people_by_id,
        teams_by_id=lookups.teams_by_id,
        project_ids=[project.id for project in snapshot.projects],
        commitments=snapshot.commitments,
    )

    is_project_scope = scope is Scope.PROJECT
    project_filter = selection.project_ids if is_project_scope else None
    project_estimation = 0.0
    if is_project_scope:
        project_estimation = sum(
            project.estimated_effort_hours
            for project in snapshot.projects
            if project.id in selection.project_ids
        )

    hours_per_day = snapshot.organisation.hours_per_day
    logger.debug(
        "Calculating %s report for %d people from %s to %s by %s",
        scope.value,
        len(selection.person_ids),
        period.start,
        period.end,
        granularity.value,
    )

    buckets: dict[str, _Accumulator] = {}
    for day in iter_days(period.start, period.end):
        key = period_start(day, granularity).isoformat()
        bucket = buckets.setdefault(key, _Accumulator())
        day_key = day.isoformat()

        for person_id in selection.person_ids:
            person = lookups.people_by_id.get(person_id)
            if person is None:
                continue

            capacity = hours_per_day * employment_percent_on_date(person, day) / 100
            if capacity <= 0:
                continue

            availability = capacity - absence_hours(lookups, person_id, day_key, capacity)
            # Percent is of a full-time day, not of the person's own capacity.
            load = hours_per_day * committed_percent(
                lookups.commitments_by_person.get(person_id, []),
                day,
                project_filter,
            ) / 100

            bucket.availability_hours += availability
            bucket.load_hours += load
            if is_project_scope:
                bucket.project_load_hours += load

    return _summarize(buckets, is_project_scope=is_project_scope, project_estimation=project_estimation)


def _summarize(
    buckets: dict[str, _Accumulator],
    *,
    is_project_scope: bool,
    project_estimation: float,
) -> list[ReportBucket]:
    result: list[ReportBucket] = []
    cumulative_project_load = 0.0
    for key in sorted(buckets):
        acc = buckets[key]
        utilization = 0.0
        if acc.availability_hours > 0:
            utilization = acc.load_hours / acc.availability_hours * 100

        bucket = ReportBucket(
            period_start=key,
            availability_hours=_r2(acc.availability_hours),
            load_hours=_r2(acc.load_hours),
            free_hours=_r2(acc.availability_hours - acc.load_hours),
            utilization_pct=_r2(utilization),
        )
        if is_project_scope:
            cumulative_project_load += acc.project_load_hours
            completion = 0.0
            if project_estimation > 0:
                completion = cumulative_project_load / project_estimation * 100
            bucket.project_load_hours = _r2(cumulative_project_load)
            bucket.project_estimation_hours = _r2(project_estimation)
            bucket.project_completion_pct = _r2(completion)
        result.append(bucket)
    return result
