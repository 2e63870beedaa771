"""Ceiling check for a proposed commitment against existing ones."""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date

from capacity_planner.domain.commitments import resolve_commitment, targets_person
from capacity_planner.domain.errors import ValidationError
from capacity_planner.domain.intervals import DateRange, day_after, overlap, parse_open_range
from capacity_planner.domain.types import Commitment, Person, Team

logger = logging.getLogger(__name__)

HOURS_PER_CALENDAR_DAY = 24.0
LIMIT_TOLERANCE = 1e-9

LIMIT_EXCEEDED_DETAIL = "Commitment exceeds 24 hours/day theoretical limit."


def max_commitment_percent(hours_per_day: float) -> float:
    """Highest aggregate percentage one person may carry on a single day."""

    if hours_per_day is None or not math.isfinite(hours_per_day) or hours_per_day <= 0:
        raise ValidationError("hours_per_day must be greater than zero.")
    return HOURS_PER_CALENDAR_DAY * 100 / hours_per_day


def exceeds_limit(total: float, ceiling: float) -> bool:
    return total > ceiling + LIMIT_TOLERANCE


def build_events(
    commitments: Iterable[Commitment],
    *,
    person_id: str,
    candidate_period: DateRange,
    teams_by_id: Mapping[str, Team],
    exclude_commitment_id: str | None = None,
) -> list[tuple[date, float]]:
    """Sorted ``(date, delta)`` pairs for commitments overlapping the candidate."""

    deltas: dict[date, float] = defaultdict(float)
    for commitment in commitments:
        if exclude_commitment_id is not None and commitment.id == exclude_commitment_id:
            continue
        if not targets_person(commitment, person_id, teams_by_id):
            continue

        existing = parse_open_range(commitment.start_date, commitment.end_date)
        shared = overlap(candidate_period.start, candidate_period.end, existing.start, existing.end)
        if shared is None:
            continue
        deltas[shared.start] += commitment.percent
        closing = day_after(shared.end)
        if closing is not None:
            deltas[closing] -= commitment.percent

    return sorted(deltas.items())


def validate_commitment_limit(
    candidate: Commitment,
    *,
    hours_per_day: float,
    people_by_id: Mapping[str, Person],
    teams_by_id: Mapping[str, Team],
    commitments: Iterable[Commitment],
    exclude_commitment_id: str | None = None,
) -> None:
    """Raise ``ValidationError`` if any day would exceed the ceiling.

    The check covers every person the candidate resolves to and walks the
    running total of the candidate plus overlapping existing commitments.
    It evaluates one candidate against persisted state; callers serialise
    concurrent writes.
    """

    percent = candidate.percent
    if percent is None or not math.isfinite(percent) or percent < 0:
        raise ValidationError("percent must be a finite number greater than or equal to zero.")

    ceiling = max_commitment_percent(hours_per_day)
    if exceeds_limit(candidate.percent, ceiling):
        logger.warning("Rejected commitment at %.4f%% above ceiling %.4f%%", candidate.percent, ceiling)
        raise ValidationError(LIMIT_EXCEEDED_DETAIL)

    resolved = resolve_commitment(candidate, people_by_id, teams_by_id)
    if resolved is None:
        return

    existing = list(commitments)
    for person_id in resolved.person_ids:
        events = build_events(
            existing,
            person_id=person_id,
            candidate_period=resolved.period,
            teams_by_id=teams_by_id,
            exclude_commitment_id=exclude_commitment_id,
        )
        total = candidate.percent
        for event_date, delta in events:
            if event_date > resolved.period.end:
                break
            total += delta
            if exceeds_limit(total, ceiling):
                logger.warning(
                    "Rejected commitment for person %s: %.4f%% on %s above ceiling %.4f%%",
                    person_id,
                    total,
                    event_date,
                    ceiling,
                )
                raise ValidationError(LIMIT_EXCEEDED_DETAIL)
