"""Normalisation of commitment targets into concrete person ids."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date

from capacity_planner.domain.intervals import DateRange, parse_open_range
from capacity_planner.domain.types import Commitment, CommitmentTarget, Person, TargetType, Team


@dataclass(frozen=True, slots=True)
class ResolvedCommitment:
    commitment_id: str
    project_id: str
    percent: float
    person_ids: tuple[str, ...]
    period: DateRange

    def active_on(self, day: date) -> bool:
        return self.period.contains(day)


def normalize_target(
    target_type: str | None,
    target_id: str | None,
    legacy_person_id: str | None = None,
) -> CommitmentTarget | None:
    """Build the target variant from stored columns.

    Older records carry only a direct person reference and no target type;
    those become person targets. Unknown target types yield ``None``.
    """

    type_text = (target_type or "").strip()
    id_text = (target_id or "").strip()
    legacy_text = (legacy_person_id or "").strip()

    if not type_text and legacy_text:
        return CommitmentTarget(type=TargetType.PERSON, id=legacy_text)
    try:
        kind = TargetType(type_text)
    except ValueError:
        return None
    if not id_text:
        return None
    return CommitmentTarget(type=kind, id=id_text)


def unique_ids(values) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def target_person_ids(
    target: CommitmentTarget | None,
    people_by_id: Mapping[str, Person],
    teams_by_id: Mapping[str, Team],
) -> tuple[str, ...]:
    """People a target currently expands to; empty when it dangles."""

    if target is None:
        return ()
    if target.type is TargetType.PERSON:
        return (target.id,) if target.id in people_by_id else ()
    team = teams_by_id.get(target.id)
    if team is None:
        return ()
    return unique_ids(member_id for member_id in team.member_ids if member_id in people_by_id)


def resolve_commitment(
    commitment: Commitment,
    people_by_id: Mapping[str, Person],
    teams_by_id: Mapping[str, Team],
) -> ResolvedCommitment | None:
    """Resolve a commitment to its people and date range.

    Malformed dates raise ``ValidationError``; a target that no longer
    resolves to anyone returns ``None``.
    """

    period = parse_open_range(commitment.start_date, commitment.end_date)
    person_ids = target_person_ids(commitment.target, people_by_id, teams_by_id)
    if not person_ids:
        return None
    return ResolvedCommitment(
        commitment_id=commitment.id,
        project_id=commitment.project_id,
        percent=commitment.percent,
        person_ids=person_ids,
        period=period,
    )


def targets_person(
    commitment: Commitment,
    person_id: str,
    teams_by_id: Mapping[str, Team],
) -> bool:
    """Whether the commitment applies to ``person_id`` directly or via a team."""

    target = commitment.target
    if target is None:
        return False
    if target.type is TargetType.PERSON:
        return target.id == person_id
    team = teams_by_id.get(target.id)
    return team is not None and person_id in team.member_ids
