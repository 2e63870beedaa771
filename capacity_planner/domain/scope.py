"""Resolution of a report scope into the people and projects in view."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from capacity_planner.domain.commitments import unique_ids
from capacity_planner.domain.errors import NotFoundError, ValidationError
from capacity_planner.domain.types import Commitment, Person, Scope, TargetType, Team


@dataclass(frozen=True, slots=True)
class ScopeSelection:
    person_ids: tuple[str, ...]
    project_ids: frozenset[str] = field(default_factory=frozenset)


def parse_scope(value: str | Scope) -> Scope:
    try:
        return Scope(value)
    except ValueError as exc:
        raise ValidationError(
            f"scope must be one of: {', '.join(member.value for member in Scope)}."
        ) from exc


def resolve_scope(
    scope: str | Scope,
    ids: Iterable[str],
    *,
    people_by_id: Mapping[str, Person],
    teams_by_id: Mapping[str, Team],
    project_ids: Iterable[str],
    commitments: Iterable[Commitment] = (),
) -> ScopeSelection:
    scope = parse_scope(scope)
    requested = list(ids)

    if scope is Scope.ORGANISATION:
        return ScopeSelection(person_ids=tuple(people_by_id))

    if scope is Scope.PERSON:
        if not requested:
            return ScopeSelection(person_ids=tuple(people_by_id))
        for person_id in requested:
            if person_id not in people_by_id:
                raise NotFoundError(f"Person {person_id} not found.")
        return ScopeSelection(person_ids=unique_ids(requested))

    if scope is Scope.TEAM:
        team_ids = requested or list(teams_by_id)
        members: list[str] = []
        for team_id in team_ids:
            team = teams_by_id.get(team_id)
            if team is None:
                raise NotFoundError(f"Team {team_id} not found.")
            members.extend(team.member_ids)
        return ScopeSelection(person_ids=unique_ids(members))

    known_projects = set(project_ids)
    targets = requested or list(known_projects)
    for project_id in targets:
        if project_id not in known_projects:
            raise NotFoundError(f"Project {project_id} not found.")
    target_set = frozenset(targets)

    selected: list[str] = []
    for commitment in commitments:
        if commitment.project_id not in target_set or commitment.target is None:
            continue
        target = commitment.target
        if target.type is TargetType.PERSON:
            if target.id in people_by_id:
                selected.append(target.id)
        else:
            team = teams_by_id.get(target.id)
            if team is not None:
                selected.extend(team.member_ids)

    return ScopeSelection(person_ids=unique_ids(selected), project_ids=target_set)
