"""Immutable records consumed and produced by the calculation core."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Scope(str, enum.Enum):
    ORGANISATION = "organisation"
    PERSON = "person"
    TEAM = "team"
    PROJECT = "project"


class Granularity(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class TargetType(str, enum.Enum):
    PERSON = "person"
    TEAM = "team"


@dataclass(frozen=True, slots=True)
class Organisation:
    id: str
    name: str
    hours_per_day: float
    hours_per_week: float
    hours_per_year: float


@dataclass(frozen=True, slots=True)
class EmploymentChange:
    effective_month: str
    employment_pct: float


@dataclass(frozen=True, slots=True)
class Person:
    id: str
    organisation_id: str
    name: str
    employment_pct: float
    employment_changes: tuple[EmploymentChange, ...] = ()


@dataclass(frozen=True, slots=True)
class Team:
    id: str
    organisation_id: str
    name: str
    member_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Project:
    id: str
    organisation_id: str
    name: str
    start_date: str
    end_date: str
    estimated_effort_hours: float


@dataclass(frozen=True, slots=True)
class CommitmentTarget:
    """Who a commitment applies to: one person or every member of a team."""

    type: TargetType
    id: str


@dataclass(frozen=True, slots=True)
class Commitment:
    """Commitment of a target to a project.

    ``start_date``/``end_date`` are ISO strings; an empty string is an open
    end. ``target`` is ``None`` for records whose target could not be
    normalised; such records never contribute load.
    """

    id: str
    organisation_id: str
    target: CommitmentTarget | None
    project_id: str
    start_date: str
    end_date: str
    percent: float


@dataclass(frozen=True, slots=True)
class OrgHoliday:
    id: str
    organisation_id: str
    date: str
    hours: float


@dataclass(frozen=True, slots=True)
class TeamAbsence:
    id: str
    organisation_id: str
    team_id: str
    date: str
    hours: float


@dataclass(frozen=True, slots=True)
class PersonAbsence:
    id: str
    organisation_id: str
    person_id: str
    date: str
    hours: float


@dataclass(frozen=True, slots=True)
class ReportRequest:
    scope: str
    from_date: str
    to_date: str
    granularity: str
    ids: tuple[str, ...] = ()


@dataclass(slots=True)
class ReportBucket:
    period_start: str
    availability_hours: float = 0.0
    load_hours: float = 0.0
    free_hours: float = 0.0
    utilization_pct: float = 0.0
    project_load_hours: float | None = None
    project_estimation_hours: float | None = None
    project_completion_pct: float | None = None


@dataclass(frozen=True, slots=True)
class PlanningSnapshot:
    """Everything the core needs about one organisation, read up front."""

    organisation: Organisation
    people: tuple[Person, ...] = ()
    teams: tuple[Team, ...] = ()
    projects: tuple[Project, ...] = ()
    commitments: tuple[Commitment, ...] = ()
    holidays: tuple[OrgHoliday, ...] = ()
    team_absences: tuple[TeamAbsence, ...] = ()
    person_absences: tuple[PersonAbsence, ...] = ()


@dataclass(frozen=True, slots=True)
class CalculationInput:
    snapshot: PlanningSnapshot
    request: ReportRequest
