"""Application service for organisation structure, commitments and calendar entries."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from capacity_planner.core.auth import (
    EDIT_ROLES,
    VIEW_ROLES,
    RequestUserContext,
    enforce_tenant,
    ensure_role,
    required_organisation_id,
)
from capacity_planner.domain import types as domain
from capacity_planner.domain.commitments import normalize_target
from capacity_planner.domain.employment import (
    employment_percent_on_date,
    upsert_employment_change,
    validate_percent,
)
from capacity_planner.domain.errors import ForbiddenError, NotFoundError, PlannerError, ValidationError
from capacity_planner.domain.intervals import parse_month
from capacity_planner.domain.limits import validate_commitment_limit
from capacity_planner.domain.types import TargetType
from capacity_planner.models.entities import (
    Commitment,
    Organisation,
    OrgHoliday,
    Person,
    PersonAbsence,
    Project,
    Team,
    TeamAbsence,
)
from capacity_planner.repositories.planning_repository import (
    PlanningRepository,
    to_domain_commitment,
    to_domain_person,
)
from capacity_planner.services.telemetry import Telemetry, get_telemetry

_organisation_locks: dict[str, threading.Lock] = {}
_organisation_locks_guard = threading.Lock()


def organisation_write_lock(organisation_id: UUID | str) -> threading.Lock:
    """Process-wide lock serialising validate-then-write per organisation."""

    key = str(organisation_id)
    with _organisation_locks_guard:
        lock = _organisation_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _organisation_locks[key] = lock
        return lock


def organisation_uuid(context: RequestUserContext) -> UUID:
    raw = required_organisation_id(context)
    try:
        return UUID(raw)
    except ValueError as exc:
        raise ForbiddenError("Request organisation id is not valid.") from exc


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _clean_name(value: str, *, field_name: str = "name") -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationError(f"{field_name} must not be blank.")
    return name


def _require_positive(value: float, *, field_name: str) -> float:
    if value is None or not math.isfinite(value) or value <= 0:
        raise ValidationError(f"{field_name} must be greater than zero.")
    return value


def _validate_hours(hours: float, max_hours: float) -> float:
    if hours is None or not math.isfinite(hours):
        raise ValidationError("hours must be a finite number.")
    if hours < 0 or hours > max_hours:
        raise ValidationError(f"hours must be between 0 and {max_hours:g}.")
    return hours


def _validate_date_range(start: date, end: date, *, subject: str) -> None:
    if end < start:
        raise ValidationError(f"{subject} end_date must be greater than or equal to start_date.")


@dataclass(slots=True)
class OrganisationData:
    name: str
    hours_per_day: float
    hours_per_week: float
    hours_per_year: float


@dataclass(slots=True)
class PersonData:
    name: str
    employment_pct: float = 100.0
    employment_effective_from_month: str | None = None


@dataclass(slots=True)
class TeamData:
    name: str
    member_ids: list[UUID] = field(default_factory=list)


@dataclass(slots=True)
class ProjectData:
    name: str
    start_date: date
    end_date: date
    estimated_effort_hours: float


@dataclass(slots=True)
class CommitmentData:
    project_id: UUID
    percent: float
    target_type: str | None = None
    target_id: UUID | None = None
    start_date: date | None = None
    end_date: date | None = None
    # Older clients send only a person reference.
    person_id: UUID | None = None


@dataclass(slots=True)
class HolidayData:
    entry_date: date
    hours: float


@dataclass(slots=True)
class TeamAbsenceData:
    team_id: UUID
    entry_date: date
    hours: float


@dataclass(slots=True)
class PersonAbsenceData:
    person_id: UUID
    entry_date: date
    hours: float


class PlanningService:
    """Service implementing tenant-scoped planning data rules."""

    def __init__(self, db: Session, telemetry: Telemetry | None = None) -> None:
        self.db = db
        self.repo = PlanningRepository(db)
        self.telemetry = telemetry or get_telemetry()

    def _commit(self, conflict_detail: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=conflict_detail) from exc

    # ---------- Lookups ----------
    def _require_organisation(self, organisation_id: UUID) -> Organisation:
        organisation = self.repo.get_organisation(organisation_id)
        if organisation is None:
            raise NotFoundError("Organisation not found.")
        return organisation

    def _require_person(self, organisation_id: UUID, person_id: UUID) -> Person:
        person = self.repo.get_person(organisation_id, person_id)
        if person is None:
            raise NotFoundError("Person not found.")
        return person

    def _require_team(self, organisation_id: UUID, team_id: UUID) -> Team:
        team = self.repo.get_team(organisation_id, team_id)
        if team is None:
            raise NotFoundError("Team not found.")
        return team

    def _require_project(self, organisation_id: UUID, project_id: UUID) -> Project:
        project = self.repo.get_project(organisation_id, project_id)
        if project is None:
            raise NotFoundError("Project not found.")
        return project

    def _require_commitment(self, organisation_id: UUID, commitment_id: UUID) -> Commitment:
        commitment = self.repo.get_commitment(organisation_id, commitment_id)
        if commitment is None:
            raise NotFoundError("Commitment not found.")
        return commitment

    def _ensure_members_belong(self, organisation_id: UUID, member_ids: list[UUID]) -> None:
        for member_id in member_ids:
            self._require_person(organisation_id, member_id)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_organisation(organisation: Organisation) -> dict[str, object]:
        return {
            "id": str(organisation.id),
            "name": organisation.name,
            "hours_per_day": float(organisation.hours_per_day),
            "hours_per_week": float(organisation.hours_per_week),
            "hours_per_year": float(organisation.hours_per_year),
            "created_at": organisation.created_at.isoformat(),
            "updated_at": organisation.updated_at.isoformat(),
        }

    def serialize_person(self, person: Person) -> dict[str, object]:
        changes = self.repo.list_employment_changes(person.id)
        return {
            "id": str(person.id),
            "organisation_id": str(person.organisation_id),
            "name": person.name,
            "employment_pct": float(person.employment_pct),
            "employment_changes": [
                {"effective_month": change.effective_month, "employment_pct": float(change.employment_pct)}
                for change in changes
            ],
        }

    def serialize_team(self, team: Team) -> dict[str, object]:
        return {
            "id": str(team.id),
            "organisation_id": str(team.organisation_id),
            "name": team.name,
            "member_ids": [str(member_id) for member_id in self.repo.list_member_ids(team.id)],
        }

    @staticmethod
    def serialize_project(project: Project) -> dict[str, object]:
        return {
            "id": str(project.id),
            "organisation_id": str(project.organisation_id),
            "name": project.name,
            "start_date": project.start_date.isoformat(),
            "end_date": project.end_date.isoformat(),
            "estimated_effort_hours": float(project.estimated_effort_hours),
        }

    @staticmethod
    def serialize_commitment(commitment: Commitment) -> dict[str, object]:
        target = to_domain_commitment(commitment).target
        return {
            "id": str(commitment.id),
            "organisation_id": str(commitment.organisation_id),
            "target_type": target.type.value if target else None,
            "target_id": target.id if target else None,
            "project_id": str(commitment.project_id),
            "start_date": commitment.start_date.isoformat() if commitment.start_date else None,
            "end_date": commitment.end_date.isoformat() if commitment.end_date else None,
            "percent": float(commitment.percent),
        }

    @staticmethod
    def serialize_holiday(entry: OrgHoliday) -> dict[str, object]:
        return {
            "id": str(entry.id),
            "organisation_id": str(entry.organisation_id),
            "date": entry.entry_date.isoformat(),
            "hours": float(entry.hours),
        }

    @staticmethod
    def serialize_team_absence(entry: TeamAbsence) -> dict[str, object]:
        return {
            "id": str(entry.id),
            "organisation_id": str(entry.organisation_id),
            "team_id": str(entry.team_id),
            "date": entry.entry_date.isoformat(),
            "hours": float(entry.hours),
        }

    @staticmethod
    def serialize_person_absence(entry: PersonAbsence) -> dict[str, object]:
        return {
            "id": str(entry.id),
            "organisation_id": str(entry.organisation_id),
            "person_id": str(entry.person_id),
            "date": entry.entry_date.isoformat(),
            "hours": float(entry.hours),
        }

    # ---------- Organisations ----------
    def list_organisations(self, *, context: RequestUserContext) -> list[Organisation]:
        ensure_role(context, VIEW_ROLES)
        organisations = self.repo.list_organisations()
        scoped = context.organisation_id.strip()
        if not scoped:
            return organisations
        return [organisation for organisation in organisations if str(organisation.id) == scoped]

    def get_organisation(self, *, context: RequestUserContext, organisation_id: UUID) -> Organisation:
        ensure_role(context, VIEW_ROLES)
        enforce_tenant(context, str(organisation_id))
        return self._require_organisation(organisation_id)

    @staticmethod
    def _validate_organisation(data: OrganisationData) -> str:
        name = _clean_name(data.name)
        _require_positive(data.hours_per_day, field_name="hours_per_day")
        _require_positive(data.hours_per_week, field_name="hours_per_week")
        _require_positive(data.hours_per_year, field_name="hours_per_year")
        return name

    def create_organisation(self, *, context: RequestUserContext, data: OrganisationData) -> Organisation:
        ensure_role(context, EDIT_ROLES)
        name = self._validate_organisation(data)

        now = _now()
        organisation = Organisation(
            name=name,
            hours_per_day=data.hours_per_day,
            hours_per_week=data.hours_per_week,
            hours_per_year=data.hours_per_year,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_organisation(organisation)
        self._commit("Organisation could not be created.")
        self.db.refresh(organisation)

        self.telemetry.record("organisation.created", {"organisation_id": str(organisation.id)})
        return organisation

    def update_organisation(
        self,
        *,
        context: RequestUserContext,
        organisation_id: UUID,
        data: OrganisationData,
    ) -> Organisation:
        ensure_role(context, EDIT_ROLES)
        enforce_tenant(context, str(organisation_id))
        name = self._validate_organisation(data)

        organisation = self._require_organisation(organisation_id)
        organisation.name = name
        organisation.hours_per_day = data.hours_per_day
        organisation.hours_per_week = data.hours_per_week
        organisation.hours_per_year = data.hours_per_year
        organisation.updated_at = _now()
        self._commit("Organisation could not be updated.")
        self.db.refresh(organisation)

        self.telemetry.record("organisation.updated", {"organisation_id": str(organisation.id)})
        return organisation

    def delete_organisation(self, *, context: RequestUserContext, organisation_id: UUID) -> None:
        ensure_role(context, EDIT_ROLES)
        enforce_tenant(context, str(organisation_id))
        organisation = self._require_organisation(organisation_id)

        self.repo.delete_organisation(organisation)
        self.db.commit()
        self.telemetry.record("organisation.deleted", {"organisation_id": str(organisation_id)})

    # ---------- People ----------
    def list_people(self, *, context: RequestUserContext) -> list[Person]:
        ensure_role(context, VIEW_ROLES)
        return self.repo.list_people(organisation_uuid(context))

    def get_person(self, *, context: RequestUserContext, person_id: UUID) -> Person:
        ensure_role(context, VIEW_ROLES)
        return self._require_person(organisation_uuid(context), person_id)

    def create_person(self, *, context: RequestUserContext, data: PersonData) -> Person:
        ensure_role(context, EDIT_ROLES)
        organisation_id = organisation_uuid(context)
        name = _clean_name(data.name)
        validate_percent(data.employment_pct)
        self._require_organisation(organisation_id)

        now = _now()
        person = Person(
            organisation_id=organisation_id,
            name=name,
            employment_pct=data.employment_pct,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_person(person)
        self._commit("Person could not be created.")
        self.db.refresh(person)

        self.telemetry.record("person.created", {"person_id": str(person.id)})
        return person

    def update_person(self, *, context: RequestUserContext, person_id: UUID, data: PersonData) -> Person:
        """Rename a person and change employment.

        Without an effective month the baseline percentage is replaced; with
        one, the change for that month is inserted or overwritten instead.
        """

        ensure_role(context, EDIT_ROLES)
        organisation_id = organisation_uuid(context)
        name = _clean_name(data.name)
        validate_percent(data.employment_pct)

        person = self._require_person(organisation_id, person_id)
        person.name = name
        effective_month = (data.employment_effective_from_month or "").strip()
        if effective_month:
            month = parse_month(effective_month, field="employment_effective_from_month")
            current = to_domain_person(person, self.repo.list_employment_changes(person.id))
            changes = upsert_employment_change(current.employment_changes, month, data.employment_pct)
            self.repo.replace_employment_changes(person.id, changes)
        else:
            person.employment_pct = data.employment_pct
        person.updated_at = _now()
        self._commit("Employment change conflicts with an existing record.")
        self.db.refresh(person)

        self.telemetry.record("person.updated", {"person_id": str(person.id)})
        return person

    def delete_person(self, *, context: RequestUserContext, person_id: UUID) -> None:
        ensure_role(context, EDIT_ROLES)
        person = self._require_person(organisation_uuid(context), person_id)

        self.repo.delete_person(person)
        self.db.commit()
        self.telemetry.record("person.deleted", {"person_id": str(person_id)})

    # ---------- Teams ----------
    def list_teams(self, *, context: RequestUserContext) -> list[Team]:
        ensure_role(context, VIEW_ROLES)
        return self.repo.list_teams(organisation_uuid(context))

    def get_team(self, *, context: RequestUserContext, team_id: UUID) -> Team:
        ensure_role(context, VIEW_ROLES)
        return self._require_team(organisation_uuid(context), team_id)

    def create_team(self, *, context: RequestUserContext, data: TeamData) -> Team:
        ensure_role(context, EDIT_ROLES)
        organisation_id = organisation_uuid(context)
        name = _clean_name(data.name)
        self._require_organisation(organisation_id)
        self._ensure_members_belong(organisation_id, data.member_ids)

        now = _now()
        team = Team(organisation_id=organisation_id, name=name, created_at=now, updated_at=now)
        self.repo.add_team(team)
        self.repo.set_members(team.id, data.member_ids)
        self._commit("Team could not be created.")
        self.db.refresh(team)

        self.telemetry.record("team.created", {"team_id": str(team.id)})
        return team

    def update_team(self, *, context: RequestUserContext, team_id: UUID, data: TeamData) -> Team:
        ensure_role(context, EDIT_ROLES)
        organisation_id = organisation_uuid(context)
        name = _clean_name(data.name)
        self._ensure_members_belong(organisation_id, data.member_ids)

        team = self._require_team(organisation_id, team_id)
        team.name = name
        team.updated_at = _now()
        self.repo.set_members(team.id, data.member_ids)
        self._commit("Team could not be updated.")
        self.db.refresh(team)

        self.telemetry.record("team.updated", {"team_id": str(team.id)})
        return team

    def delete_team(self, *, context: RequestUserContext, team_id: UUID) -> None:
        ensure_role(context, EDIT_ROLES)
        team = self._require_team(organisation_uuid(context), team_id)

        self.repo.delete_team(team)
        self.db.commit()
        self.telemetry.record("team.deleted", {"team_id": str(team_id)})

    def add_team_member(self, *, context: RequestUserContext, team_id: UUID, person_id: UUID) -> Team:
        ensure_role(context, EDIT_ROLES)
        organisation_id = organisation_uuid(context)
        self._require_person(organisation_id, person_id)
        team = self._require_team(organisation_id, team_id)

        members = self.repo.list_member_ids(team.id)
        if person_id in members:
            return team
        self.repo.set_members(team.id, [*members, person_id])
        self._commit("Team member could not be added.")

        self.telemetry.record("team.updated", {"team_id": str(team.id)})
        return team

    def remove_team_member(self, *, context: RequestUserContext, team_id: UUID, person_id: UUID) -> Team:
        ensure_role(context, EDIT_ROLES)
        team = self._require_team(organisation_uuid(context), team_id)

        members = [member_id for member_id in self.repo.list_member_ids(team.id) if member_id != person_id]
        self.repo.set_members(team.id, members)
        self.db.commit()

        self.telemetry.record("team.updated", {"team_id": str(team.id)})
        return team

    # ---------- Projects ----------
    def list_projects(self, *, context: RequestUserContext) -> list[Project]:
        ensure_role(context, VIEW_ROLES)
        return self.repo.list_projects(organisation_uuid(context))

    def get_project(self, *, context: RequestUserContext, project_id: UUID) -> Project:
        ensure_role(context, VIEW_ROLES)
        return self._require_project(organisation_uuid(context), project_id)

    @staticmethod
    def _validate_project(data: ProjectData) -> str:
        name = _clean_name(data.name)
        _require_positive(data.estimated_effort_hours, field_name="estimated_effort_hours")
        _validate_date_range(data.start_date, data.end_date, subject="Project")
        return name

    def create_project(self, *, context: RequestUserContext, data: ProjectData) -> Project:
        ensure_role(context, EDIT_ROLES)
        organisation_id = organisation_uuid(context)
        name = self._validate_project(data)
        self._require_organisation(organisation_id)

        now = _now()
        project = Project(
            organisation_id=organisation_id,
            name=name,
            start_date=data.start_date,
            end_date=data.end_date,
            estimated_effort_hours=data.estimated_effort_hours,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_project(project)
        self._commit("Project could not be created.")
        self.db.refresh(project)

        self.telemetry.record("project.created", {"project_id": str(project.id)})
        return project

    def update_project(self, *, context: RequestUserContext, project_id: UUID, data: ProjectData) -> Project:
        ensure_role(context, EDIT_ROLES)
        name = self._validate_project(data)

        project = self._require_project(organisation_uuid(context), project_id)
        project.name = name
        project.start_date = data.start_date
        project.end_date = data.end_date
        project.estimated_effort_hours = data.estimated_effort_hours
        project.updated_at = _now()
        self._commit("Project could not be updated.")
        self.db.refresh(project)

        self.telemetry.record("project.updated", {"project_id": str(project.id)})
        return project

    def delete_project(self, *, context: RequestUserContext, project_id: UUID) -> None:
        ensure_role(context, EDIT_ROLES)
        project = self._require_project(organisation_uuid(context), project_id)

        self.repo.delete_project(project)
        self.db.commit()
        self.telemetry.record("project.deleted", {"project_id": str(project_id)})

    # ---------- Commitments ----------
    def list_commitments(self, *, context: RequestUserContext) -> list[Commitment]:
        ensure_role(context, VIEW_ROLES)
        return self.repo.list_commitments(organisation_uuid(context))

    def get_commitment(self, *, context: RequestUserContext, commitment_id: UUID) -> Commitment:
        ensure_role(context, VIEW_ROLES)
        return self._require_commitment(organisation_uuid(context), commitment_id)

    @staticmethod
    def _validate_commitment(data: CommitmentData) -> domain.CommitmentTarget:
        target = normalize_target(
            data.target_type,
            str(data.target_id) if data.target_id is not None else None,
            str(data.person_id) if data.person_id is not None else None,
        )
        if target is None:
            raise ValidationError("target_type must be 'person' or 'team' and target_id is required.")
        if data.start_date is None or data.end_date is None:
            raise ValidationError("start_date and end_date are required.")
        _validate_date_range(data.start_date, data.end_date, subject="Commitment")
        if data.percent is None or not math.isfinite(data.percent) or data.percent < 0:
            raise ValidationError("percent must be a finite number greater than or equal to zero.")
        return target

    def _ensure_target_exists(self, organisation_id: UUID, target: domain.CommitmentTarget) -> None:
        target_id = UUID(target.id)
        if target.type is TargetType.PERSON:
            self._require_person(organisation_id, target_id)
            return
        team = self._require_team(organisation_id, target_id)
        if not self.repo.list_member_ids(team.id):
            raise ValidationError("Team has no members to commit.")

    def _check_commitment(
        self,
        organisation_id: UUID,
        data: CommitmentData,
        target: domain.CommitmentTarget,
        *,
        commitment_id: UUID | None = None,
    ) -> None:
        """Run every write-time rule; call while holding the organisation lock."""

        project = self._require_project(organisation_id, data.project_id)
        if data.start_date < project.start_date or data.end_date > project.end_date:
            raise ValidationError("Commitment dates must fall within the project date range.")
        self._ensure_target_exists(organisation_id, target)

        snapshot = self.repo.load_snapshot(organisation_id)
        if snapshot is None:
            raise NotFoundError("Organisation not found.")
        candidate = domain.Commitment(
            id=str(commitment_id) if commitment_id else "",
            organisation_id=str(organisation_id),
            target=target,
            project_id=str(data.project_id),
            start_date=data.start_date.isoformat(),
            end_date=data.end_date.isoformat(),
            percent=data.percent,
        )
        validate_commitment_limit(
            candidate,
            hours_per_day=snapshot.organisation.hours_per_day,
            people_by_id={person.id: person for person in snapshot.people},
            teams_by_id={team.id: team for team in snapshot.teams},
            commitments=snapshot.commitments,
            exclude_commitment_id=str(commitment_id) if commitment_id else None,
        )

    @staticmethod
    def _apply_commitment(commitment: Commitment, data: CommitmentData, target: domain.CommitmentTarget) -> None:
        commitment.target_type = target.type
        commitment.target_id = UUID(target.id)
        commitment.person_id = UUID(target.id) if target.type is TargetType.PERSON else None
        commitment.project_id = data.project_id
        commitment.start_date = data.start_date
        commitment.end_date = data.end_date
        commitment.percent = data.percent
        commitment.updated_at = _now()

    def create_commitment(self, *, context: RequestUserContext, data: CommitmentData) -> Commitment:
        ensure_role(context, EDIT_ROLES)
        organisation_id = organisation_uuid(context)
        target = self._validate_commitment(data)

        with organisation_write_lock(organisation_id):
            try:
                if self.repo.lock_organisation(organisation_id) is None:
                    raise NotFoundError("Organisation not found.")
                self._check_commitment(organisation_id, data, target)

                commitment = Commitment(organisation_id=organisation_id, created_at=_now())
                self._apply_commitment(commitment, data, target)
                self.repo.add_commitment(commitment)
            except PlannerError:
                self.db.rollback()
                raise
            self._commit("Commitment could not be created.")
        self.db.refresh(commitment)

        self.telemetry.record("commitment.created", {"commitment_id": str(commitment.id)})
        return commitment

    def update_commitment(
        self,
        *,
        context: RequestUserContext,
        commitment_id: UUID,
        data: CommitmentData,
    ) -> Commitment:
        ensure_role(context, EDIT_ROLES)
        organisation_id = organisation_uuid(context)
        target = self._validate_commitment(data)

        with organisation_write_lock(organisation_id):
            try:
                if self.repo.lock_organisation(organisation_id) is None:
                    raise NotFoundError("Organisation not found.")
                commitment = self._require_commitment(organisation_id, commitment_id)
                self._check_commitment(organisation_id, data, target, commitment_id=commitment.id)
                self._apply_commitment(commitment, data, target)
            except PlannerError:
                self.db.rollback()
                raise
            self._commit("Commitment could not be updated.")
        self.db.refresh(commitment)

        self.telemetry.record("commitment.updated", {"commitment_id": str(commitment.id)})
        return commitment

    def delete_commitment(self, *, context: RequestUserContext, commitment_id: UUID) -> None:
        ensure_role(context, EDIT_ROLES)
        commitment = self._require_commitment(organisation_uuid(context), commitment_id)

        self.repo.delete_commitment(commitment)
        self.db.commit()
        self.telemetry.record("commitment.deleted", {"commitment_id": str(commitment_id)})

    # ---------- Calendar ----------
    def list_holidays(self, *, context: RequestUserContext) -> list[OrgHoliday]:
        ensure_role(context, VIEW_ROLES)
        return self.repo.list_holidays(organisation_uuid(context))

    def create_holiday(self, *, context: RequestUserContext, data: HolidayData) -> OrgHoliday:
        ensure_role(context, EDIT_ROLES)
        organisation_id = organisation_uuid(context)
        organisation = self._require_organisation(organisation_id)
        _validate_hours(data.hours, float(organisation.hours_per_day))

        entry = OrgHoliday(organisation_id=organisation_id, entry_date=data.entry_date, hours=data.hours)
        self.repo.add_entry(entry)
        self._commit("Holiday could not be created.")
        self.db.refresh(entry)

        self.telemetry.record("holiday.created", {"holiday_id": str(entry.id)})
        return entry

    def delete_holiday(self, *, context: RequestUserContext, holiday_id: UUID) -> None:
        ensure_role(context, EDIT_ROLES)
        entry = self.repo.get_holiday(organisation_uuid(context), holiday_id)
        if entry is None:
            raise NotFoundError("Holiday not found.")

        self.repo.delete_entry(entry)
        self.db.commit()
        self.telemetry.record("holiday.deleted", {"holiday_id": str(holiday_id)})

    def list_team_absences(self, *, context: RequestUserContext) -> list[TeamAbsence]:
        ensure_role(context, VIEW_ROLES)
        return self.repo.list_team_absences(organisation_uuid(context))

    def create_team_absence(self, *, context: RequestUserContext, data: TeamAbsenceData) -> TeamAbsence:
        ensure_role(context, EDIT_ROLES)
        organisation_id = organisation_uuid(context)
        organisation = self._require_organisation(organisation_id)
        self._require_team(organisation_id, data.team_id)
        _validate_hours(data.hours, float(organisation.hours_per_day))

        entry = TeamAbsence(
            organisation_id=organisation_id,
            team_id=data.team_id,
            entry_date=data.entry_date,
            hours=data.hours,
        )
        self.repo.add_entry(entry)
        self._commit("Team absence could not be created.")
        self.db.refresh(entry)

        self.telemetry.record("team_absence.created", {"entry_id": str(entry.id)})
        return entry

    def delete_team_absence(self, *, context: RequestUserContext, entry_id: UUID) -> None:
        ensure_role(context, EDIT_ROLES)
        entry = self.repo.get_team_absence(organisation_uuid(context), entry_id)
        if entry is None:
            raise NotFoundError("Team absence not found.")

        self.repo.delete_entry(entry)
        self.db.commit()
        self.telemetry.record("team_absence.deleted", {"entry_id": str(entry_id)})

    def list_person_absences(
        self,
        *,
        context: RequestUserContext,
        person_id: UUID | None = None,
    ) -> list[PersonAbsence]:
        ensure_role(context, VIEW_ROLES)
        organisation_id = organisation_uuid(context)
        if person_id is not None:
            self._require_person(organisation_id, person_id)
        return self.repo.list_person_absences(organisation_id, person_id=person_id)

    def create_person_absence(self, *, context: RequestUserContext, data: PersonAbsenceData) -> PersonAbsence:
        """Record absence hours bounded by the person's capacity on that date.

        The bound covers the sum of every absence the person has on the date,
        not only the new entry.
        """

        ensure_role(context, EDIT_ROLES)
        organisation_id = organisation_uuid(context)

        with organisation_write_lock(organisation_id):
            try:
                organisation = self.repo.lock_organisation(organisation_id)
                if organisation is None:
                    raise NotFoundError("Organisation not found.")
                person = self._require_person(organisation_id, data.person_id)
                domain_person = to_domain_person(person, self.repo.list_employment_changes(person.id))
                max_hours = float(organisation.hours_per_day) * employment_percent_on_date(domain_person, data.entry_date) / 100
                _validate_hours(data.hours, max_hours)

                entry = PersonAbsence(
                    organisation_id=organisation_id,
                    person_id=data.person_id,
                    entry_date=data.entry_date,
                    hours=data.hours,
                )
                self.repo.create_person_absence_with_daily_limit(entry, max_hours)
            except PlannerError:
                self.db.rollback()
                raise
            self._commit("Person absence could not be created.")
        self.db.refresh(entry)

        self.telemetry.record("person_absence.created", {"entry_id": str(entry.id)})
        return entry

    def delete_person_absence(
        self,
        *,
        context: RequestUserContext,
        entry_id: UUID,
        person_id: UUID | None = None,
    ) -> None:
        ensure_role(context, EDIT_ROLES)
        entry = self.repo.get_person_absence(organisation_uuid(context), entry_id)
        if entry is None or (person_id is not None and entry.person_id != person_id):
            raise NotFoundError("Person absence not found.")

        self.repo.delete_entry(entry)
        self.db.commit()
        self.telemetry.record("person_absence.deleted", {"entry_id": str(entry_id)})
