"""Tenant-scoped persistence for organisations, people, teams and commitments."""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.orm import Session

from capacity_planner.domain import types as domain
from capacity_planner.domain.commitments import normalize_target
from capacity_planner.domain.errors import ValidationError
from capacity_planner.domain.types import TargetType
from capacity_planner.models.entities import (
    Commitment,
    EmploymentChange,
    Organisation,
    OrgHoliday,
    Person,
    PersonAbsence,
    Project,
    Team,
    TeamAbsence,
    TeamMember,
)

DAILY_LIMIT_TOLERANCE = 1e-9


class PlanningRepository:
    """Persistence operations used by planning and reporting services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Organisations ----------
    def list_organisations(self) -> list[Organisation]:
        return self.db.scalars(select(Organisation).order_by(Organisation.name.asc(), Organisation.id.asc())).all()

    def get_organisation(self, organisation_id: UUID) -> Organisation | None:
        return self.db.scalar(select(Organisation).where(Organisation.id == organisation_id))

    def lock_organisation(self, organisation_id: UUID) -> Organisation | None:
        """Row-lock the organisation for the rest of the transaction."""

        return self.db.scalar(
            select(Organisation).where(Organisation.id == organisation_id).with_for_update()
        )

    def add_organisation(self, organisation: Organisation) -> Organisation:
        self.db.add(organisation)
        self.db.flush()
        return organisation

    def delete_organisation(self, organisation: Organisation) -> None:
        organisation_id = organisation.id
        person_ids = select(Person.id).where(Person.organisation_id == organisation_id)
        team_ids = select(Team.id).where(Team.organisation_id == organisation_id)

        self.db.execute(delete(Commitment).where(Commitment.organisation_id == organisation_id))
        self.db.execute(delete(OrgHoliday).where(OrgHoliday.organisation_id == organisation_id))
        self.db.execute(delete(TeamAbsence).where(TeamAbsence.organisation_id == organisation_id))
        self.db.execute(delete(PersonAbsence).where(PersonAbsence.organisation_id == organisation_id))
        self.db.execute(delete(TeamMember).where(TeamMember.team_id.in_(team_ids)))
        self.db.execute(delete(EmploymentChange).where(EmploymentChange.person_id.in_(person_ids)))
        self.db.execute(delete(Team).where(Team.organisation_id == organisation_id))
        self.db.execute(delete(Person).where(Person.organisation_id == organisation_id))
        self.db.execute(delete(Project).where(Project.organisation_id == organisation_id))
        self.db.delete(organisation)
        self.db.flush()

    # ---------- People ----------
    def list_people(self, organisation_id: UUID) -> list[Person]:
        return self.db.scalars(
            select(Person)
            .where(Person.organisation_id == organisation_id)
            .order_by(Person.name.asc(), Person.id.asc())
        ).all()

    def get_person(self, organisation_id: UUID, person_id: UUID) -> Person | None:
        return self.db.scalar(
            select(Person).where(and_(Person.id == person_id, Person.organisation_id == organisation_id))
        )

    def add_person(self, person: Person) -> Person:
        self.db.add(person)
        self.db.flush()
        return person

    def delete_person(self, person: Person) -> None:
        person_id = person.id
        self.db.execute(delete(TeamMember).where(TeamMember.person_id == person_id))
        self.db.execute(delete(PersonAbsence).where(PersonAbsence.person_id == person_id))
        self.db.execute(delete(EmploymentChange).where(EmploymentChange.person_id == person_id))
        self.db.execute(
            delete(Commitment).where(
                and_(
                    Commitment.organisation_id == person.organisation_id,
                    or_(
                        and_(Commitment.target_type == TargetType.PERSON, Commitment.target_id == person_id),
                        and_(Commitment.target_type.is_(None), Commitment.person_id == person_id),
                    ),
                )
            )
        )
        self.db.delete(person)
        self.db.flush()

    def list_employment_changes(self, person_id: UUID) -> list[EmploymentChange]:
        return self.db.scalars(
            select(EmploymentChange)
            .where(EmploymentChange.person_id == person_id)
            .order_by(EmploymentChange.effective_month.asc())
        ).all()

    def replace_employment_changes(self, person_id: UUID, changes: list[domain.EmploymentChange]) -> None:
        self.db.execute(delete(EmploymentChange).where(EmploymentChange.person_id == person_id))
        for change in changes:
            self.db.add(
                EmploymentChange(
                    person_id=person_id,
                    effective_month=change.effective_month,
                    employment_pct=change.employment_pct,
                )
            )
        self.db.flush()

    # ---------- Teams ----------
    def list_teams(self, organisation_id: UUID) -> list[Team]:
        return self.db.scalars(
            select(Team).where(Team.organisation_id == organisation_id).order_by(Team.name.asc(), Team.id.asc())
        ).all()

    def get_team(self, organisation_id: UUID, team_id: UUID) -> Team | None:
        return self.db.scalar(select(Team).where(and_(Team.id == team_id, Team.organisation_id == organisation_id)))

    def add_team(self, team: Team) -> Team:
        self.db.add(team)
        self.db.flush()
        return team

    def delete_team(self, team: Team) -> None:
        team_id = team.id
        self.db.execute(delete(TeamMember).where(TeamMember.team_id == team_id))
        self.db.execute(delete(TeamAbsence).where(TeamAbsence.team_id == team_id))
        self.db.execute(
            delete(Commitment).where(
                and_(
                    Commitment.organisation_id == team.organisation_id,
                    Commitment.target_type == TargetType.TEAM,
                    Commitment.target_id == team_id,
                )
            )
        )
        self.db.delete(team)
        self.db.flush()

    def list_member_ids(self, team_id: UUID) -> list[UUID]:
        return self.db.scalars(
            select(TeamMember.person_id).where(TeamMember.team_id == team_id).order_by(TeamMember.position.asc())
        ).all()

    def member_ids_by_team(self, organisation_id: UUID) -> dict[UUID, list[UUID]]:
        rows = self.db.execute(
            select(TeamMember.team_id, TeamMember.person_id)
            .join(Team, Team.id == TeamMember.team_id)
            .where(Team.organisation_id == organisation_id)
            .order_by(TeamMember.team_id.asc(), TeamMember.position.asc())
        ).all()
        result: dict[UUID, list[UUID]] = defaultdict(list)
        for team_id, person_id in rows:
            result[team_id].append(person_id)
        return result

    def set_members(self, team_id: UUID, person_ids: list[UUID]) -> None:
        self.db.execute(delete(TeamMember).where(TeamMember.team_id == team_id))
        for position, person_id in enumerate(dict.fromkeys(person_ids)):
            self.db.add(TeamMember(team_id=team_id, person_id=person_id, position=position))
        self.db.flush()

    # ---------- Projects ----------
    def list_projects(self, organisation_id: UUID) -> list[Project]:
        return self.db.scalars(
            select(Project)
            .where(Project.organisation_id == organisation_id)
            .order_by(Project.start_date.asc(), Project.name.asc(), Project.id.asc())
        ).all()

    def get_project(self, organisation_id: UUID, project_id: UUID) -> Project | None:
        return self.db.scalar(
            select(Project).where(and_(Project.id == project_id, Project.organisation_id == organisation_id))
        )

    def add_project(self, project: Project) -> Project:
        self.db.add(project)
        self.db.flush()
        return project

    def delete_project(self, project: Project) -> None:
        self.db.execute(delete(Commitment).where(Commitment.project_id == project.id))
        self.db.delete(project)
        self.db.flush()

    # ---------- Commitments ----------
    def list_commitments(self, organisation_id: UUID) -> list[Commitment]:
        return self.db.scalars(
            select(Commitment)
            .where(Commitment.organisation_id == organisation_id)
            .order_by(Commitment.created_at.asc(), Commitment.id.asc())
        ).all()

    def get_commitment(self, organisation_id: UUID, commitment_id: UUID) -> Commitment | None:
        return self.db.scalar(
            select(Commitment).where(
                and_(Commitment.id == commitment_id, Commitment.organisation_id == organisation_id)
            )
        )

    def add_commitment(self, commitment: Commitment) -> Commitment:
        self.db.add(commitment)
        self.db.flush()
        return commitment

    def delete_commitment(self, commitment: Commitment) -> None:
        self.db.delete(commitment)
        self.db.flush()

    # ---------- Calendar ----------
    def list_holidays(self, organisation_id: UUID) -> list[OrgHoliday]:
        return self.db.scalars(
            select(OrgHoliday)
            .where(OrgHoliday.organisation_id == organisation_id)
            .order_by(OrgHoliday.entry_date.asc(), OrgHoliday.id.asc())
        ).all()

    def get_holiday(self, organisation_id: UUID, holiday_id: UUID) -> OrgHoliday | None:
        return self.db.scalar(
            select(OrgHoliday).where(
                and_(OrgHoliday.id == holiday_id, OrgHoliday.organisation_id == organisation_id)
            )
        )

    def list_team_absences(self, organisation_id: UUID) -> list[TeamAbsence]:
        return self.db.scalars(
            select(TeamAbsence)
            .where(TeamAbsence.organisation_id == organisation_id)
            .order_by(TeamAbsence.entry_date.asc(), TeamAbsence.id.asc())
        ).all()

    def get_team_absence(self, organisation_id: UUID, entry_id: UUID) -> TeamAbsence | None:
        return self.db.scalar(
            select(TeamAbsence).where(
                and_(TeamAbsence.id == entry_id, TeamAbsence.organisation_id == organisation_id)
            )
        )

    def list_person_absences(self, organisation_id: UUID, *, person_id: UUID | None = None) -> list[PersonAbsence]:
        conditions = [PersonAbsence.organisation_id == organisation_id]
        if person_id is not None:
            conditions.append(PersonAbsence.person_id == person_id)
        return self.db.scalars(
            select(PersonAbsence)
            .where(and_(*conditions))
            .order_by(PersonAbsence.entry_date.asc(), PersonAbsence.id.asc())
        ).all()

    def get_person_absence(self, organisation_id: UUID, entry_id: UUID) -> PersonAbsence | None:
        return self.db.scalar(
            select(PersonAbsence).where(
                and_(PersonAbsence.id == entry_id, PersonAbsence.organisation_id == organisation_id)
            )
        )

    def person_absence_hours_on(self, person_id: UUID, entry_date: date) -> float:
        total = self.db.scalar(
            select(func.coalesce(func.sum(PersonAbsence.hours), 0)).where(
                and_(PersonAbsence.person_id == person_id, PersonAbsence.entry_date == entry_date)
            )
        )
        return float(total or 0)

    def create_person_absence_with_daily_limit(self, entry: PersonAbsence, max_hours: float) -> PersonAbsence:
        """Insert an absence unless the person's total for that date would exceed ``max_hours``."""

        existing = self.person_absence_hours_on(entry.person_id, entry.entry_date)
        if existing + entry.hours > max_hours + DAILY_LIMIT_TOLERANCE:
            raise ValidationError("Absence hours for this date exceed the person's daily capacity.")
        return self.add_entry(entry)

    def add_entry(self, entry: OrgHoliday | TeamAbsence | PersonAbsence):
        self.db.add(entry)
        self.db.flush()
        return entry

    def delete_entry(self, entry: OrgHoliday | TeamAbsence | PersonAbsence) -> None:
        self.db.delete(entry)
        self.db.flush()

    # ---------- Snapshot ----------
    def load_snapshot(self, organisation_id: UUID) -> domain.PlanningSnapshot | None:
        """Materialise every record of one organisation as domain values."""

        organisation = self.get_organisation(organisation_id)
        if organisation is None:
            return None
        people = self.list_people(organisation_id)
        changes_by_person: dict[UUID, list[EmploymentChange]] = defaultdict(list)
        if people:
            for change in self.db.scalars(
                select(EmploymentChange)
                .join(Person, Person.id == EmploymentChange.person_id)
                .where(Person.organisation_id == organisation_id)
                .order_by(EmploymentChange.effective_month.asc())
            ).all():
                changes_by_person[change.person_id].append(change)
        members = self.member_ids_by_team(organisation_id)

        return domain.PlanningSnapshot(
            organisation=to_domain_organisation(organisation),
            people=tuple(to_domain_person(person, changes_by_person.get(person.id, [])) for person in people),
            teams=tuple(to_domain_team(team, members.get(team.id, [])) for team in self.list_teams(organisation_id)),
            projects=tuple(to_domain_project(project) for project in self.list_projects(organisation_id)),
            commitments=tuple(
                to_domain_commitment(commitment) for commitment in self.list_commitments(organisation_id)
            ),
            holidays=tuple(
                domain.OrgHoliday(
                    id=str(entry.id),
                    organisation_id=str(entry.organisation_id),
                    date=entry.entry_date.isoformat(),
                    hours=float(entry.hours),
                )
                for entry in self.list_holidays(organisation_id)
            ),
            team_absences=tuple(
                domain.TeamAbsence(
                    id=str(entry.id),
                    organisation_id=str(entry.organisation_id),
                    team_id=str(entry.team_id),
                    date=entry.entry_date.isoformat(),
                    hours=float(entry.hours),
                )
                for entry in self.list_team_absences(organisation_id)
            ),
            person_absences=tuple(
                domain.PersonAbsence(
                    id=str(entry.id),
                    organisation_id=str(entry.organisation_id),
                    person_id=str(entry.person_id),
                    date=entry.entry_date.isoformat(),
                    hours=float(entry.hours),
                )
                for entry in self.list_person_absences(organisation_id)
            ),
        )


def to_domain_organisation(organisation: Organisation) -> domain.Organisation:
    return domain.Organisation(
        id=str(organisation.id),
        name=organisation.name,
        hours_per_day=float(organisation.hours_per_day),
        hours_per_week=float(organisation.hours_per_week),
        hours_per_year=float(organisation.hours_per_year),
    )


def to_domain_person(person: Person, changes: list[EmploymentChange]) -> domain.Person:
    return domain.Person(
        id=str(person.id),
        organisation_id=str(person.organisation_id),
        name=person.name,
        employment_pct=float(person.employment_pct),
        employment_changes=tuple(
            domain.EmploymentChange(effective_month=change.effective_month, employment_pct=float(change.employment_pct))
            for change in changes
        ),
    )


def to_domain_team(team: Team, member_ids: list[UUID]) -> domain.Team:
    return domain.Team(
        id=str(team.id),
        organisation_id=str(team.organisation_id),
        name=team.name,
        member_ids=tuple(dict.fromkeys(str(member_id) for member_id in member_ids)),
    )


def to_domain_project(project: Project) -> domain.Project:
    return domain.Project(
        id=str(project.id),
        organisation_id=str(project.organisation_id),
        name=project.name,
        start_date=project.start_date.isoformat(),
        end_date=project.end_date.isoformat(),
        estimated_effort_hours=float(project.estimated_effort_hours),
    )


def to_domain_commitment(commitment: Commitment) -> domain.Commitment:
    target_type = commitment.target_type.value if commitment.target_type is not None else None
    return domain.Commitment(
        id=str(commitment.id),
        organisation_id=str(commitment.organisation_id),
        target=normalize_target(
            target_type,
            str(commitment.target_id) if commitment.target_id is not None else None,
            str(commitment.person_id) if commitment.person_id is not None else None,
        ),
        project_id=str(commitment.project_id),
        start_date=commitment.start_date.isoformat() if commitment.start_date else "",
        end_date=commitment.end_date.isoformat() if commitment.end_date else "",
        percent=float(commitment.percent),
    )
