"""ORM model package."""

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

__all__ = [
    "Commitment",
    "EmploymentChange",
    "OrgHoliday",
    "Organisation",
    "Person",
    "PersonAbsence",
    "Project",
    "Team",
    "TeamAbsence",
    "TeamMember",
]
