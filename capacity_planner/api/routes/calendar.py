"""Organisation holidays and team/person absence endpoints."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from capacity_planner.core.auth import RequestUserContext, get_current_user_context
from capacity_planner.db.dependencies import get_db_session
from capacity_planner.services.planning_service import (
    HolidayData,
    PersonAbsenceData,
    PlanningService,
    TeamAbsenceData,
)

router = APIRouter(tags=["calendar"])


class HolidayPayload(BaseModel):
    entry_date: date = Field(alias="date")
    hours: float


class TeamAbsencePayload(BaseModel):
    team_id: UUID
    entry_date: date = Field(alias="date")
    hours: float


class PersonAbsencePayload(BaseModel):
    person_id: UUID
    entry_date: date = Field(alias="date")
    hours: float


def _service(db: Session) -> PlanningService:
    return PlanningService(db)


@router.get("/holidays")
def list_holidays(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": [service.serialize_holiday(entry) for entry in service.list_holidays(context=context)]}


@router.post("/holidays", status_code=status.HTTP_201_CREATED)
def create_holiday(
    payload: HolidayPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    entry = service.create_holiday(
        context=context,
        data=HolidayData(entry_date=payload.entry_date, hours=payload.hours),
    )
    return service.serialize_holiday(entry)


@router.delete("/holidays/{holiday_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_holiday(
    holiday_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_holiday(context=context, holiday_id=holiday_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/team-absences")
def list_team_absences(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    items = service.list_team_absences(context=context)
    return {"items": [service.serialize_team_absence(entry) for entry in items]}


@router.post("/team-absences", status_code=status.HTTP_201_CREATED)
def create_team_absence(
    payload: TeamAbsencePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    entry = service.create_team_absence(
        context=context,
        data=TeamAbsenceData(team_id=payload.team_id, entry_date=payload.entry_date, hours=payload.hours),
    )
    return service.serialize_team_absence(entry)


@router.delete("/team-absences/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_team_absence(
    entry_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_team_absence(context=context, entry_id=entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/person-absences")
def list_person_absences(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    items = service.list_person_absences(context=context)
    return {"items": [service.serialize_person_absence(entry) for entry in items]}


@router.post("/person-absences", status_code=status.HTTP_201_CREATED)
def create_person_absence(
    payload: PersonAbsencePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    entry = service.create_person_absence(
        context=context,
        data=PersonAbsenceData(person_id=payload.person_id, entry_date=payload.entry_date, hours=payload.hours),
    )
    return service.serialize_person_absence(entry)


@router.delete("/person-absences/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_person_absence(
    entry_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_person_absence(context=context, entry_id=entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
