"""Person and per-person absence endpoints."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from capacity_planner.core.auth import RequestUserContext, get_current_user_context
from capacity_planner.db.dependencies import get_db_session
from capacity_planner.services.planning_service import PersonAbsenceData, PersonData, PlanningService

router = APIRouter(prefix="/people", tags=["people"])


class PersonCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    employment_pct: float = Field(default=100.0, ge=0, le=100)


class PersonUpdatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    employment_pct: float = Field(ge=0, le=100)
    employment_effective_from_month: str | None = Field(default=None, max_length=7)


class PersonAbsencePayload(BaseModel):
    entry_date: date = Field(alias="date")
    hours: float


def _service(db: Session) -> PlanningService:
    return PlanningService(db)


@router.get("")
def list_people(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": [service.serialize_person(person) for person in service.list_people(context=context)]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_person(
    payload: PersonCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    person = service.create_person(
        context=context,
        data=PersonData(name=payload.name, employment_pct=payload.employment_pct),
    )
    return service.serialize_person(person)


@router.get("/{person_id}")
def get_person(
    person_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_person(service.get_person(context=context, person_id=person_id))


@router.put("/{person_id}")
def update_person(
    person_id: UUID,
    payload: PersonUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    person = service.update_person(
        context=context,
        person_id=person_id,
        data=PersonData(
            name=payload.name,
            employment_pct=payload.employment_pct,
            employment_effective_from_month=payload.employment_effective_from_month,
        ),
    )
    return service.serialize_person(person)


@router.delete("/{person_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_person(
    person_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_person(context=context, person_id=person_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{person_id}/absences")
def list_person_absences(
    person_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    items = service.list_person_absences(context=context, person_id=person_id)
    return {"items": [service.serialize_person_absence(entry) for entry in items]}


@router.post("/{person_id}/absences", status_code=status.HTTP_201_CREATED)
def create_person_absence(
    person_id: UUID,
    payload: PersonAbsencePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    entry = service.create_person_absence(
        context=context,
        data=PersonAbsenceData(person_id=person_id, entry_date=payload.entry_date, hours=payload.hours),
    )
    return service.serialize_person_absence(entry)


@router.delete("/{person_id}/absences/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_person_absence(
    person_id: UUID,
    entry_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_person_absence(context=context, entry_id=entry_id, person_id=person_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
