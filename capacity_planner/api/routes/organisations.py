"""Organisation endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from capacity_planner.core.auth import RequestUserContext, get_current_user_context
from capacity_planner.db.dependencies import get_db_session
from capacity_planner.services.planning_service import OrganisationData, PlanningService

router = APIRouter(prefix="/organisations", tags=["organisations"])


class OrganisationPayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    hours_per_day: float
    hours_per_week: float
    hours_per_year: float

    def to_data(self) -> OrganisationData:
        return OrganisationData(
            name=self.name,
            hours_per_day=self.hours_per_day,
            hours_per_week=self.hours_per_week,
            hours_per_year=self.hours_per_year,
        )


def _service(db: Session) -> PlanningService:
    return PlanningService(db)


@router.get("")
def list_organisations(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    items = service.list_organisations(context=context)
    return {"items": [service.serialize_organisation(organisation) for organisation in items]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_organisation(
    payload: OrganisationPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    organisation = service.create_organisation(context=context, data=payload.to_data())
    return service.serialize_organisation(organisation)


@router.get("/{organisation_id}")
def get_organisation(
    organisation_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    organisation = service.get_organisation(context=context, organisation_id=organisation_id)
    return service.serialize_organisation(organisation)


@router.put("/{organisation_id}")
def update_organisation(
    organisation_id: UUID,
    payload: OrganisationPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    organisation = service.update_organisation(
        context=context,
        organisation_id=organisation_id,
        data=payload.to_data(),
    )
    return service.serialize_organisation(organisation)


@router.delete("/{organisation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_organisation(
    organisation_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_organisation(context=context, organisation_id=organisation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
