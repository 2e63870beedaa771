"""Project endpoints."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from capacity_planner.core.auth import RequestUserContext, get_current_user_context
from capacity_planner.db.dependencies import get_db_session
from capacity_planner.services.planning_service import PlanningService, ProjectData

router = APIRouter(prefix="/projects", tags=["projects"])


class ProjectPayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    start_date: date
    end_date: date
    estimated_effort_hours: float

    def to_data(self) -> ProjectData:
        return ProjectData(
            name=self.name,
            start_date=self.start_date,
            end_date=self.end_date,
            estimated_effort_hours=self.estimated_effort_hours,
        )


def _service(db: Session) -> PlanningService:
    return PlanningService(db)


@router.get("")
def list_projects(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": [service.serialize_project(project) for project in service.list_projects(context=context)]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_project(service.create_project(context=context, data=payload.to_data()))


@router.get("/{project_id}")
def get_project(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_project(service.get_project(context=context, project_id=project_id))


@router.put("/{project_id}")
def update_project(
    project_id: UUID,
    payload: ProjectPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    project = service.update_project(context=context, project_id=project_id, data=payload.to_data())
    return service.serialize_project(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_project(context=context, project_id=project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
