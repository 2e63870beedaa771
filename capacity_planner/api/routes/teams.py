"""Team and team membership endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from capacity_planner.core.auth import RequestUserContext, get_current_user_context
from capacity_planner.db.dependencies import get_db_session
from capacity_planner.services.planning_service import PlanningService, TeamData

router = APIRouter(prefix="/teams", tags=["teams"])


class TeamPayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    member_ids: list[UUID] = Field(default_factory=list)


def _service(db: Session) -> PlanningService:
    return PlanningService(db)


@router.get("")
def list_teams(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": [service.serialize_team(team) for team in service.list_teams(context=context)]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_team(
    payload: TeamPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    team = service.create_team(context=context, data=TeamData(name=payload.name, member_ids=payload.member_ids))
    return service.serialize_team(team)


@router.get("/{team_id}")
def get_team(
    team_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_team(service.get_team(context=context, team_id=team_id))


@router.put("/{team_id}")
def update_team(
    team_id: UUID,
    payload: TeamPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    team = service.update_team(
        context=context,
        team_id=team_id,
        data=TeamData(name=payload.name, member_ids=payload.member_ids),
    )
    return service.serialize_team(team)


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_team(
    team_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_team(context=context, team_id=team_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{team_id}/members/{person_id}")
def add_team_member(
    team_id: UUID,
    person_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    team = service.add_team_member(context=context, team_id=team_id, person_id=person_id)
    return service.serialize_team(team)


@router.delete("/{team_id}/members/{person_id}")
def remove_team_member(
    team_id: UUID,
    person_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    team = service.remove_team_member(context=context, team_id=team_id, person_id=person_id)
    return service.serialize_team(team)
