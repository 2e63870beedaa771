"""Commitment endpoints; writes are checked against the daily ceiling."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from capacity_planner.core.auth import RequestUserContext, get_current_user_context
from capacity_planner.db.dependencies import get_db_session
from capacity_planner.services.planning_service import CommitmentData, PlanningService

router = APIRouter(prefix="/commitments", tags=["commitments"])


class CommitmentPayload(BaseModel):
    target_type: str | None = Field(default=None, max_length=16)
    target_id: UUID | None = None
    person_id: UUID | None = None
    project_id: UUID
    start_date: date | None = None
    end_date: date | None = None
    percent: float

    def to_data(self) -> CommitmentData:
        return CommitmentData(
            project_id=self.project_id,
            percent=self.percent,
            target_type=self.target_type,
            target_id=self.target_id,
            start_date=self.start_date,
            end_date=self.end_date,
            person_id=self.person_id,
        )


def _service(db: Session) -> PlanningService:
    return PlanningService(db)


@router.get("")
def list_commitments(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    items = service.list_commitments(context=context)
    return {"items": [service.serialize_commitment(commitment) for commitment in items]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_commitment(
    payload: CommitmentPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_commitment(service.create_commitment(context=context, data=payload.to_data()))


@router.get("/{commitment_id}")
def get_commitment(
    commitment_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_commitment(service.get_commitment(context=context, commitment_id=commitment_id))


@router.put("/{commitment_id}")
def update_commitment(
    commitment_id: UUID,
    payload: CommitmentPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    commitment = service.update_commitment(
        context=context,
        commitment_id=commitment_id,
        data=payload.to_data(),
    )
    return service.serialize_commitment(commitment)


@router.delete("/{commitment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_commitment(
    commitment_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_commitment(context=context, commitment_id=commitment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
