"""Availability and load reporting endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from capacity_planner.core.auth import RequestUserContext, get_current_user_context
from capacity_planner.db.dependencies import get_db_session
from capacity_planner.domain.types import ReportRequest
from capacity_planner.services.report_service import ReportService

router = APIRouter(prefix="/reports", tags=["reports"])


class AvailabilityLoadPayload(BaseModel):
    scope: str
    from_date: str
    to_date: str
    granularity: str
    ids: list[str] = Field(default_factory=list)


def _service(db: Session) -> ReportService:
    return ReportService(db)


@router.post("/availability-load")
def report_availability_load(
    payload: AvailabilityLoadPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    buckets = service.availability_and_load(
        context=context,
        request=ReportRequest(
            scope=payload.scope,
            from_date=payload.from_date,
            to_date=payload.to_date,
            granularity=payload.granularity,
            ids=tuple(payload.ids),
        ),
    )
    return {"buckets": [service.serialize_bucket(bucket) for bucket in buckets]}
