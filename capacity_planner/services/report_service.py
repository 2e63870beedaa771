"""Availability and load reporting over one organisation's planning data."""

from __future__ import annotations

import logging
from dataclasses import asdict

from sqlalchemy.orm import Session

from capacity_planner.core.auth import VIEW_ROLES, RequestUserContext, ensure_role
from capacity_planner.core.config import get_settings
from capacity_planner.domain.calculation import calculate_availability_load, parse_granularity
from capacity_planner.domain.errors import NotFoundError, ValidationError
from capacity_planner.domain.intervals import parse_date_range
from capacity_planner.domain.scope import parse_scope
from capacity_planner.domain.types import CalculationInput, ReportBucket, ReportRequest
from capacity_planner.repositories.planning_repository import PlanningRepository
from capacity_planner.services.planning_service import organisation_uuid
from capacity_planner.services.telemetry import Telemetry, get_telemetry

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, db: Session, telemetry: Telemetry | None = None) -> None:
        self.db = db
        self.repo = PlanningRepository(db)
        self.settings = get_settings()
        self.telemetry = telemetry or get_telemetry()

    @staticmethod
    def serialize_bucket(bucket: ReportBucket) -> dict[str, object]:
        """Bucket as a dict; project-only fields are omitted when unset."""

        return {key: value for key, value in asdict(bucket).items() if value is not None}

    def availability_and_load(self, *, context: RequestUserContext, request: ReportRequest) -> list[ReportBucket]:
        ensure_role(context, VIEW_ROLES)
        organisation_id = organisation_uuid(context)

        scope = parse_scope(request.scope)
        parse_granularity(request.granularity)
        period = parse_date_range(request.from_date, request.to_date)
        day_count = (period.end - period.start).days + 1
        if day_count > self.settings.max_report_days:
            raise ValidationError(f"Report range must not exceed {self.settings.max_report_days} days.")

        snapshot = self.repo.load_snapshot(organisation_id)
        if snapshot is None:
            raise NotFoundError("Organisation not found.")

        buckets = calculate_availability_load(CalculationInput(snapshot=snapshot, request=request))
        logger.debug("Report for organisation %s produced %d buckets", organisation_id, len(buckets))

        self.telemetry.record("report.generated", {"scope": scope.value, "organisation_id": str(organisation_id)})
        return buckets
