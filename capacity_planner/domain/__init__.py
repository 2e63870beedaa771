"""Pure calculation core: availability/load reporting and commitment limits."""

from capacity_planner.domain.calculation import calculate_availability_load
from capacity_planner.domain.commitments import normalize_target, resolve_commitment
from capacity_planner.domain.employment import employment_percent_on_date
from capacity_planner.domain.errors import ForbiddenError, NotFoundError, PlannerError, ValidationError
from capacity_planner.domain.intervals import overlap, parse_date, parse_open_range
from capacity_planner.domain.limits import max_commitment_percent, validate_commitment_limit
from capacity_planner.domain.scope import resolve_scope

__all__ = [
    "ForbiddenError",
    "NotFoundError",
    "PlannerError",
    "ValidationError",
    "calculate_availability_load",
    "employment_percent_on_date",
    "max_commitment_percent",
    "normalize_target",
    "overlap",
    "parse_date",
    "parse_open_range",
    "resolve_commitment",
    "resolve_scope",
    "validate_commitment_limit",
]
