"""Error kinds raised by the planning domain and service layer."""

from __future__ import annotations


class PlannerError(Exception):
    """Base error carrying a human-readable detail."""

    default_detail = "Planner error."

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(PlannerError):
    """Malformed or semantically invalid input."""

    default_detail = "Validation failed."


class NotFoundError(PlannerError):
    """A referenced entity does not exist in the tenant snapshot."""

    default_detail = "Not found."


class ForbiddenError(PlannerError):
    """Caller lacks the role or tenant scope for the operation."""

    default_detail = "Insufficient permissions for this operation."
