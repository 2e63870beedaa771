"""Request principal extraction and role/tenant guard utilities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from fastapi import Header, HTTPException, status

from capacity_planner.core.config import get_settings
from capacity_planner.domain.errors import ForbiddenError


class AppRole(str, Enum):
    """Application role names."""

    ORG_ADMIN = "org_admin"
    ORG_USER = "org_user"


EDIT_ROLES = {AppRole.ORG_ADMIN}
VIEW_ROLES = {AppRole.ORG_ADMIN, AppRole.ORG_USER}


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from trusted headers."""

    user_id: str
    organisation_id: str
    roles: tuple[AppRole, ...]

    @property
    def role_names(self) -> tuple[AppRole, ...]:
        """Unique role names assigned to this user."""

        return tuple(dict.fromkeys(self.roles))


def parse_roles(raw: str | list[str] | None) -> tuple[AppRole, ...]:
    """Parse comma-separated role names, ignoring unknown entries."""

    if raw is None:
        return ()
    parts = raw.split(",") if isinstance(raw, str) else raw
    roles: list[AppRole] = []
    for part in parts:
        try:
            roles.append(AppRole(part.strip()))
        except ValueError:
            continue
    return tuple(dict.fromkeys(roles))


def get_current_user_context(
    x_user_id: str | None = Header(default=None, alias="X-User-ID"),
    x_org_id: str | None = Header(default=None, alias="X-Org-ID"),
    x_role: str | None = Header(default=None, alias="X-Role"),
) -> RequestUserContext:
    """Resolve current request principal.

    Header strategy:
    - Trusted headers from a proxy or test clients.
    - Missing values fall back to the development principal when enabled.
    """

    settings = get_settings()
    user_id = (x_user_id or "").strip()
    organisation_id = (x_org_id or "").strip()
    roles = parse_roles(x_role)

    if settings.auth_allow_dev_principal:
        user_id = user_id or settings.auth_dev_user_id.strip()
        organisation_id = organisation_id or settings.auth_dev_organisation_id.strip()
        roles = roles or parse_roles(settings.auth_dev_roles)

    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing identity headers. Expected X-User-ID or enable development principal fallback.",
        )

    return RequestUserContext(user_id=user_id, organisation_id=organisation_id, roles=roles)


def has_role(context: RequestUserContext, allowed_roles: set[AppRole]) -> bool:
    """Check whether user has any of the allowed roles."""

    return any(role in allowed_roles for role in context.role_names)


def ensure_role(context: RequestUserContext, allowed_roles: set[AppRole]) -> None:
    if not has_role(context, allowed_roles):
        raise ForbiddenError("Insufficient role permissions for this operation.")


def required_organisation_id(context: RequestUserContext) -> str:
    """Organisation the request is scoped to; tenant operations need one."""

    organisation_id = context.organisation_id.strip()
    if not organisation_id:
        raise ForbiddenError("Request is not scoped to an organisation.")
    return organisation_id


def enforce_tenant(context: RequestUserContext, organisation_id: str) -> None:
    """Reject access to another organisation when the request is tenant-scoped."""

    scoped = context.organisation_id.strip()
    if scoped and scoped != organisation_id.strip():
        raise ForbiddenError("Organisation is outside the request tenant scope.")
