from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

from sorteos.config import settings

ROLE_HIERARCHY = {
    "participant": 1,
    "staff": 2,
    "admin": 3,
}

PUBLIC_ROUTES = (
    "/",
    "/iniciar-sesion",
    "/registro",
    "/completar-perfil",
    "/ayuda",
    "/sobre-nosotros",
    "/recuperar",
    "/restablecer-clave",
)

ADMIN_PREFIX = "/administrador"
STAFF_PREFIX = "/staff"
DASHBOARD_PREFIX = "/dashboard"


def has_role(user_role: str | None, required_role: str) -> bool:
    """Return True if user_role is at or above required_role.

    Args:
        user_role: Role stored on the profile (may be None or unknown).
        required_role: One of participant, staff, admin.

    Returns:
        False for missing or unknown roles.
    """
    if not user_role:
        return False
    rank = ROLE_HIERARCHY.get(user_role)
    if rank is None:
        return False
    return rank >= ROLE_HIERARCHY[required_role]


def can_access_admin(user_role: str | None) -> bool:
    return has_role(user_role, "admin")


def can_access_staff(user_role: str | None) -> bool:
    return has_role(user_role, "staff")


def can_access_dashboard(user_role: str | None) -> bool:
    return has_role(user_role, "participant")


def redirect_path(user_role: str | None) -> str:
    """Landing page for a role after sign-in."""
    if has_role(user_role, "admin"):
        return ADMIN_PREFIX
    if has_role(user_role, "staff"):
        return STAFF_PREFIX
    if has_role(user_role, "participant"):
        return DASHBOARD_PREFIX
    return settings.login_path


def is_public_route(path: str) -> bool:
    """Public routes match exactly or as a path prefix ("/ayuda/..."); "/" only matches itself."""
    for route in PUBLIC_ROUTES:
        if path == route:
            return True
        if route != "/" and path.startswith(route + "/"):
            return True
    return False


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


@dataclass(frozen=True)
class RouteDecision:
    """Outcome of the route guard: allow, or redirect to a location."""

    allowed: bool
    redirect_to: str | None = None


def guard_route(path: str, user_role: str | None, *, authenticated: bool) -> RouteDecision:
    """Decide whether a request for path may proceed.

    Args:
        path: Request path without query string.
        user_role: Role of the signed-in user, if known.
        authenticated: Whether a session user was resolved.

    Returns:
        RouteDecision; protected routes without a user redirect to the login
        page with ``redirectTo``, admin and staff areas redirect under-privileged
        users to the dashboard.
    """
    if is_public_route(path):
        return RouteDecision(allowed=True)

    if not authenticated:
        query = urlencode({"redirectTo": path})
        return RouteDecision(allowed=False, redirect_to=f"{settings.login_path}?{query}")

    role = user_role or "participant"

    if _under(path, ADMIN_PREFIX) and not can_access_admin(role):
        return RouteDecision(allowed=False, redirect_to=DASHBOARD_PREFIX)
    if _under(path, STAFF_PREFIX) and not can_access_staff(role):
        return RouteDecision(allowed=False, redirect_to=DASHBOARD_PREFIX)
    if _under(path, DASHBOARD_PREFIX) and not can_access_dashboard(role):
        return RouteDecision(allowed=False, redirect_to=settings.login_path)

    return RouteDecision(allowed=True)
