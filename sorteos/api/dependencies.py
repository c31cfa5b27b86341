"""
Dependency helpers for API routes.

These are kept as simple functions taking the request; the store and auth
client live on ``request.app.state``.
"""

from __future__ import annotations

from fastapi import Request

from sorteos.api.state import AppState
from sorteos.config import settings
from sorteos.logging_config import LogContext
from sorteos.repository import get_store as get_global_store
from sorteos.repository.store import TableStore
from sorteos.services import auth
from sorteos.services.auth import CurrentUser, SupabaseAuthClient


def get_state(request: Request) -> AppState:
    state = getattr(request.app.state, "state", None)
    if state is None:
        state = AppState(store=get_global_store(), auth_client=getattr(request.app.state, "auth_client", None))
        request.app.state.state = state
    return state


def get_store(request: Request) -> TableStore:
    return get_state(request).store


def get_auth_client(request: Request) -> SupabaseAuthClient:
    state = get_state(request)
    if state.auth_client is None:
        state.auth_client = auth.get_auth_client()
    return state.auth_client


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(request: Request) -> CurrentUser | None:
    """
    Resolve the signed-in user once per request.

    A Bearer access token is verified with the auth service. With
    ``TRUST_USER_HEADER`` enabled an ``X-User-ID`` header naming a profile is
    accepted instead.
    """
    if hasattr(request.state, "current_user"):
        return request.state.current_user

    store = get_store(request)
    user = None
    token = bearer_token(request)
    if token:
        user = auth.get_current_user(store, token, client=get_auth_client(request))
    elif settings.trust_user_header:
        user = auth.user_from_profile_id(store, (request.headers.get("x-user-id") or "").strip()[:255])

    request.state.current_user = user
    if user is not None:
        LogContext.set_user_id(user.id)
    return user


def require_user(request: Request) -> CurrentUser:
    return auth.require_auth(get_current_user(request))


def require_role(request: Request, role: str) -> CurrentUser:
    return auth.require_role(get_current_user(request), role)


def require_admin(request: Request) -> CurrentUser:
    return require_role(request, "admin")


def require_staff(request: Request) -> CurrentUser:
    return require_role(request, "staff")
