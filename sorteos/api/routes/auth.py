"""
Session routes: the email-link callback, post-login redirect, sign-in,
sign-out and the route guard.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from sorteos.api.dependencies import bearer_token, get_auth_client, get_current_user, get_store
from sorteos.api.models import RedirectPathResponse, SignInRequest
from sorteos.config import settings
from sorteos.exceptions import AuthenticationError
from sorteos.roles import guard_route
from sorteos.services import auth

router = APIRouter(tags=["auth"])


@router.get("/auth/callback")
def auth_callback(
    request: Request,
    code: str | None = None,
    type: str | None = None,
    next: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
) -> RedirectResponse:
    location = auth.resolve_callback_redirect(
        code=code,
        type_=type,
        next_path=next,
        error=error,
        error_description=error_description,
        client=get_auth_client(request),
    )
    return RedirectResponse(location, status_code=307)


@router.get("/v1/auth/resolve-redirect", response_model=RedirectPathResponse)
def resolve_redirect(request: Request):
    user = get_current_user(request)
    if user is None:
        return JSONResponse(
            status_code=401,
            content={"path": settings.login_path},
            headers={"Cache-Control": "no-store"},
        )
    return {"path": auth.resolve_redirect_path(user.role), "role": user.role}


@router.get("/v1/auth/me")
def me(request: Request, response: Response) -> dict:
    user = auth.require_auth(get_current_user(request))
    response.headers["Cache-Control"] = "no-store"
    return user.to_dict()


@router.post("/v1/auth/sign-in")
def sign_in(payload: SignInRequest, request: Request, response: Response) -> dict:
    """Password sign-in; returns the session and where the user should land."""
    session = get_auth_client(request).sign_in_password(payload.email, payload.password)
    auth_user = session.get("user") or {}
    if not auth_user.get("id"):
        raise AuthenticationError("Credenciales inválidas")
    user = auth.user_from_auth(get_store(request), auth_user)
    response.headers["Cache-Control"] = "no-store"
    return {
        "access_token": session.get("access_token"),
        "refresh_token": session.get("refresh_token"),
        "expires_in": session.get("expires_in"),
        "user": user.to_dict(),
        "path": auth.resolve_redirect_path(user.role),
    }


@router.post("/v1/auth/sign-out")
def sign_out(request: Request) -> dict:
    get_auth_client(request).sign_out(bearer_token(request))
    return {"success": True}


@router.get("/v1/auth/guard")
def route_guard(request: Request, path: str = Query(min_length=1, max_length=500)) -> dict:
    """Whether the caller may open a page path, or where to send them instead."""
    user = get_current_user(request)
    decision = guard_route(path, user.role if user else None, authenticated=user is not None)
    return {"allowed": decision.allowed, "redirect_to": decision.redirect_to}
