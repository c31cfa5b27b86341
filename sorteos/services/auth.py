"""
Sessions and identity against the hosted auth service.

The auth service owns sign-in, tokens and email flows; this module talks to
its REST API with ``requests``, keeps a ``profiles`` row for every user and
maps the email-link callback onto the page the user lands on.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any
from urllib.parse import quote

import requests

from sorteos.config import settings
from sorteos.exceptions import (
    AuthenticationError,
    DataStoreError,
    ExternalServiceError,
    PermissionDeniedError,
)
from sorteos.logging_config import log_event
from sorteos.repository.store import Row, TableStore
from sorteos.roles import has_role
from sorteos.security.validators import is_valid_cedula

logger = logging.getLogger(__name__)

SERVICE_NAME = "supabase-auth"

DEFAULT_NEXT_PATH = "/app"
CALLBACK_ERROR_MESSAGE = "Error al procesar la autenticación"
CONFIG_ERROR_MESSAGE = "Error de configuración"
EXCHANGE_ERROR_MESSAGE = "Error al confirmar tu cuenta. El enlace puede haber expirado."

METADATA_DEFAULTS = {
    "id_number": "0000000000",
    "phone_number": "+593000000000",
    "address": "Dirección no especificada",
    "role": "participant",
}


# =============================================================================
# Hosted auth client
# =============================================================================


class SupabaseAuthClient:
    """Thin client for the hosted auth REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        anon_key: str | None = None,
        *,
        timeout: int | None = None,
    ) -> None:
        self.base_url = (base_url or settings.supabase_url).rstrip("/")
        self.anon_key = anon_key if anon_key is not None else settings.supabase_anon_key
        self.timeout = timeout or settings.auth_timeout_seconds

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.anon_key)

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {"apikey": self.anon_key or "", "Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        access_token: str | None = None,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> requests.Response:
        if not self.configured:
            raise ExternalServiceError(SERVICE_NAME, CONFIG_ERROR_MESSAGE)
        try:
            return requests.request(
                method,
                f"{self.base_url}{path}",
                headers=self._headers(access_token),
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("Auth request %s %s failed: %s", method, path, e)
            raise ExternalServiceError(SERVICE_NAME, "No se pudo contactar al servicio de autenticación") from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or ""
        if isinstance(body, dict):
            return str(body.get("error_description") or body.get("msg") or body.get("message") or body.get("error") or "")
        return ""

    def get_user(self, access_token: str) -> dict[str, Any]:
        """The auth user behind an access token."""
        response = self._request("GET", "/auth/v1/user", access_token=access_token)
        if response.status_code in (401, 403):
            raise AuthenticationError(detail=self._error_message(response) or None)
        if response.status_code >= 400:
            raise ExternalServiceError(SERVICE_NAME, self._error_message(response) or None, status_code=response.status_code)
        return response.json()

    def exchange_code(self, code: str, code_verifier: str | None = None) -> dict[str, Any]:
        """Exchange an email-link code for a session."""
        response = self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "pkce"},
            json={"auth_code": code, "code_verifier": code_verifier or ""},
        )
        if response.status_code >= 400:
            raise AuthenticationError(EXCHANGE_ERROR_MESSAGE, detail=self._error_message(response) or None)
        return response.json()

    def sign_in_password(self, email: str, password: str) -> dict[str, Any]:
        response = self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if response.status_code in (400, 401):
            raise AuthenticationError("Credenciales inválidas")
        if response.status_code >= 400:
            raise ExternalServiceError(SERVICE_NAME, self._error_message(response) or None, status_code=response.status_code)
        return response.json()

    def sign_out(self, access_token: str | None) -> None:
        """End the session everywhere; a missing session counts as signed out."""
        if not access_token:
            return
        response = self._request("POST", "/auth/v1/logout", access_token=access_token, params={"scope": "global"})
        if response.status_code < 400:
            return
        message = self._error_message(response).lower()
        if response.status_code in (401, 403, 404) or "auth session missing" in message:
            logger.debug("Sign-out without an active session")
            return
        raise ExternalServiceError(SERVICE_NAME, "Failed to clear session", status_code=response.status_code)


_client: SupabaseAuthClient | None = None


def get_auth_client() -> SupabaseAuthClient:
    global _client
    if _client is None:
        _client = SupabaseAuthClient()
    return _client


def set_auth_client(client: SupabaseAuthClient | None) -> None:
    global _client
    _client = client


# =============================================================================
# Email-link callback
# =============================================================================


def resolve_callback_redirect(
    *,
    code: str | None = None,
    type_: str | None = None,
    next_path: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    client: SupabaseAuthClient | None = None,
) -> str:
    """
    Where the auth callback sends the browser.

    Errors go back to the login page with a message; a code is exchanged for
    a session and the link type picks the landing page.
    """
    login = settings.login_path
    if error:
        message = error_description or CALLBACK_ERROR_MESSAGE
        return f"{login}?error={quote(message)}"

    if not code:
        return login

    client = client or get_auth_client()
    if not client.configured:
        return f"{login}?error={CONFIG_ERROR_MESSAGE}"

    try:
        client.exchange_code(code)
    except (AuthenticationError, ExternalServiceError) as e:
        logger.error("Error exchanging code for session: %s", e)
        return f"{login}?error={quote(EXCHANGE_ERROR_MESSAGE)}"

    if type_ == "email_change":
        return "/app/settings?email_changed=true"
    if type_ == "recovery":
        return "/restablecer-clave?token=valid"
    if type_ == "signup":
        return f"{login}?confirmed=true"
    if next_path and next_path.startswith("/") and not next_path.startswith("//"):
        return next_path
    return DEFAULT_NEXT_PATH


# =============================================================================
# Profiles
# =============================================================================


def _first_string(metadata: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _first_number(metadata: dict[str, Any], *keys: str) -> int | float | None:
    for key in keys:
        value = metadata.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str) and value.strip():
            try:
                number = float(value)
            except ValueError:
                continue
            return int(number) if number.is_integer() else number
    return None


def _cedula_or_default(value: str | None) -> str:
    return value if value and is_valid_cedula(value) else METADATA_DEFAULTS["id_number"]


def normalize_metadata(auth_user: dict[str, Any]) -> dict[str, Any]:
    """Profile values from the auth user's metadata, accepting the key spellings sign-up forms use."""
    metadata = auth_user.get("user_metadata") or {}
    return {
        "full_name": _first_string(metadata, "full_name", "fullName", "name") or auth_user.get("email") or "Usuario",
        "id_number": _cedula_or_default(_first_string(metadata, "id_number", "idNumber", "identification")),
        "phone_number": _first_string(metadata, "phone_number", "phoneNumber", "phone")
        or METADATA_DEFAULTS["phone_number"],
        "city_id": _first_number(metadata, "city_id", "cityId"),
        "parish_id": _first_number(metadata, "parish_id", "parishId"),
        "address": _first_string(metadata, "address", "streetAddress", "location") or METADATA_DEFAULTS["address"],
        # Sign-ups are always participants; other roles come from change_user_role
        "role": METADATA_DEFAULTS["role"],
    }


def ensure_profile(store: TableStore, auth_user: dict[str, Any]) -> bool:
    """
    Make sure the auth user has a profiles row, creating it from metadata.

    A concurrent insert of the same row counts as success.
    """
    user_id = auth_user.get("id")
    if not user_id:
        return False
    if store.get("profiles", user_id) is not None:
        return True

    values = normalize_metadata(auth_user)
    values["id"] = user_id
    values["email"] = auth_user.get("email")
    try:
        store.insert("profiles", values)
    except (ValueError, DataStoreError) as e:
        if store.get("profiles", user_id) is not None:
            logger.info("Profile already exists for %s", user_id)
            return True
        logger.error("Error creating profile for %s: %s", user_id, e)
        return False

    log_event("profile_created", user_id=user_id, role=values["role"])
    return True


@dataclass
class CurrentUser:
    """The signed-in user as the pages see it."""

    id: str
    email: str | None
    role: str
    full_name: str
    id_number: str | None = None
    phone_number: str | None = None
    city_id: int | None = None
    parish_id: int | None = None
    address: str | None = None

    @classmethod
    def from_profile(cls, profile: Row, email: str | None = None) -> CurrentUser:
        return cls(
            id=profile["id"],
            email=email or profile.get("email"),
            role=profile.get("role") or METADATA_DEFAULTS["role"],
            full_name=profile.get("full_name") or "Usuario",
            id_number=profile.get("id_number"),
            phone_number=profile.get("phone_number"),
            city_id=profile.get("city_id"),
            parish_id=profile.get("parish_id"),
            address=profile.get("address"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def user_from_auth(store: TableStore, auth_user: dict[str, Any]) -> CurrentUser:
    """Resolve the profile for an auth user, creating it when missing, else fall back to metadata."""
    user_id = auth_user["id"]
    email = auth_user.get("email")

    profile = store.get("profiles", user_id)
    if profile is None and ensure_profile(store, auth_user):
        profile = store.get("profiles", user_id)
    if profile is not None:
        return CurrentUser.from_profile(profile, email)

    metadata = auth_user.get("user_metadata") or {}
    normalized = normalize_metadata(auth_user)
    return CurrentUser(
        id=user_id,
        email=email,
        role=normalized["role"],
        full_name=_first_string(metadata, "full_name") or "Usuario",
        id_number=normalized["id_number"],
        phone_number=normalized["phone_number"],
        city_id=normalized["city_id"],
        parish_id=normalized["parish_id"],
        address=normalized["address"],
    )


def get_current_user(
    store: TableStore,
    access_token: str | None,
    *,
    client: SupabaseAuthClient | None = None,
) -> CurrentUser | None:
    """The user behind an access token, or None without a valid session."""
    if not access_token:
        return None
    client = client or get_auth_client()
    try:
        auth_user = client.get_user(access_token)
    except AuthenticationError:
        return None
    return user_from_auth(store, auth_user)


def user_from_profile_id(store: TableStore, user_id: str | None) -> CurrentUser | None:
    """Resolve a user by profile id (identity asserted by a trusted gateway)."""
    if not user_id:
        return None
    profile = store.get("profiles", user_id)
    return CurrentUser.from_profile(profile) if profile else None


def resolve_redirect_path(role: str | None) -> str:
    """Post-login landing page for a role."""
    if role == "admin":
        return "/administrador"
    if role == "staff":
        return "/staff"
    return DEFAULT_NEXT_PATH


def require_auth(user: CurrentUser | None) -> CurrentUser:
    if user is None:
        raise AuthenticationError()
    return user


def require_role(user: CurrentUser | None, role: str) -> CurrentUser:
    """Return the user when their role is at or above role."""
    user = require_auth(user)
    if not has_role(user.role, role):
        raise PermissionDeniedError(role, user_role=user.role)
    return user
