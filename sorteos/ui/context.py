"""
Shared UI context: the table store, the signed-in user and navigation.

This module is intentionally small to avoid circular imports.
"""

from __future__ import annotations

import logging

import streamlit as st

from sorteos.config import settings
from sorteos.exceptions import ExternalServiceError
from sorteos.repository import get_store
from sorteos.repository.store import TableStore
from sorteos.services import auth
from sorteos.services.auth import CurrentUser
from sorteos.ui.session import get_access_token, get_demo_user_id

logger = logging.getLogger(__name__)

# Pages per area: (key, label)
ADMIN_PAGES = (
    ("raffles", "🎟️ Sorteos"),
    ("calendar", "📅 Calendario"),
    ("live_events", "📺 Eventos en vivo"),
    ("transactions", "💳 Transacciones"),
    ("payment_methods", "🏦 Métodos de pago"),
    ("plans", "⭐ Planes"),
    ("users", "👥 Usuarios"),
    ("winners", "🏆 Ganadores"),
    ("reports", "📊 Reportes"),
)
STAFF_PAGES = (
    ("transactions", "💳 Transacciones"),
    ("winners", "🏆 Ganadores"),
)
PARTICIPANT_PAGES = (
    ("dashboard", "🏠 Inicio"),
    ("tickets", "🎫 Mis boletos"),
    ("notifications", "🔔 Notificaciones"),
    ("help", "❓ Ayuda"),
)


def demo_mode() -> bool:
    """Identity is picked from the profiles table instead of signing in."""
    return settings.store_backend == "memory" or settings.trust_user_header


@st.cache_resource(show_spinner=False)
def ui_store() -> TableStore:
    return get_store()


def current_user() -> CurrentUser | None:
    store = ui_store()
    if demo_mode():
        return auth.user_from_profile_id(store, get_demo_user_id())
    token = get_access_token()
    if not token:
        return None
    try:
        return auth.get_current_user(store, token)
    except ExternalServiceError as exc:
        logger.warning("Could not resolve session: %s", exc)
        return None


def pages_for(user: CurrentUser | None) -> tuple[tuple[str, str], ...]:
    if user is None:
        return (("help", "❓ Ayuda"),)
    if user.role == "admin":
        return ADMIN_PAGES + PARTICIPANT_PAGES
    if user.role == "staff":
        return STAFF_PAGES + PARTICIPANT_PAGES
    return PARTICIPANT_PAGES
