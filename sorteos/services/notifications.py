"""
Participant notifications: the latest ones with the unread count, marking
them read, deleting them, and sending one to a user.
"""

from __future__ import annotations

from typing import Any

from sorteos.config import NOTIFICATION_TYPES
from sorteos.exceptions import NotFoundError, ValidationError
from sorteos.logging_config import PerformanceTracker, log_event
from sorteos.repository.store import Row, TableStore, utc_now_iso
from sorteos.security.validators import validate_http_url
from sorteos.services.common import fetch_all, first, require_row, require_text

NOTIFICATIONS_LIMIT = 20


def load_notifications(store: TableStore, user_id: str, *, limit: int = NOTIFICATIONS_LIMIT) -> dict[str, Any]:
    """
    The user's latest notifications, newest first.

    ``unread_count`` counts every unread notification of the user, including
    those beyond ``limit``.
    """
    with PerformanceTracker("load_notifications"):
        return fetch_all(
            {
                "notifications": lambda: store.select(
                    "notifications",
                    filters=[("user_id", "eq", user_id)],
                    order_by=["-created_at", "-id"],
                    limit=limit,
                ),
                "unread_count": lambda: store.count(
                    "notifications",
                    filters=[("user_id", "eq", user_id), ("read", "eq", False)],
                ),
            }
        )


def _own_notification(store: TableStore, user_id: str, notification_id: str) -> Row:
    # Another user's notification is reported the same as a missing one
    row = first(
        store.select(
            "notifications",
            filters=[("id", "eq", notification_id), ("user_id", "eq", user_id)],
            limit=1,
        )
    )
    if row is None:
        raise NotFoundError(
            "Notificación no encontrada",
            resource_type="notification",
            resource_id=notification_id,
        )
    return row


def mark_notification_read(store: TableStore, user_id: str, notification_id: str) -> Row:
    row = _own_notification(store, user_id, notification_id)
    if row.get("read"):
        return row
    return store.update(
        "notifications",
        {"read": True, "updated_at": utc_now_iso()},
        filters=[("id", "eq", notification_id), ("user_id", "eq", user_id)],
    )[0]


def mark_all_notifications_read(store: TableStore, user_id: str) -> int:
    """Mark every unread notification of the user as read; returns how many changed."""
    updated = store.update(
        "notifications",
        {"read": True, "updated_at": utc_now_iso()},
        filters=[("user_id", "eq", user_id), ("read", "eq", False)],
    )
    if updated:
        log_event("notifications_marked_read", user_id=user_id, count=len(updated))
    return len(updated)


def delete_notification(store: TableStore, user_id: str, notification_id: str) -> None:
    _own_notification(store, user_id, notification_id)
    store.delete("notifications", filters=[("id", "eq", notification_id), ("user_id", "eq", user_id)])
    log_event("notification_deleted", user_id=user_id, notification_id=notification_id)


def _action_url(value: Any) -> str | None:
    url = str(value or "").strip()
    if not url:
        return None
    if url.startswith("/"):
        if url.startswith("//"):
            raise ValidationError("El enlace debe ser una ruta del sitio o una URL http(s)", field="action_url")
        return url
    return validate_http_url(url, field="action_url")


def create_notification(store: TableStore, form: dict[str, Any]) -> Row:
    """
    Send a notification to a user.

    ``form`` holds ``user_id``, ``title``, ``message``, an optional ``type``
    (default ``info``) and an optional ``action_url``: a path on this site or
    an http(s) URL.
    """
    user_id = require_text(form, "user_id")
    require_row(store, "profiles", user_id, message="Usuario no encontrado", resource_type="profile")
    type_ = str(form.get("type") or "info").strip()
    if type_ not in NOTIFICATION_TYPES:
        raise ValidationError(f"Tipo de notificación inválido: {type_}", field="type")

    row = store.insert(
        "notifications",
        {
            "user_id": user_id,
            "title": require_text(form, "title"),
            "message": require_text(form, "message"),
            "type": type_,
            "read": False,
            "action_url": _action_url(form.get("action_url")),
        },
    )[0]
    log_event("notification_created", notification_id=row["id"], user_id=user_id, notification_type=type_)
    return row
