"""
Live event administration and the participant alert.

At most one event carries ``show_as_alert``; the toggle clears every other
event inside one transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sorteos.config import LIVE_EVENT_STATUSES
from sorteos.domain import blank_to_none, check_alert_eligibility, to_iso
from sorteos.exceptions import InvalidStateError, NotFoundError, ValidationError
from sorteos.logging_config import PerformanceTracker, log_event
from sorteos.repository.store import Row, TableStore, utc_now_iso
from sorteos.security.validators import validate_http_url
from sorteos.services.common import embed, fetch_all, first, require_text

logger = logging.getLogger(__name__)

ALERT_STATUSES = ("scheduled", "live")


def _not_found(event_id: str) -> NotFoundError:
    return NotFoundError("Evento no encontrado", resource_type="LiveEvent", resource_id=event_id)


def live_event_payload(form: dict[str, Any]) -> dict[str, Any]:
    """Validate the event form; empty optional fields become null."""
    start_at = to_iso(form.get("start_at"))
    if start_at is None:
        raise ValidationError("La fecha de inicio es requerida", field="start_at")
    return {
        "title": require_text(form, "title"),
        "description": blank_to_none(form.get("description")),
        "start_at": start_at,
        "countdown_start_at": to_iso(blank_to_none(form.get("countdown_start_at"))),
        "stream_url": validate_http_url(form.get("stream_url"), field="stream_url"),
        "raffle_id": blank_to_none(form.get("raffle_id")),
        "is_visible": bool(form.get("is_visible", True)),
    }


def load_live_events_page(store: TableStore) -> dict[str, Any]:
    """Events by start time (latest first) with their raffle, the count and linkable raffles."""
    with PerformanceTracker("load_live_events_page"):
        results = fetch_all(
            {
                "events": lambda: store.select("live_events", order_by="-start_at"),
                "count": lambda: store.count("live_events"),
                "raffles": lambda: store.select(
                    "raffles",
                    filters=[("status", "in", ["active", "draft"])],
                    order_by="title",
                ),
            }
        )
        events = embed(
            store,
            results["events"],
            table="raffles",
            foreign_key="raffle_id",
            as_key="raffle",
            columns=("id", "title"),
        )
    return {
        "events": events,
        "count": results["count"],
        "available_raffles": [{"id": r["id"], "title": r["title"]} for r in results["raffles"]],
    }


def get_live_event(store: TableStore, event_id: str) -> Row:
    event = store.get("live_events", event_id)
    if event is None:
        raise _not_found(event_id)
    return event


def create_live_event(store: TableStore, form: dict[str, Any]) -> Row:
    payload = live_event_payload(form)
    payload["status"] = "scheduled"
    payload["show_as_alert"] = False
    row = store.insert("live_events", payload)[0]
    log_event("live_event_created", event_id=row["id"], title=row["title"])
    return row


def update_live_event(store: TableStore, event_id: str, form: dict[str, Any]) -> Row:
    payload = live_event_payload(form)
    payload["updated_at"] = utc_now_iso()
    # A hidden event cannot stay the alert
    if not payload["is_visible"]:
        payload["show_as_alert"] = False
    rows = store.update("live_events", payload, filters=[("id", "eq", event_id)])
    if not rows:
        raise _not_found(event_id)
    log_event("live_event_updated", event_id=event_id)
    return rows[0]


def delete_live_event(store: TableStore, event_id: str) -> None:
    if store.delete("live_events", filters=[("id", "eq", event_id)]) == 0:
        raise _not_found(event_id)
    log_event("live_event_deleted", event_id=event_id)


def change_live_event_status(store: TableStore, event_id: str, new_status: str) -> Row:
    if new_status not in LIVE_EVENT_STATUSES:
        raise ValidationError(f"Estado inválido: {new_status}", field="status")
    rows = store.update(
        "live_events",
        {"status": new_status, "updated_at": utc_now_iso()},
        filters=[("id", "eq", event_id)],
    )
    if not rows:
        raise _not_found(event_id)
    log_event("live_event_status_changed", event_id=event_id, new_status=new_status)
    return rows[0]


def toggle_visibility(store: TableStore, event: Row) -> Row:
    """Flip ``is_visible``; hiding the alert event also clears its alert flag."""
    visible = not event.get("is_visible")
    updates: dict[str, Any] = {"is_visible": visible}
    if not visible and event.get("show_as_alert"):
        updates["show_as_alert"] = False
    rows = store.update("live_events", updates, filters=[("id", "eq", event["id"])])
    if not rows:
        raise _not_found(event["id"])
    log_event("live_event_visibility_toggled", event_id=event["id"], is_visible=visible)
    return rows[0]


def toggle_alert(store: TableStore, event: Row, *, now: datetime | None = None) -> Row:
    """
    Make event the participant alert, or switch its alert off.

    Switching on requires an eligible event (visible, not finished, started at
    most two hours ago). Every other event loses its alert flag in the same
    transaction, so at most one event is the alert afterwards.

    Raises:
        InvalidStateError: With the admin-facing reason when not eligible
    """
    turning_on = not event.get("show_as_alert")
    if turning_on:
        eligible, reason = check_alert_eligibility(event, now)
        if not eligible:
            raise InvalidStateError(reason or "Evento no elegible", current_state=event.get("status"))

    with store.transaction():
        store.update("live_events", {"show_as_alert": False}, filters=[("id", "neq", event["id"])])
        rows = store.update(
            "live_events",
            {"show_as_alert": turning_on},
            filters=[("id", "eq", event["id"])],
        )
        if not rows:
            raise _not_found(event["id"])

    log_event("live_event_alert_toggled", event_id=event["id"], show_as_alert=turning_on)
    return rows[0]


def get_alert_event(store: TableStore) -> Row | None:
    """The visible alert event that is scheduled or live, earliest first."""
    return first(
        store.select(
            "live_events",
            filters=[
                ("show_as_alert", "eq", True),
                ("is_visible", "eq", True),
                ("status", "in", list(ALERT_STATUSES)),
            ],
            order_by="start_at",
            limit=1,
        )
    )
