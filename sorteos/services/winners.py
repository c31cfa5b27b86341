"""
Winner follow-up: contact, prize delivery and testimonials.
"""

from __future__ import annotations

import logging
from typing import Any

from sorteos.domain import ALL, blank_to_none, text_matches
from sorteos.exceptions import NotFoundError, ValidationError
from sorteos.logging_config import PerformanceTracker, log_event
from sorteos.repository.store import Row, TableStore, utc_now_iso
from sorteos.security.validators import validate_http_url
from sorteos.services.common import embed

logger = logging.getLogger(__name__)

UNKNOWN_RAFFLE = {"id": None, "title": "Sorteo desconocido", "draw_date": None}
UNKNOWN_USER = {"id": None, "full_name": "Usuario desconocido", "email": None, "phone_number": None}


def _not_found(winner_id: str) -> NotFoundError:
    return NotFoundError("Ganador no encontrado", resource_type="Winner", resource_id=winner_id)


def load_winners(store: TableStore) -> list[Row]:
    """Winners newest first with their raffle and profile; missing relations get placeholders."""
    with PerformanceTracker("load_winners"):
        winners = store.select("winners", order_by="-created_at")
        winners = embed(
            store,
            winners,
            table="raffles",
            foreign_key="raffle_id",
            as_key="raffle",
            columns=("id", "title", "draw_date"),
        )
        winners = embed(
            store,
            winners,
            table="profiles",
            foreign_key="user_id",
            as_key="profile",
            columns=("id", "full_name", "email", "phone_number"),
        )
    for winner in winners:
        winner["raffle"] = winner["raffle"] or dict(UNKNOWN_RAFFLE)
        winner["profile"] = winner["profile"] or dict(UNKNOWN_USER)
    return winners


def filter_winners(rows: list[Row], search: str = "", status: str = ALL) -> list[Row]:
    """Search over winner name, email and raffle title."""
    result = []
    for winner in rows:
        if status and status != ALL and winner.get("status") != status:
            continue
        profile = winner.get("profile") or {}
        raffle = winner.get("raffle") or {}
        if not text_matches(search, profile.get("full_name"), profile.get("email"), raffle.get("title")):
            continue
        result.append(winner)
    return result


def winner_stats(rows: list[Row]) -> dict[str, int]:
    return {
        "total": len(rows),
        "pending": sum(1 for w in rows if w.get("status") == "pending_contact"),
        "contacted": sum(1 for w in rows if w.get("status") == "contacted"),
        "delivered": sum(1 for w in rows if w.get("status") == "prize_delivered"),
        "rejected": sum(1 for w in rows if w.get("status") == "rejected"),
        "with_testimonials": sum(1 for w in rows if w.get("testimonial")),
    }


def _update_winner(store: TableStore, winner_id: str, values: dict[str, Any]) -> Row:
    values["updated_at"] = utc_now_iso()
    rows = store.update("winners", values, filters=[("id", "eq", winner_id)])
    if not rows:
        raise _not_found(winner_id)
    return rows[0]


def mark_contacted(store: TableStore, winner: Row, notes: str | None = None) -> Row:
    """Record one more contact attempt; blank notes keep the previous ones."""
    row = _update_winner(
        store,
        winner["id"],
        {
            "status": "contacted",
            "contacted_at": utc_now_iso(),
            "contact_attempts": int(winner.get("contact_attempts") or 0) + 1,
            "notes": blank_to_none(notes) or winner.get("notes"),
        },
    )
    log_event("winner_contacted", winner_id=winner["id"], contact_attempts=row["contact_attempts"])
    return row


def mark_delivered(
    store: TableStore,
    winner: Row,
    photo_url: str | None = None,
    notes: str | None = None,
) -> Row:
    row = _update_winner(
        store,
        winner["id"],
        {
            "status": "prize_delivered",
            "delivered_at": utc_now_iso(),
            "notes": blank_to_none(notes) or winner.get("notes"),
            "delivery_photo_url": validate_http_url(photo_url, field="delivery_photo_url"),
        },
    )
    log_event("winner_prize_delivered", winner_id=winner["id"])
    return row


def save_testimonial(store: TableStore, winner: Row, text: str | None) -> Row:
    testimonial = (text or "").strip()
    if not testimonial:
        raise ValidationError("El testimonio no puede estar vacío", field="testimonial")
    row = _update_winner(store, winner["id"], {"testimonial": testimonial})
    log_event("winner_testimonial_saved", winner_id=winner["id"])
    return row


def get_winner(store: TableStore, winner_id: str) -> Row:
    winner = store.get("winners", winner_id)
    if winner is None:
        raise _not_found(winner_id)
    return winner
