"""
Raffle entries (tickets): creation with the raffle's admission rules,
subscription entry and the participant eligibility check.
"""

from __future__ import annotations

import logging
from typing import Any

from sorteos.config import ENTRY_SOURCES
from sorteos.domain import format_ticket_number
from sorteos.exceptions import AuthenticationError, InvalidStateError, RaffleNotFoundError, ValidationError
from sorteos.logging_config import log_event
from sorteos.repository.store import Row, TableStore, utc_now_iso
from sorteos.services.common import first

logger = logging.getLogger(__name__)

_MODE_SOURCES = {
    "subscribers_only": {"subscription"},
    "tickets_only": {"manual_purchase"},
    "hybrid": {"subscription", "manual_purchase"},
}


def active_subscription(store: TableStore, user_id: str) -> Row | None:
    """The user's active subscription whose period has not ended, if any."""
    return first(
        store.select(
            "subscriptions",
            filters=[
                ("user_id", "eq", user_id),
                ("status", "eq", "active"),
                ("current_period_end", "gt", utc_now_iso()),
            ],
            order_by="-current_period_end",
            limit=1,
        )
    )


def _next_ticket_number(store: TableStore, raffle_id: str) -> str:
    # Compared as integers so "1000000" follows "999999"
    last = store.max_number("raffle_entries", "ticket_number", filters=[("raffle_id", "eq", raffle_id)])
    return format_ticket_number((last or 0) + 1)


def create_raffle_entry(
    store: TableStore,
    raffle_id: str,
    user_id: str,
    *,
    source: str,
    subscription_id: str | None = None,
) -> Row:
    """
    Create one entry for a user in an active raffle.

    The raffle's entry mode must admit the source and the user must be below
    ``max_entries_per_user``. Ticket numbers are sequential per raffle; the
    raffle row is locked for the duration so concurrent entries cannot share a
    number or overshoot the limit.

    Raises:
        RaffleNotFoundError: Unknown raffle
        InvalidStateError: Raffle not active, source not admitted or limit reached
    """
    if source not in ENTRY_SOURCES:
        raise ValidationError(f"Origen de participación inválido: {source}", field="entry_source")

    with store.transaction():
        # Held until commit; serializes entries for this raffle
        raffle = store.lock_row("raffles", raffle_id)
        if raffle is None:
            raise RaffleNotFoundError(raffle_id)
        if raffle.get("status") != "active":
            raise InvalidStateError("El sorteo no está activo", current_state=raffle.get("status"))

        allowed = _MODE_SOURCES.get(raffle.get("entry_mode"), set(ENTRY_SOURCES))
        if source not in allowed:
            if source == "manual_purchase":
                raise InvalidStateError("Este sorteo es solo para suscriptores")
            raise InvalidStateError("Este sorteo es solo para compradores de boletos")

        max_entries = raffle.get("max_entries_per_user")
        if max_entries:
            current = store.count(
                "raffle_entries",
                filters=[("raffle_id", "eq", raffle_id), ("user_id", "eq", user_id)],
            )
            if current >= max_entries:
                raise InvalidStateError(
                    f"Has alcanzado el máximo de {max_entries} participaciones para este sorteo"
                )

        entry = store.insert(
            "raffle_entries",
            {
                "raffle_id": raffle_id,
                "user_id": user_id,
                "entry_source": source,
                "subscription_id": subscription_id,
                "ticket_number": _next_ticket_number(store, raffle_id),
                "is_winner": False,
            },
        )[0]

    log_event(
        "raffle_entry_created",
        raffle_id=raffle_id,
        entry_id=entry["id"],
        entry_source=source,
        ticket_number=entry["ticket_number"],
    )
    return entry


def enter_raffle_with_subscription(store: TableStore, user_id: str, raffle_id: str) -> Row:
    """Enter a raffle using the user's active subscription."""
    subscription = active_subscription(store, user_id)
    if subscription is None:
        raise InvalidStateError("Necesitas una suscripción activa para participar en este sorteo")
    return create_raffle_entry(
        store,
        raffle_id,
        user_id,
        source="subscription",
        subscription_id=subscription["id"],
    )


def check_raffle_eligibility(store: TableStore, user_id: str | None, raffle_id: str) -> dict[str, Any]:
    """
    Whether a participant may enter a raffle right now.

    Returns ``{"eligible": bool, "reason": str | None, "current_entries": int,
    "max_entries": int | None}``; reasons are machine codes for the UI.
    """
    result: dict[str, Any] = {"eligible": False, "reason": None, "current_entries": 0, "max_entries": None}
    if not user_id:
        result["reason"] = "not_authenticated"
        return result

    raffle = store.get("raffles", raffle_id)
    if raffle is None:
        result["reason"] = "raffle_not_found"
        return result
    if raffle.get("status") != "active":
        result["reason"] = "raffle_not_active"
        return result

    if raffle.get("entry_mode") == "subscribers_only" and active_subscription(store, user_id) is None:
        result["reason"] = "subscription_required"
        return result

    max_entries = raffle.get("max_entries_per_user")
    result["max_entries"] = max_entries
    if max_entries:
        current = store.count(
            "raffle_entries",
            filters=[("raffle_id", "eq", raffle_id), ("user_id", "eq", user_id)],
        )
        result["current_entries"] = current
        if current >= max_entries:
            result["reason"] = "max_entries_reached"
            return result

    result["eligible"] = True
    return result


def require_user(user_id: str | None) -> str:
    if not user_id:
        raise AuthenticationError("Debes iniciar sesión para participar en sorteos")
    return user_id
