"""
Participant pages: the dashboard and "my tickets".
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sorteos.config import settings
from sorteos.domain import ALL, filter_tickets, parse_timestamp
from sorteos.logging_config import PerformanceTracker
from sorteos.repository.store import Row, TableStore, utc_now_iso
from sorteos.services.common import embed, fetch_all
from sorteos.services.live_events import get_alert_event

logger = logging.getLogger(__name__)

FINISHED_RAFFLE_STATUSES = ("drawn", "completed")

TICKET_SORTS = ("recent", "oldest", "draw_date")


def _active_subscriptions(store: TableStore, user_id: str) -> list[Row]:
    subscriptions = store.select(
        "subscriptions",
        filters=[
            ("status", "eq", "active"),
            ("user_id", "eq", user_id),
            ("current_period_end", "gt", utc_now_iso()),
        ],
    )
    return embed(
        store,
        subscriptions,
        table="plans",
        foreign_key="plan_id",
        as_key="plan",
        columns=("id", "name", "price", "currency", "interval"),
    )


def _recent_entries(store: TableStore, user_id: str) -> list[Row]:
    entries = store.select(
        "raffle_entries",
        filters=[("user_id", "eq", user_id)],
        order_by="-created_at",
        limit=settings.dashboard_entries_limit,
    )
    return embed(store, entries, table="raffles", foreign_key="raffle_id", as_key="raffle")


def _recent_winners(store: TableStore) -> list[Row]:
    winners = store.select(
        "winners",
        filters=[("status", "eq", "prize_delivered")],
        order_by="-created_at",
        limit=settings.dashboard_winners_limit,
    )
    return embed(store, winners, table="raffles", foreign_key="raffle_id", as_key="raffle", columns=("title",))


def load_dashboard(store: TableStore, user_id: str) -> dict[str, Any]:
    """
    Everything the participant dashboard shows, fetched together.

    Returns:
        Dict with ``active_subscriptions`` (each with its ``plan``),
        ``active_raffles`` by draw date, ``my_entries`` (most recent first, with
        ``raffle``), ``recent_winners`` (delivered prizes) and ``alert_event``.
    """
    with PerformanceTracker("load_dashboard", user_id=user_id):
        return fetch_all(
            {
                "active_subscriptions": lambda: _active_subscriptions(store, user_id),
                "active_raffles": lambda: store.select(
                    "raffles",
                    filters=[("status", "eq", "active")],
                    order_by="draw_date",
                ),
                "my_entries": lambda: _recent_entries(store, user_id),
                "recent_winners": lambda: _recent_winners(store),
                "alert_event": lambda: get_alert_event(store),
            }
        )


# =============================================================================
# My tickets
# =============================================================================


def load_my_tickets(store: TableStore, user_id: str) -> list[Row]:
    """All of a user's entries, newest first; entries whose raffle is gone are dropped."""
    entries = store.select("raffle_entries", filters=[("user_id", "eq", user_id)], order_by="-created_at")
    entries = embed(
        store,
        entries,
        table="raffles",
        foreign_key="raffle_id",
        as_key="raffle",
        columns=("id", "title", "prize_description", "prize_category", "image_url", "draw_date", "status"),
    )
    return [e for e in entries if e["raffle"] is not None]


def _ticket_status_ok(entry: Row, status: str) -> bool:
    if not status or status == ALL:
        return True
    if status == "winner":
        return bool(entry.get("is_winner"))
    raffle_status = (entry.get("raffle") or {}).get("status")
    if status == "active":
        return raffle_status == "active"
    if status == "completed":
        return raffle_status in FINISHED_RAFFLE_STATUSES
    return True


def _timestamp_key(value: Any) -> datetime:
    return parse_timestamp(value) or datetime.min.replace(tzinfo=timezone.utc)


def filter_my_tickets(entries: list[Row], search: str = "", status: str = ALL, sort: str = "recent") -> list[Row]:
    """Search, status filter (all, active, completed, winner) and sort for the tickets page."""
    result = [e for e in filter_tickets(entries, search) if _ticket_status_ok(e, status)]
    if sort == "oldest":
        result.sort(key=lambda e: _timestamp_key(e.get("created_at")))
    elif sort == "draw_date":
        result.sort(key=lambda e: _timestamp_key((e.get("raffle") or {}).get("draw_date")))
    else:
        result.sort(key=lambda e: _timestamp_key(e.get("created_at")), reverse=True)
    return result


def ticket_stats(entries: list[Row]) -> dict[str, int]:
    return {
        "total": len(entries),
        "winners": sum(1 for e in entries if e.get("is_winner")),
        "active": sum(1 for e in entries if (e.get("raffle") or {}).get("status") == "active"),
        "completed": sum(
            1 for e in entries if (e.get("raffle") or {}).get("status") in FINISHED_RAFFLE_STATUSES
        ),
    }
