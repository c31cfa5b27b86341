"""
Admin reports: platform totals, monthly participation and top raffles.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sorteos.domain import parse_timestamp
from sorteos.logging_config import PerformanceTracker
from sorteos.repository.store import Row, TableStore, utc_now_iso
from sorteos.services.common import embed, fetch_all

logger = logging.getLogger(__name__)

REPORT_MONTHS = 6
TOP_RAFFLES_LIMIT = 8
ENTRIES_SAMPLE_LIMIT = 1200
WINNERS_SAMPLE_LIMIT = 600

UNNAMED_RAFFLE = "Sorteo sin nombre"

MONTH_ABBREVIATIONS = ("ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic")


def month_label(year: int, month: int) -> str:
    return f"{MONTH_ABBREVIATIONS[month - 1]} {year}"


def report_window_start(now: datetime, months: int = REPORT_MONTHS) -> datetime:
    """First day of the month ``months - 1`` months before now."""
    index = now.year * 12 + (now.month - 1) - (months - 1)
    return datetime(index // 12, index % 12 + 1, 1, tzinfo=timezone.utc)


def build_monthly_entries(entries: list[Row], start: datetime, end: datetime) -> list[dict[str, Any]]:
    """Entry counts per calendar month from start's month through end's month."""
    months: list[dict[str, Any]] = []
    index: dict[tuple[int, int], int] = {}
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        index[(year, month)] = len(months)
        months.append({"label": month_label(year, month), "year": year, "month": month, "total_entries": 0})
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)

    for entry in entries:
        created = parse_timestamp(entry.get("created_at"))
        if created is None:
            continue
        slot = index.get((created.year, created.month))
        if slot is not None:
            months[slot]["total_entries"] += 1
    return months


def _raffle_title(row: Row) -> str:
    return (row.get("raffle") or {}).get("title") or UNNAMED_RAFFLE


def build_top_raffles(entries: list[Row], winners: list[Row], limit: int = TOP_RAFFLES_LIMIT) -> list[dict[str, Any]]:
    """Raffles ranked by entries in the window, with their winner counts."""
    metrics: dict[str, dict[str, Any]] = {}
    for key, rows in (("total_entries", entries), ("total_winners", winners)):
        for row in rows:
            raffle_id = row.get("raffle_id")
            if not raffle_id:
                continue
            item = metrics.setdefault(
                raffle_id,
                {"raffle_id": raffle_id, "title": _raffle_title(row), "total_entries": 0, "total_winners": 0},
            )
            item[key] += 1
    ranked = sorted(metrics.values(), key=lambda m: m["total_entries"], reverse=True)
    return ranked[:limit]


def load_reports(store: TableStore, now: datetime | None = None) -> dict[str, Any]:
    """Totals, the monthly participation series and the top raffles."""
    now = now or datetime.now(timezone.utc)
    start = report_window_start(now)
    since = [("created_at", "gte", start.isoformat())]

    with PerformanceTracker("load_reports"):
        results = fetch_all(
            {
                "raffles": lambda: store.count("raffles"),
                "entries": lambda: store.count("raffle_entries"),
                "winners": lambda: store.count("winners"),
                "active_subscriptions": lambda: store.count(
                    "subscriptions",
                    filters=[("status", "eq", "active"), ("current_period_end", "gt", utc_now_iso())],
                ),
                "recent_entries": lambda: store.select(
                    "raffle_entries", filters=since, order_by="-created_at", limit=ENTRIES_SAMPLE_LIMIT
                ),
                "recent_winners": lambda: store.select(
                    "winners", filters=since, order_by="-created_at", limit=WINNERS_SAMPLE_LIMIT
                ),
            }
        )
        entries = embed(
            store, results["recent_entries"], table="raffles", foreign_key="raffle_id", as_key="raffle", columns=("title",)
        )
        winners = embed(
            store, results["recent_winners"], table="raffles", foreign_key="raffle_id", as_key="raffle", columns=("title",)
        )

    return {
        "summary": {
            "raffles": results["raffles"],
            "entries": results["entries"],
            "winners": results["winners"],
            "active_subscriptions": results["active_subscriptions"],
        },
        "monthly_entries": build_monthly_entries(entries, start, now),
        "top_raffles": build_top_raffles(entries, winners),
    }
