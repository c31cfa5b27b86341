"""
Raffle administration: list page, create/edit/duplicate/delete, lifecycle
changes and the verifiable draw.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any

from sorteos import draw
from sorteos.config import ENTRY_SOURCES, PRIZE_CATEGORIES, RAFFLE_ENTRY_MODES, RAFFLE_STATUSES
from sorteos.domain import ALL, blank_to_none, build_calendar_month, count_by, parse_timestamp, to_iso
from sorteos.exceptions import InvalidStateError, RaffleNotFoundError, ValidationError
from sorteos.logging_config import PerformanceTracker, log_event
from sorteos.repository.store import Row, TableStore, utc_now_iso
from sorteos.security.validators import validate_http_url
from sorteos.services.common import embed, fetch_all, require_text

logger = logging.getLogger(__name__)

# Manual lifecycle moves; "drawn" is only reached through execute_draw
STATUS_TRANSITIONS = {
    "draft": {"active"},
    "active": {"closed"},
    "closed": {"active"},
    "drawn": {"completed"},
    "completed": set(),
}

# Canonical entry order for the draw so a stored seed can be re-verified
DRAW_ENTRY_ORDER = ("ticket_number", "created_at", "id")


def _optional_int(value: Any, field: str, *, minimum: int = 1) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"El campo '{field}' debe ser un número entero", field=field) from e
    if number < minimum:
        raise ValidationError(f"El campo '{field}' debe ser al menos {minimum}", field=field)
    return number


def raffle_payload(form: dict[str, Any]) -> dict[str, Any]:
    """Validate a raffle form and build the row values it writes."""
    title = require_text(form, "title")

    category = form.get("prize_category") or "other"
    if category not in PRIZE_CATEGORIES:
        raise ValidationError(f"Categoría de premio inválida: {category}", field="prize_category")

    entry_mode = form.get("entry_mode") or "subscribers_only"
    if entry_mode not in RAFFLE_ENTRY_MODES:
        raise ValidationError(f"Modalidad de participación inválida: {entry_mode}", field="entry_mode")

    start_date = to_iso(form.get("start_date"))
    end_date = to_iso(form.get("end_date"))
    if start_date is None:
        raise ValidationError("La fecha de inicio es requerida", field="start_date")
    if end_date is None:
        raise ValidationError("La fecha de fin es requerida", field="end_date")
    if parse_timestamp(end_date) < parse_timestamp(start_date):
        raise ValidationError("La fecha de fin debe ser posterior a la fecha de inicio", field="end_date")

    total_winners = _optional_int(form.get("total_winners", 1), "total_winners")
    if total_winners is None:
        raise ValidationError("Debe haber al menos un ganador", field="total_winners")

    return {
        "title": title,
        "description": blank_to_none(form.get("description")),
        "prize_description": blank_to_none(form.get("prize_description")),
        "prize_category": category,
        "image_url": validate_http_url(form.get("image_url"), field="image_url"),
        "start_date": start_date,
        "end_date": end_date,
        "draw_date": to_iso(form.get("draw_date")),
        "entry_mode": entry_mode,
        "total_winners": total_winners,
        "max_entries_per_user": _optional_int(form.get("max_entries_per_user"), "max_entries_per_user"),
        "is_trending": bool(form.get("is_trending", False)),
    }


# =============================================================================
# Page loader
# =============================================================================


def load_raffles_page(store: TableStore) -> dict[str, Any]:
    """
    Raffles newest first with their entry counts, plus the total count.

    Each raffle carries ``_count = {"raffle_entries": n}``.
    """
    with PerformanceTracker("load_raffles_page"):
        results = fetch_all(
            {
                "raffles": lambda: store.select("raffles", order_by="-created_at"),
                "count": lambda: store.count("raffles"),
            }
        )
        raffles = results["raffles"]
        entries = store.select_in("raffle_entries", "raffle_id", [r["id"] for r in raffles])
        counts = count_by(entries, "raffle_id")
        for raffle in raffles:
            raffle["_count"] = {"raffle_entries": counts.get(raffle["id"], 0)}
    return {"raffles": raffles, "count": results["count"]}


def load_raffle_calendar(
    store: TableStore,
    year: int | None = None,
    month: int | None = None,
    *,
    category: str = ALL,
    status: str = ALL,
    today: date | None = None,
) -> dict[str, Any]:
    """
    Month view of every raffle for the admin calendar.

    Defaults to the current month. Besides the month grid it carries
    ``status_counts`` over all raffles (not only the month's) and ``today``.
    """
    today = today or datetime.now(timezone.utc).date()
    year = year or today.year
    month = month or today.month
    with PerformanceTracker("load_raffle_calendar", year=year, month=month):
        rows = store.select("raffles", order_by="start_date")
    calendar = build_calendar_month(rows, year, month, category, status)
    counts = count_by(rows, "status")
    calendar["status_counts"] = {s: counts.get(s, 0) for s in RAFFLE_STATUSES}
    calendar["today"] = today.isoformat()
    return calendar


def get_raffle(store: TableStore, raffle_id: str) -> Row:
    raffle = store.get("raffles", raffle_id)
    if raffle is None:
        raise RaffleNotFoundError(raffle_id)
    return raffle


# =============================================================================
# Mutations
# =============================================================================


def create_raffle(store: TableStore, form: dict[str, Any], *, created_by: str | None = None) -> Row:
    payload = raffle_payload(form)
    payload["status"] = "draft"
    payload["created_by"] = created_by
    row = store.insert("raffles", payload)[0]
    log_event("raffle_created", raffle_id=row["id"], title=row["title"])
    return row


def update_raffle(store: TableStore, raffle_id: str, form: dict[str, Any]) -> Row:
    payload = raffle_payload(form)
    payload["updated_at"] = utc_now_iso()
    rows = store.update("raffles", payload, filters=[("id", "eq", raffle_id)])
    if not rows:
        raise RaffleNotFoundError(raffle_id)
    log_event("raffle_updated", raffle_id=raffle_id)
    return rows[0]


def duplicate_raffle(store: TableStore, raffle: Row) -> Row:
    """Insert a draft copy titled "<title> (Copia)" starting now."""
    copy = {
        "title": f"{raffle['title']} (Copia)",
        "description": raffle.get("description"),
        "prize_description": raffle.get("prize_description"),
        "prize_category": raffle.get("prize_category") or "other",
        "image_url": raffle.get("image_url"),
        "start_date": utc_now_iso(),
        "end_date": raffle.get("end_date"),
        "draw_date": raffle.get("draw_date"),
        "status": "draft",
        "entry_mode": raffle.get("entry_mode"),
        "total_winners": raffle.get("total_winners"),
        "max_entries_per_user": raffle.get("max_entries_per_user"),
    }
    row = store.insert("raffles", copy)[0]
    log_event("raffle_duplicated", raffle_id=row["id"], source_id=raffle.get("id"))
    return row


def delete_raffle(store: TableStore, raffle_id: str) -> None:
    if store.delete("raffles", filters=[("id", "eq", raffle_id)]) == 0:
        raise RaffleNotFoundError(raffle_id)
    log_event("raffle_deleted", raffle_id=raffle_id)


def change_raffle_status(store: TableStore, raffle_id: str, new_status: str) -> Row:
    if new_status not in RAFFLE_STATUSES:
        raise ValidationError(f"Estado inválido: {new_status}", field="status")

    raffle = get_raffle(store, raffle_id)
    current = raffle.get("status")
    if new_status == current:
        return raffle
    if new_status not in STATUS_TRANSITIONS.get(current, set()):
        if new_status == "drawn":
            raise InvalidStateError("El estado sorteado solo se alcanza ejecutando el sorteo", current_state=current)
        raise InvalidStateError(f"No se puede cambiar de {current} a {new_status}", current_state=current)

    row = store.update(
        "raffles",
        {"status": new_status, "updated_at": utc_now_iso()},
        filters=[("id", "eq", raffle_id)],
    )[0]
    log_event("raffle_status_changed", raffle_id=raffle_id, old_status=current, new_status=new_status)
    return row


# =============================================================================
# Draw
# =============================================================================


def _draw_entries(store: TableStore, raffle_id: str, *, exclude_winners: bool) -> list[Row]:
    filters = [("raffle_id", "eq", raffle_id)]
    if exclude_winners:
        filters.append(("is_winner", "eq", False))
    entries = store.select("raffle_entries", filters=filters, order_by=list(DRAW_ENTRY_ORDER))
    return embed(store, entries, table="profiles", foreign_key="user_id", as_key="profile", columns=("full_name",))


def execute_draw(store: TableStore, raffle_id: str, *, seed: str | None = None) -> dict[str, Any]:
    """
    Run the draw for a closed raffle.

    Entries that have not already won are filtered by the raffle's entry mode,
    winners are selected from a fresh seed, their entries are flagged, winner
    rows are created and the raffle moves to ``drawn`` with the seed stored.

    ``seed`` replays a known draw; the API and the UI never pass one.

    Returns:
        Dict with ``winners``, ``draw_seed``, ``total_participants`` and
        ``total_winners``.
    """
    raffle = get_raffle(store, raffle_id)
    if raffle.get("status") != "closed":
        raise InvalidStateError(
            "El sorteo debe estar cerrado para ejecutar el sorteo",
            current_state=raffle.get("status"),
        )

    entries = _draw_entries(store, raffle_id, exclude_winners=True)
    if not entries:
        raise InvalidStateError("No hay participaciones válidas para el sorteo")

    entry_mode = raffle.get("entry_mode")
    valid_entries = draw.filter_entries_for_mode(entries, entry_mode)
    if not valid_entries:
        if entry_mode == "subscribers_only":
            raise InvalidStateError(
                "No hay participaciones de suscriptores válidas. Este sorteo es solo para suscriptores."
            )
        raise InvalidStateError(
            "No hay participaciones por compra de boletos válidas. Este sorteo es solo para compradores de boletos."
        )

    draw_seed = seed or draw.generate_seed()
    winners = draw.select_winners(valid_entries, int(raffle.get("total_winners") or 1), draw_seed)

    with store.transaction():
        store.update(
            "raffle_entries",
            {"is_winner": True},
            filters=[("id", "in", [w["entry_id"] for w in winners])],
        )
        store.insert(
            "winners",
            [
                {
                    "raffle_id": raffle_id,
                    "entry_id": w["entry_id"],
                    "user_id": w["user_id"],
                    "prize_position": w["prize_position"],
                    "status": "pending_contact",
                    "contact_attempts": 0,
                }
                for w in winners
            ],
        )
        store.update(
            "raffles",
            {"status": "drawn", "draw_seed": draw_seed, "updated_at": utc_now_iso()},
            filters=[("id", "eq", raffle_id)],
        )

    log_event(
        "raffle_drawn",
        raffle_id=raffle_id,
        total_participants=len(entries),
        total_winners=len(winners),
    )
    return {
        "winners": winners,
        "draw_seed": draw_seed,
        "total_participants": len(entries),
        "total_winners": len(winners),
    }


def verify_raffle_draw(store: TableStore, raffle_id: str) -> bool:
    """Re-verify a stored draw from the raffle's entries, winner rows and seed."""
    raffle = get_raffle(store, raffle_id)
    seed = raffle.get("draw_seed")
    if not seed:
        raise InvalidStateError("El sorteo aún no ha sido ejecutado", current_state=raffle.get("status"))

    entries = draw.filter_entries_for_mode(
        _draw_entries(store, raffle_id, exclude_winners=False),
        raffle.get("entry_mode"),
    )
    winners = store.select("winners", filters=[("raffle_id", "eq", raffle_id)], order_by="prize_position")
    return draw.verify_draw(entries, winners, seed)


def raffle_stats(store: TableStore, raffle_id: str) -> dict[str, Any]:
    """Entry and winner totals for a raffle, entries per source and the win rate."""
    results = fetch_all(
        {
            "total_entries": lambda: store.count("raffle_entries", filters=[("raffle_id", "eq", raffle_id)]),
            "total_winners": lambda: store.count("winners", filters=[("raffle_id", "eq", raffle_id)]),
            "entries": lambda: store.select("raffle_entries", filters=[("raffle_id", "eq", raffle_id)]),
        }
    )
    by_source = count_by(results["entries"], "entry_source")
    return {
        "total_entries": results["total_entries"],
        "total_winners": results["total_winners"],
        "entries_by_source": {source: by_source.get(source, 0) for source in ENTRY_SOURCES},
        "win_rate": draw.win_rate(results["total_entries"], results["total_winners"]),
    }
