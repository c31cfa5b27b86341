"""
Subscription plan administration.
"""

from __future__ import annotations

import logging
from typing import Any

from sorteos.config import PLAN_INTERVALS, settings
from sorteos.domain import blank_to_none, parse_benefits, parse_price
from sorteos.exceptions import NotFoundError, ValidationError
from sorteos.logging_config import log_event
from sorteos.repository.store import Row, TableStore, utc_now_iso
from sorteos.services.common import require_text

logger = logging.getLogger(__name__)


def _not_found(plan_id: str) -> NotFoundError:
    return NotFoundError("Plan no encontrado", resource_type="Plan", resource_id=plan_id)


def load_plans(store: TableStore) -> list[Row]:
    return store.select("plans", order_by="-created_at")


def plan_payload(form: dict[str, Any]) -> dict[str, Any]:
    """Validate the plan form; benefits come one per line."""
    interval = form.get("interval") or "month"
    if interval not in PLAN_INTERVALS:
        raise ValidationError(f"Intervalo inválido: {interval}", field="interval")

    max_raffles = blank_to_none(form.get("max_concurrent_raffles"))
    if max_raffles is not None:
        try:
            max_raffles = int(max_raffles)
        except (TypeError, ValueError) as e:
            raise ValidationError("El límite de sorteos debe ser un número entero", field="max_concurrent_raffles") from e

    benefits = form.get("benefits")
    if isinstance(benefits, (list, tuple)):
        benefits = "\n".join(str(b) for b in benefits)

    return {
        "name": require_text(form, "name"),
        "description": blank_to_none(form.get("description")),
        "price": parse_price(form.get("price")),
        "currency": (form.get("currency") or settings.default_currency).upper(),
        "interval": interval,
        "benefits": parse_benefits(benefits),
        "max_concurrent_raffles": max_raffles,
        "show_raffles_limit": bool(form.get("show_raffles_limit", True)),
        "raffles_limit_message": blank_to_none(form.get("raffles_limit_message")),
        "is_active": bool(form.get("is_active", True)),
        "updated_at": utc_now_iso(),
    }


def save_plan(store: TableStore, form: dict[str, Any], plan_id: str | None = None) -> Row:
    """Create a plan, or update plan_id when given."""
    payload = plan_payload(form)
    if plan_id is None:
        row = store.insert("plans", payload)[0]
        log_event("plan_created", plan_id=row["id"], plan_name=row["name"])
        return row

    rows = store.update("plans", payload, filters=[("id", "eq", plan_id)])
    if not rows:
        raise _not_found(plan_id)
    log_event("plan_updated", plan_id=plan_id)
    return rows[0]


def toggle_plan_active(store: TableStore, plan: Row) -> Row:
    rows = store.update(
        "plans",
        {"is_active": not plan.get("is_active"), "updated_at": utc_now_iso()},
        filters=[("id", "eq", plan["id"])],
    )
    if not rows:
        raise _not_found(plan["id"])
    log_event("plan_active_toggled", plan_id=plan["id"], is_active=rows[0]["is_active"])
    return rows[0]


def toggle_plan_featured(store: TableStore, plan: Row) -> Row:
    """Flip ``is_featured``; featuring a plan un-features every other one."""
    featuring = not plan.get("is_featured")
    with store.transaction():
        if featuring:
            store.update("plans", {"is_featured": False}, filters=[("id", "neq", plan["id"])])
        rows = store.update(
            "plans",
            {"is_featured": featuring, "updated_at": utc_now_iso()},
            filters=[("id", "eq", plan["id"])],
        )
        if not rows:
            raise _not_found(plan["id"])
    log_event("plan_featured_toggled", plan_id=plan["id"], is_featured=featuring)
    return rows[0]


def duplicate_plan(store: TableStore, plan: Row) -> Row:
    """Insert an inactive copy named "<name> (Copia)"."""
    row = store.insert(
        "plans",
        {
            "name": f"{plan['name']} (Copia)",
            "description": plan.get("description"),
            "price": plan.get("price"),
            "currency": plan.get("currency"),
            "interval": plan.get("interval"),
            "benefits": plan.get("benefits"),
            "max_concurrent_raffles": plan.get("max_concurrent_raffles"),
            "is_active": False,
            "is_featured": False,
        },
    )[0]
    log_event("plan_duplicated", plan_id=row["id"], source_id=plan.get("id"))
    return row


def delete_plan(store: TableStore, plan_id: str) -> None:
    if store.delete("plans", filters=[("id", "eq", plan_id)]) == 0:
        raise _not_found(plan_id)
    log_event("plan_deleted", plan_id=plan_id)
