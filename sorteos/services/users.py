"""
User (profile) administration: list, role changes, deletion and CSV export.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date
from typing import Any

from sorteos.config import ROLE_LABELS, USER_ROLES
from sorteos.domain import parse_timestamp
from sorteos.exceptions import NotFoundError, ValidationError
from sorteos.logging_config import PerformanceTracker, log_event
from sorteos.repository.store import Row, TableStore, utc_now_iso
from sorteos.services.common import fetch_all

logger = logging.getLogger(__name__)

USERS_PER_PAGE = 20

PROFILE_COLUMNS = ("id", "full_name", "email", "role", "phone_number", "id_number", "address", "created_at")

CSV_HEADERS = ("Nombre Completo", "Email", "Cédula", "Rol", "Teléfono", "Dirección", "Fecha de Registro")


def _not_found(user_id: str) -> NotFoundError:
    return NotFoundError("Usuario no encontrado", resource_type="Profile", resource_id=user_id)


def format_role(role: str | None) -> str:
    if not role:
        return "Sin asignar"
    return ROLE_LABELS.get(role, role)


def load_users_page(store: TableStore) -> dict[str, Any]:
    """Profiles newest first and the per-role summary."""
    with PerformanceTracker("load_users_page"):
        results = fetch_all(
            {
                "profiles": lambda: store.select("profiles", order_by="-created_at"),
                "total": lambda: store.count("profiles"),
                "admins": lambda: store.count("profiles", filters=[("role", "eq", "admin")]),
                "staff": lambda: store.count("profiles", filters=[("role", "eq", "staff")]),
                "participants": lambda: store.count("profiles", filters=[("role", "eq", "participant")]),
            }
        )
    profiles = [{c: p.get(c) for c in PROFILE_COLUMNS} for p in results["profiles"]]
    return {
        "profiles": profiles,
        "summary": {
            "total": results["total"],
            "admins": results["admins"],
            "staff": results["staff"],
            "participants": results["participants"],
        },
    }


def role_summary(rows: list[Row]) -> dict[str, int]:
    """Per-role counts over already loaded profiles."""
    return {
        "total": len(rows),
        "admins": sum(1 for r in rows if r.get("role") == "admin"),
        "staff": sum(1 for r in rows if r.get("role") == "staff"),
        "participants": sum(1 for r in rows if r.get("role") == "participant"),
    }


def change_user_role(store: TableStore, user_id: str, new_role: str) -> Row:
    if new_role not in USER_ROLES:
        raise ValidationError(f"Rol inválido: {new_role}", field="role")
    rows = store.update(
        "profiles",
        {"role": new_role, "updated_at": utc_now_iso()},
        filters=[("id", "eq", user_id)],
    )
    if not rows:
        raise _not_found(user_id)
    log_event("user_role_changed", user_id=user_id, new_role=new_role)
    return rows[0]


def delete_user(store: TableStore, user_id: str) -> None:
    if store.delete("profiles", filters=[("id", "eq", user_id)]) == 0:
        raise _not_found(user_id)
    log_event("user_deleted", user_id=user_id)


def users_csv(rows: list[Row]) -> str:
    """Export profiles as CSV with every cell quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for user in rows:
        created = parse_timestamp(user.get("created_at"))
        writer.writerow(
            [
                user.get("full_name") or "",
                user.get("email") or "",
                user.get("id_number") or "",
                format_role(user.get("role")),
                user.get("phone_number") or "",
                user.get("address") or "",
                created.strftime("%d/%m/%Y") if created else "",
            ]
        )
    return buffer.getvalue()


def users_csv_filename(today: date | None = None) -> str:
    return f"usuarios_{(today or date.today()).isoformat()}.csv"
