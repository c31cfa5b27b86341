"""
Payment methods and payment transactions.

Covers the admin pages for configuring payment methods and for reviewing
transactions, including the manual (bank transfer / QR) approval flow that
issues raffle tickets for an approved payment.
"""

from __future__ import annotations

import logging
from typing import Any

from sorteos.config import (
    MANUAL_PAYMENT_TYPES,
    PAYMENT_METHOD_TYPES,
    TRANSACTION_STATUSES,
    TRANSACTION_TYPES,
    settings,
)
from sorteos.domain import blank_to_none, build_method_config, tickets_requested
from sorteos.exceptions import (
    AuthenticationError,
    InvalidStateError,
    MissingRequiredFieldError,
    NotFoundError,
    SorteosError,
    TransactionNotFoundError,
    ValidationError,
)
from sorteos.logging_config import PerformanceTracker, log_error, log_event
from sorteos.repository.store import Row, TableStore, utc_now_iso
from sorteos.services.common import embed, require_text
from sorteos.services.entries import create_raffle_entry

logger = logging.getLogger(__name__)

REVIEWER_ROLES = ("admin", "staff")


def _method_not_found(method_id: str) -> NotFoundError:
    return NotFoundError("Método de pago no encontrado", resource_type="PaymentMethod", resource_id=method_id)


# =============================================================================
# Payment methods
# =============================================================================


def load_payment_methods(store: TableStore) -> list[Row]:
    return store.select("payment_methods", order_by="-created_at")


def payment_method_payload(form: dict[str, Any]) -> dict[str, Any]:
    method_type = form.get("type")
    if method_type not in PAYMENT_METHOD_TYPES:
        raise ValidationError(f"Tipo de método de pago inválido: {method_type}", field="type")
    return {
        "name": require_text(form, "name"),
        "description": blank_to_none(form.get("description")),
        "icon": blank_to_none(form.get("icon")),
        "type": method_type,
        "is_active": bool(form.get("is_active", True)),
        "instructions": blank_to_none(form.get("instructions")),
        "config": build_method_config(form),
    }


def save_payment_method(store: TableStore, form: dict[str, Any], mode: str = "create") -> Row:
    """
    Create (mode "create") or edit (mode "edit", ``form["id"]`` set) a payment method.

    Raises:
        ValidationError: Unknown type or non-numeric amount
    """
    payload = payment_method_payload(form)
    if mode == "create":
        row = store.insert("payment_methods", payload)[0]
        log_event("payment_method_created", method_id=row["id"], type=row["type"])
        return row

    method_id = form.get("id")
    if not method_id:
        raise MissingRequiredFieldError("id")
    payload["updated_at"] = utc_now_iso()
    rows = store.update("payment_methods", payload, filters=[("id", "eq", method_id)])
    if not rows:
        raise _method_not_found(method_id)
    log_event("payment_method_updated", method_id=method_id)
    return rows[0]


def toggle_payment_method(store: TableStore, method: Row) -> Row:
    rows = store.update(
        "payment_methods",
        {"is_active": not method.get("is_active"), "updated_at": utc_now_iso()},
        filters=[("id", "eq", method["id"])],
    )
    if not rows:
        raise _method_not_found(method["id"])
    log_event("payment_method_toggled", method_id=method["id"], is_active=rows[0]["is_active"])
    return rows[0]


def delete_payment_method(store: TableStore, method_id: str) -> None:
    if store.delete("payment_methods", filters=[("id", "eq", method_id)]) == 0:
        raise _method_not_found(method_id)
    log_event("payment_method_deleted", method_id=method_id)


# =============================================================================
# Transactions
# =============================================================================


def _with_details(store: TableStore, transactions: list[Row]) -> list[Row]:
    rows = embed(
        store,
        transactions,
        table="profiles",
        foreign_key="user_id",
        as_key="profile",
        columns=("id", "full_name", "email", "id_number"),
    )
    rows = embed(
        store,
        rows,
        table="payment_methods",
        foreign_key="payment_method_id",
        as_key="payment_method",
        columns=("id", "name", "type", "icon"),
    )
    rows = embed(store, rows, table="raffles", foreign_key="raffle_id", as_key="raffle", columns=("id", "title"))

    subscriptions = store.select_in("subscriptions", "id", [r.get("subscription_id") for r in rows])
    subscriptions = embed(
        store,
        subscriptions,
        table="plans",
        foreign_key="plan_id",
        as_key="plan",
        columns=("id", "name"),
    )
    by_id = {s["id"]: {"id": s["id"], "status": s.get("status"), "plan": s.get("plan")} for s in subscriptions}
    for row in rows:
        row["subscription"] = by_id.get(row.get("subscription_id"))
    return rows


def load_transactions(store: TableStore) -> list[Row]:
    """Transactions newest first with payer, method, raffle and plan details."""
    with PerformanceTracker("load_transactions"):
        transactions = store.select("payment_transactions", order_by="-created_at")
        return _with_details(store, transactions)


def get_transaction(store: TableStore, transaction_id: str) -> Row:
    row = store.get("payment_transactions", transaction_id)
    if row is None:
        raise TransactionNotFoundError(transaction_id)
    return row


def create_payment_transaction(store: TableStore, params: dict[str, Any]) -> Row:
    """Record a new pending transaction (currency defaults to USD)."""
    transaction_type = params.get("transaction_type")
    if transaction_type not in TRANSACTION_TYPES:
        raise ValidationError(f"Tipo de transacción inválido: {transaction_type}", field="transaction_type")
    for field in ("user_id", "payment_method_id"):
        if not params.get(field):
            raise MissingRequiredFieldError(field)
    try:
        amount = float(params.get("amount"))
    except (TypeError, ValueError) as e:
        raise ValidationError("El monto debe ser un número válido.", field="amount") from e

    row = store.insert(
        "payment_transactions",
        {
            "user_id": params["user_id"],
            "payment_method_id": params["payment_method_id"],
            "transaction_type": transaction_type,
            "amount": amount,
            "currency": params.get("currency") or settings.default_currency,
            "raffle_id": params.get("raffle_id") or None,
            "subscription_id": params.get("subscription_id") or None,
            "stripe_payment_intent_id": params.get("stripe_payment_intent_id") or None,
            "receipt_url": params.get("receipt_url") or None,
            "receipt_reference": params.get("receipt_reference") or None,
            "status": "pending",
            "metadata": params.get("metadata") or {},
        },
    )[0]
    log_event("payment_transaction_created", transaction_id=row["id"], transaction_type=transaction_type)
    return row


def update_transaction_status(
    store: TableStore,
    transaction_id: str,
    status: str,
    *,
    admin_comment: str | None = None,
    rejection_reason: str | None = None,
    reviewed_by: str | None = None,
) -> Row:
    if status not in TRANSACTION_STATUSES:
        raise ValidationError(f"Estado inválido: {status}", field="status")

    values: dict[str, Any] = {"status": status, "updated_at": utc_now_iso()}
    if admin_comment is not None:
        values["admin_comment"] = admin_comment
    if rejection_reason is not None:
        values["rejection_reason"] = rejection_reason
    if reviewed_by is not None:
        values["reviewed_by"] = reviewed_by
        values["reviewed_at"] = utc_now_iso()

    rows = store.update("payment_transactions", values, filters=[("id", "eq", transaction_id)])
    if not rows:
        raise TransactionNotFoundError(transaction_id)
    log_event("payment_transaction_status_changed", transaction_id=transaction_id, status=status)
    return rows[0]


def _pending_manual_transaction(store: TableStore, transaction_id: str) -> Row:
    transaction = get_transaction(store, transaction_id)
    method = store.get("payment_methods", transaction.get("payment_method_id") or "") or {}
    if method.get("type") not in MANUAL_PAYMENT_TYPES:
        raise InvalidStateError("Esta transacción no es una transferencia manual o pago QR")
    if transaction.get("status") != "pending":
        raise InvalidStateError(
            f"La transacción ya fue procesada (estado: {transaction.get('status')})",
            current_state=transaction.get("status"),
        )
    return transaction


def approve_manual_payment(
    store: TableStore,
    transaction_id: str,
    *,
    reviewer_id: str | None,
    admin_comment: str | None = None,
) -> dict[str, Any]:
    """
    Approve a pending manual transfer / QR payment.

    When the payment is for a raffle, ``metadata.tickets_requested`` tickets
    are created (floor, at least 1). The approval and the tickets are written
    in one store transaction; if a ticket cannot be created nothing of it is
    kept, the transaction is left ``pending`` with the error in
    ``admin_comment`` and the error is raised.

    Returns:
        ``{"success": True, "message": str, "entry_ids": list[str]}``
    """
    if not reviewer_id:
        raise AuthenticationError()
    transaction = _pending_manual_transaction(store, transaction_id)

    raffle_id = transaction.get("raffle_id")
    user_id = transaction.get("user_id")
    count = tickets_requested(transaction.get("metadata")) if raffle_id and user_id else 0
    entry_ids: list[str] = []
    try:
        with store.transaction():
            store.update(
                "payment_transactions",
                {
                    "status": "approved",
                    "reviewed_by": reviewer_id,
                    "reviewed_at": utc_now_iso(),
                    "admin_comment": admin_comment or None,
                    "updated_at": utc_now_iso(),
                },
                filters=[("id", "eq", transaction_id)],
            )
            for _ in range(count):
                entry = create_raffle_entry(
                    store,
                    raffle_id,
                    user_id,
                    source="manual_purchase",
                    subscription_id=transaction.get("subscription_id"),
                )
                entry_ids.append(entry["id"])
    except SorteosError as e:
        log_error("manual_payment_ticket_failed", e, transaction_id=transaction_id, tickets_discarded=len(entry_ids))
        store.update(
            "payment_transactions",
            {
                "status": "pending",
                "reviewed_by": None,
                "reviewed_at": None,
                "admin_comment": f"Error al crear boleto: {e.message}",
                "updated_at": utc_now_iso(),
            },
            filters=[("id", "eq", transaction_id)],
        )
        raise InvalidStateError(f"Error al crear los boletos del sorteo: {e.message}") from e

    log_event(
        "manual_payment_approved",
        transaction_id=transaction_id,
        reviewer_id=reviewer_id,
        tickets_created=len(entry_ids),
    )
    if not count:
        return {"success": True, "message": "Pago aprobado exitosamente", "entry_ids": []}
    message = (
        "Pago aprobado y boleto creado exitosamente"
        if count == 1
        else f"Pago aprobado y {count} boletos creados exitosamente"
    )
    return {"success": True, "message": message, "entry_ids": entry_ids}


def reject_manual_payment(
    store: TableStore,
    transaction_id: str,
    *,
    reviewer_id: str | None,
    rejection_reason: str,
    admin_comment: str | None = None,
) -> dict[str, Any]:
    """Reject a pending manual payment; a reason is required."""
    reason = (rejection_reason or "").strip()
    if not reason:
        raise MissingRequiredFieldError("rejection_reason")
    if not reviewer_id:
        raise AuthenticationError()
    _pending_manual_transaction(store, transaction_id)

    store.update(
        "payment_transactions",
        {
            "status": "rejected",
            "reviewed_by": reviewer_id,
            "reviewed_at": utc_now_iso(),
            "rejection_reason": reason,
            "admin_comment": admin_comment or None,
            "updated_at": utc_now_iso(),
        },
        filters=[("id", "eq", transaction_id)],
    )
    log_event("manual_payment_rejected", transaction_id=transaction_id, reviewer_id=reviewer_id)
    return {"success": True, "message": "Pago rechazado"}


def transaction_review_history(store: TableStore, transaction_id: str) -> dict[str, Any]:
    """Review fields of a transaction with the reviewer's name and email."""
    transaction = get_transaction(store, transaction_id)
    reviewer = None
    if transaction.get("reviewed_by"):
        profile = store.get("profiles", transaction["reviewed_by"])
        if profile:
            reviewer = {"full_name": profile.get("full_name"), "email": profile.get("email")}
    return {
        "id": transaction["id"],
        "status": transaction.get("status"),
        "reviewed_by": transaction.get("reviewed_by"),
        "reviewed_at": transaction.get("reviewed_at"),
        "admin_comment": transaction.get("admin_comment"),
        "rejection_reason": transaction.get("rejection_reason"),
        "reviewer": reviewer,
    }


def can_review_payments(store: TableStore, user_id: str | None) -> bool:
    """Admins and staff may review payments."""
    if not user_id:
        return False
    profile = store.get("profiles", user_id)
    return bool(profile) and profile.get("role") in REVIEWER_ROLES
