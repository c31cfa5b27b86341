"""
Tests for payment methods and transactions (sorteos.services.payments).
"""

import pytest

from sorteos.exceptions import (
    AuthenticationError,
    InvalidStateError,
    MissingRequiredFieldError,
    NotFoundError,
    TransactionNotFoundError,
    ValidationError,
)
from sorteos.services import payments


def method_form(**overrides):
    form = {
        "name": "Transferencia Produbanco",
        "type": "manual_transfer",
        "is_active": True,
        "scopes": ["raffles"],
        "currency": "USD",
        "amount": "",
        "manual": {"bankName": "Produbanco", "accountNumber": "123"},
    }
    form.update(overrides)
    return form


class TestPaymentMethods:
    def test_load_newest_first(self, store):
        assert [m["id"] for m in payments.load_payment_methods(store)] == ["pm-card", "pm-qr", "pm-transfer"]

    def test_create(self, store):
        row = payments.save_payment_method(store, method_form())
        assert row["type"] == "manual_transfer"
        assert row["config"]["manual"]["bankName"] == "Produbanco"
        assert row["config"]["scopes"] == ["raffles"]

    def test_edit(self, store):
        row = payments.save_payment_method(
            store,
            method_form(id="pm-transfer", name="Transferencia Pichincha"),
            mode="edit",
        )
        assert row["name"] == "Transferencia Pichincha"
        assert row["updated_at"]

    def test_edit_requires_id(self, store):
        with pytest.raises(MissingRequiredFieldError):
            payments.save_payment_method(store, method_form(), mode="edit")

    def test_edit_unknown(self, store):
        with pytest.raises(NotFoundError):
            payments.save_payment_method(store, method_form(id="nope"), mode="edit")

    def test_invalid_type_and_amount(self, store):
        with pytest.raises(ValidationError):
            payments.save_payment_method(store, method_form(type="cash"))
        with pytest.raises(ValidationError):
            payments.save_payment_method(store, method_form(amount="diez"))

    def test_toggle_and_delete(self, store):
        row = payments.toggle_payment_method(store, store.get("payment_methods", "pm-card"))
        assert row["is_active"] is True
        payments.delete_payment_method(store, "pm-card")
        with pytest.raises(NotFoundError):
            payments.delete_payment_method(store, "pm-card")


class TestLoadTransactions:
    def test_joined_details(self, store):
        rows = payments.load_transactions(store)
        assert [r["id"] for r in rows] == ["tx-manual", "tx-qr", "tx-card"]

        manual = rows[0]
        assert manual["profile"]["full_name"] == "María Compradora"
        assert manual["payment_method"]["type"] == "manual_transfer"
        assert manual["raffle"] == {"id": "raffle-active", "title": "Moto eléctrica"}
        assert manual["subscription"] is None

        qr = rows[1]
        assert qr["subscription"]["plan"] == {"id": "plan-basic", "name": "Básico"}
        assert qr["raffle"] is None


class TestCreateTransaction:
    def test_pending_with_defaults(self, store):
        row = payments.create_payment_transaction(
            store,
            {"transaction_type": "raffle_ticket", "user_id": "user-1", "payment_method_id": "pm-qr", "amount": "5"},
        )
        assert row["status"] == "pending"
        assert row["amount"] == 5.0
        assert row["currency"] == "USD"
        assert row["metadata"] == {}

    def test_validation(self, store):
        base = {"transaction_type": "raffle_ticket", "user_id": "user-1", "payment_method_id": "pm-qr", "amount": 5}
        with pytest.raises(ValidationError):
            payments.create_payment_transaction(store, {**base, "transaction_type": "gift"})
        with pytest.raises(MissingRequiredFieldError):
            payments.create_payment_transaction(store, {**base, "user_id": ""})
        with pytest.raises(ValidationError):
            payments.create_payment_transaction(store, {**base, "amount": None})


class TestUpdateStatus:
    def test_update_with_review(self, store):
        row = payments.update_transaction_status(store, "tx-card", "failed", reviewed_by="admin-1")
        assert row["status"] == "failed"
        assert row["reviewed_by"] == "admin-1"
        assert row["reviewed_at"]

    def test_invalid_status(self, store):
        with pytest.raises(ValidationError):
            payments.update_transaction_status(store, "tx-card", "lost")

    def test_unknown_transaction(self, store):
        with pytest.raises(TransactionNotFoundError):
            payments.update_transaction_status(store, "nope", "approved")


class TestApproveManualPayment:
    def test_creates_requested_tickets(self, store):
        result = payments.approve_manual_payment(store, "tx-manual", reviewer_id="staff-1", admin_comment="OK")

        assert result["success"] is True
        assert result["message"] == "Pago aprobado y 2 boletos creados exitosamente"
        assert len(result["entry_ids"]) == 2

        tx = store.get("payment_transactions", "tx-manual")
        assert tx["status"] == "approved"
        assert tx["reviewed_by"] == "staff-1"
        assert tx["admin_comment"] == "OK"

        created = [store.get("raffle_entries", entry_id) for entry_id in result["entry_ids"]]
        assert [e["ticket_number"] for e in created] == ["000002", "000003"]
        assert {e["entry_source"] for e in created} == {"manual_purchase"}
        assert {e["user_id"] for e in created} == {"user-2"}

    def test_single_ticket_message(self, store):
        store.update("payment_transactions", {"metadata": {}}, filters=[("id", "eq", "tx-manual")])
        result = payments.approve_manual_payment(store, "tx-manual", reviewer_id="admin-1")
        assert result["message"] == "Pago aprobado y boleto creado exitosamente"

    def test_without_raffle(self, store):
        result = payments.approve_manual_payment(store, "tx-qr", reviewer_id="admin-1")
        assert result == {"success": True, "message": "Pago aprobado exitosamente", "entry_ids": []}

    def test_ticket_failure_returns_to_pending(self, store):
        store.update(
            "payment_transactions",
            {"metadata": {"tickets_requested": 5}},
            filters=[("id", "eq", "tx-manual")],
        )
        entries_before = store.count("raffle_entries", filters=[("user_id", "eq", "user-2")])
        with pytest.raises(InvalidStateError) as exc_info:
            payments.approve_manual_payment(store, "tx-manual", reviewer_id="admin-1")
        assert "máximo de 3" in exc_info.value.message

        tx = store.get("payment_transactions", "tx-manual")
        assert tx["status"] == "pending"
        assert tx["reviewed_by"] is None
        assert tx["admin_comment"].startswith("Error al crear boleto:")
        # Tickets created before the failure are discarded with the approval
        assert store.count("raffle_entries", filters=[("user_id", "eq", "user-2")]) == entries_before

    def test_retry_after_failure_does_not_stack_tickets(self, store):
        store.update(
            "payment_transactions", {"metadata": {"tickets_requested": 5}}, filters=[("id", "eq", "tx-manual")]
        )
        with pytest.raises(InvalidStateError):
            payments.approve_manual_payment(store, "tx-manual", reviewer_id="admin-1")

        store.update(
            "payment_transactions", {"metadata": {"tickets_requested": 1}}, filters=[("id", "eq", "tx-manual")]
        )
        before = store.count("raffle_entries", filters=[("user_id", "eq", "user-2")])
        result = payments.approve_manual_payment(store, "tx-manual", reviewer_id="admin-1")
        assert len(result["entry_ids"]) == 1
        assert store.count("raffle_entries", filters=[("user_id", "eq", "user-2")]) == before + 1
        assert store.get("payment_transactions", "tx-manual")["status"] == "approved"

    def test_not_manual(self, store):
        with pytest.raises(InvalidStateError) as exc_info:
            payments.approve_manual_payment(store, "tx-card", reviewer_id="admin-1")
        assert exc_info.value.message == "Esta transacción no es una transferencia manual o pago QR"

    def test_already_processed(self, store):
        payments.approve_manual_payment(store, "tx-qr", reviewer_id="admin-1")
        with pytest.raises(InvalidStateError) as exc_info:
            payments.approve_manual_payment(store, "tx-qr", reviewer_id="admin-1")
        assert exc_info.value.message == "La transacción ya fue procesada (estado: approved)"

    def test_requires_reviewer(self, store):
        with pytest.raises(AuthenticationError):
            payments.approve_manual_payment(store, "tx-manual", reviewer_id=None)

    def test_unknown_transaction(self, store):
        with pytest.raises(TransactionNotFoundError):
            payments.approve_manual_payment(store, "nope", reviewer_id="admin-1")


class TestRejectManualPayment:
    def test_reject(self, store):
        result = payments.reject_manual_payment(
            store, "tx-manual", reviewer_id="admin-1", rejection_reason="  Comprobante ilegible "
        )
        assert result == {"success": True, "message": "Pago rechazado"}
        tx = store.get("payment_transactions", "tx-manual")
        assert tx["status"] == "rejected"
        assert tx["rejection_reason"] == "Comprobante ilegible"
        filters = [("user_id", "eq", "user-2"), ("raffle_id", "eq", "raffle-active")]
        assert store.count("raffle_entries", filters=filters) == 0

    def test_reason_required(self, store):
        with pytest.raises(MissingRequiredFieldError):
            payments.reject_manual_payment(store, "tx-manual", reviewer_id="admin-1", rejection_reason="   ")


class TestReviewHistory:
    def test_with_reviewer(self, store):
        payments.reject_manual_payment(store, "tx-manual", reviewer_id="staff-1", rejection_reason="Duplicado")
        history = payments.transaction_review_history(store, "tx-manual")
        assert history["status"] == "rejected"
        assert history["reviewer"] == {"full_name": "Sergio Staff", "email": "sergio@example.com"}

    def test_not_reviewed(self, store):
        assert payments.transaction_review_history(store, "tx-qr")["reviewer"] is None


class TestCanReviewPayments:
    @pytest.mark.parametrize(
        "user_id,expected",
        [("admin-1", True), ("staff-1", True), ("user-1", False), (None, False), ("ghost", False)],
    )
    def test_roles(self, store, user_id, expected):
        assert payments.can_review_payments(store, user_id) is expected
