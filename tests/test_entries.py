"""
Tests for raffle entries (sorteos.services.entries).
"""

from concurrent.futures import ThreadPoolExecutor
from unittest import mock

import pytest

from conftest import iso
from sorteos.exceptions import AuthenticationError, InvalidStateError, RaffleNotFoundError, ValidationError
from sorteos.services import entries


class TestActiveSubscription:
    def test_current_subscription(self, store):
        assert entries.active_subscription(store, "user-1")["id"] == "sub-1"

    def test_expired_period_is_ignored(self, store):
        assert entries.active_subscription(store, "user-2") is None

    def test_no_subscription(self, store):
        assert entries.active_subscription(store, "staff-1") is None


class TestCreateRaffleEntry:
    def test_ticket_numbers_are_sequential(self, store):
        first = entries.create_raffle_entry(store, "raffle-active", "user-2", source="manual_purchase")
        second = entries.create_raffle_entry(store, "raffle-active", "user-2", source="manual_purchase")
        assert first["ticket_number"] == "000002"
        assert second["ticket_number"] == "000003"
        assert first["is_winner"] is False

    def test_first_ticket_in_empty_raffle(self, store):
        store.update("raffles", {"status": "active"}, filters=[("id", "eq", "raffle-draft")])
        entry = entries.create_raffle_entry(store, "raffle-draft", "user-2", source="manual_purchase")
        assert entry["ticket_number"] == "000001"

    def test_numbers_past_padding_width(self, store):
        store.update("raffles", {"status": "active"}, filters=[("id", "eq", "raffle-draft")])
        for ticket_number in ("999999", "legacy"):
            store.insert(
                "raffle_entries",
                {"raffle_id": "raffle-draft", "user_id": "user-1", "ticket_number": ticket_number},
            )
        first = entries.create_raffle_entry(store, "raffle-draft", "user-2", source="manual_purchase")
        second = entries.create_raffle_entry(store, "raffle-draft", "user-2", source="manual_purchase")
        assert first["ticket_number"] == "1000000"
        assert second["ticket_number"] == "1000001"

    def test_raffle_row_is_locked(self, store):
        with mock.patch.object(store, "lock_row", wraps=store.lock_row) as lock_row:
            entries.create_raffle_entry(store, "raffle-active", "user-2", source="manual_purchase")
        lock_row.assert_called_once_with("raffles", "raffle-active")

    def test_concurrent_entries_share_no_number_and_respect_limit(self, store):
        def enter(_):
            try:
                return entries.create_raffle_entry(store, "raffle-active", "user-2", source="manual_purchase")
            except InvalidStateError:
                return None

        with ThreadPoolExecutor(max_workers=8) as executor:
            created = [entry for entry in executor.map(enter, range(8)) if entry]

        assert len(created) == 3
        rows = store.select("raffle_entries", filters=[("raffle_id", "eq", "raffle-active")])
        numbers = [row["ticket_number"] for row in rows]
        assert len(numbers) == len(set(numbers))

    def test_unknown_raffle(self, store):
        with pytest.raises(RaffleNotFoundError):
            entries.create_raffle_entry(store, "nope", "user-1", source="subscription")

    def test_inactive_raffle(self, store):
        with pytest.raises(InvalidStateError) as exc_info:
            entries.create_raffle_entry(store, "raffle-closed", "user-1", source="subscription")
        assert exc_info.value.message == "El sorteo no está activo"

    def test_manual_rejected_for_subscribers_only(self, store):
        with pytest.raises(InvalidStateError) as exc_info:
            entries.create_raffle_entry(store, "raffle-subs", "user-2", source="manual_purchase")
        assert exc_info.value.message == "Este sorteo es solo para suscriptores"

    def test_subscription_rejected_for_tickets_only(self, store):
        store.update("raffles", {"status": "active"}, filters=[("id", "eq", "raffle-draft")])
        with pytest.raises(InvalidStateError) as exc_info:
            entries.create_raffle_entry(store, "raffle-draft", "user-1", source="subscription")
        assert "compradores de boletos" in exc_info.value.message

    def test_max_entries(self, store):
        entries.create_raffle_entry(store, "raffle-active", "user-1", source="subscription")
        entries.create_raffle_entry(store, "raffle-active", "user-1", source="subscription")
        with pytest.raises(InvalidStateError) as exc_info:
            entries.create_raffle_entry(store, "raffle-active", "user-1", source="subscription")
        assert "máximo de 3 participaciones" in exc_info.value.message
        assert store.count("raffle_entries", filters=[("raffle_id", "eq", "raffle-active")]) == 3

    def test_unknown_source(self, store):
        with pytest.raises(ValidationError):
            entries.create_raffle_entry(store, "raffle-active", "user-1", source="gift")


class TestEnterWithSubscription:
    def test_enters_with_subscription_id(self, store):
        entry = entries.enter_raffle_with_subscription(store, "user-1", "raffle-subs")
        assert entry["entry_source"] == "subscription"
        assert entry["subscription_id"] == "sub-1"

    def test_requires_active_subscription(self, store):
        with pytest.raises(InvalidStateError):
            entries.enter_raffle_with_subscription(store, "user-2", "raffle-subs")

    def test_renewed_subscription_counts(self, store):
        store.update("subscriptions", {"current_period_end": iso(days=30)}, filters=[("id", "eq", "sub-expired")])
        entry = entries.enter_raffle_with_subscription(store, "user-2", "raffle-subs")
        assert entry["subscription_id"] == "sub-expired"


class TestEligibility:
    def test_anonymous(self, store):
        result = entries.check_raffle_eligibility(store, None, "raffle-active")
        assert result == {"eligible": False, "reason": "not_authenticated", "current_entries": 0, "max_entries": None}

    def test_unknown_raffle(self, store):
        assert entries.check_raffle_eligibility(store, "user-1", "nope")["reason"] == "raffle_not_found"

    def test_not_active(self, store):
        assert entries.check_raffle_eligibility(store, "user-1", "raffle-closed")["reason"] == "raffle_not_active"

    def test_subscription_required(self, store):
        result = entries.check_raffle_eligibility(store, "user-2", "raffle-subs")
        assert result["reason"] == "subscription_required"

    def test_eligible_with_counts(self, store):
        result = entries.check_raffle_eligibility(store, "user-1", "raffle-active")
        assert result["eligible"] is True
        assert result["current_entries"] == 1
        assert result["max_entries"] == 3

    def test_max_entries_reached(self, store):
        store.update("raffles", {"max_entries_per_user": 1}, filters=[("id", "eq", "raffle-active")])
        result = entries.check_raffle_eligibility(store, "user-1", "raffle-active")
        assert result["eligible"] is False
        assert result["reason"] == "max_entries_reached"


class TestRequireUser:
    def test_require_user(self):
        assert entries.require_user("user-1") == "user-1"
        with pytest.raises(AuthenticationError):
            entries.require_user(None)
