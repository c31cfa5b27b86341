"""
Tests for subscription plan administration (sorteos.services.plans).
"""

import pytest

from sorteos.exceptions import MissingRequiredFieldError, NotFoundError, ValidationError
from sorteos.services import plans


def plan_form(**overrides):
    form = {
        "name": "Familiar",
        "price": "19.5",
        "currency": "usd",
        "interval": "month",
        "benefits": "2 boletos por sorteo\n\nSoporte prioritario\n",
        "max_concurrent_raffles": "",
    }
    form.update(overrides)
    return form


def featured_ids(store):
    return [p["id"] for p in store.select("plans", filters=[("is_featured", "eq", True)])]


class TestPlanPayload:
    def test_valid(self):
        payload = plans.plan_payload(plan_form())
        assert payload["price"] == 19.5
        assert payload["currency"] == "USD"
        assert payload["benefits"] == ["2 boletos por sorteo", "Soporte prioritario"]
        assert payload["max_concurrent_raffles"] is None

    def test_benefits_list_accepted(self):
        assert plans.plan_payload(plan_form(benefits=["a", "b"]))["benefits"] == ["a", "b"]

    def test_invalid_price(self):
        with pytest.raises(ValidationError) as exc_info:
            plans.plan_payload(plan_form(price="gratis"))
        assert exc_info.value.message == "El precio debe ser un número válido."

    def test_invalid_interval_and_limit(self):
        with pytest.raises(ValidationError):
            plans.plan_payload(plan_form(interval="week"))
        with pytest.raises(ValidationError):
            plans.plan_payload(plan_form(max_concurrent_raffles="muchos"))

    def test_name_required(self):
        with pytest.raises(MissingRequiredFieldError):
            plans.plan_payload(plan_form(name=""))


class TestSavePlan:
    def test_create_and_update(self, store):
        row = plans.save_plan(store, plan_form())
        assert row["is_active"] is True
        updated = plans.save_plan(store, plan_form(name="Familiar Plus"), row["id"])
        assert updated["name"] == "Familiar Plus"

    def test_update_unknown(self, store):
        with pytest.raises(NotFoundError):
            plans.save_plan(store, plan_form(), "nope")

    def test_load_newest_first(self, store):
        assert [p["id"] for p in plans.load_plans(store)] == ["plan-premium", "plan-basic", "plan-old"]


class TestToggles:
    def test_toggle_active(self, store):
        assert plans.toggle_plan_active(store, store.get("plans", "plan-old"))["is_active"] is True

    def test_featuring_unfeatures_others(self, store):
        row = plans.toggle_plan_featured(store, store.get("plans", "plan-basic"))
        assert row["is_featured"] is True
        assert featured_ids(store) == ["plan-basic"]

    def test_unfeature(self, store):
        plans.toggle_plan_featured(store, store.get("plans", "plan-premium"))
        assert featured_ids(store) == []


class TestDuplicateAndDelete:
    def test_duplicate_is_inactive_copy(self, store):
        copy = plans.duplicate_plan(store, store.get("plans", "plan-premium"))
        assert copy["name"] == "Premium (Copia)"
        assert copy["is_active"] is False
        assert copy["is_featured"] is False
        assert copy["benefits"] == ["3 boletos por sorteo", "Acceso anticipado"]
        assert featured_ids(store) == ["plan-premium"]

    def test_delete(self, store):
        plans.delete_plan(store, "plan-old")
        with pytest.raises(NotFoundError):
            plans.delete_plan(store, "plan-old")
