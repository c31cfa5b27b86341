"""
Pytest configuration and shared fixtures for sorteos tests.

Every test runs against a seeded in-memory table store; nothing touches the
hosted database or the auth service.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from sorteos.config import settings
from sorteos.exceptions import AuthenticationError
from sorteos.repository import MemoryStore, set_store
from sorteos.services import auth


def iso(**delta: float) -> str:
    """ISO timestamp relative to now (``iso(days=-2)`` is two days ago)."""
    return (datetime.now(timezone.utc) + timedelta(**delta)).isoformat()


def seed_tables() -> dict[str, list[dict[str, Any]]]:
    return {
        "profiles": [
            {
                "id": "admin-1",
                "full_name": "Ana Admin",
                "email": "ana@example.com",
                "role": "admin",
                "id_number": "1710034065",
                "phone_number": "+593991111111",
                "address": "Quito",
                "created_at": "2026-01-10T10:00:00+00:00",
            },
            {
                "id": "staff-1",
                "full_name": "Sergio Staff",
                "email": "sergio@example.com",
                "role": "staff",
                "id_number": "0102030400",
                "phone_number": "+593992222222",
                "address": "Cuenca",
                "created_at": "2026-02-10T10:00:00+00:00",
            },
            {
                "id": "user-1",
                "full_name": "Pedro Participante",
                "email": "pedro@example.com",
                "role": "participant",
                "id_number": "0102030400",
                "phone_number": "+593993333333",
                "address": "Guayaquil",
                "created_at": "2026-03-10T10:00:00+00:00",
            },
            {
                "id": "user-2",
                "full_name": "María Compradora",
                "email": "maria@example.com",
                "role": "participant",
                "id_number": None,
                "phone_number": None,
                "address": None,
                "created_at": "2026-04-10T10:00:00+00:00",
            },
        ],
        "plans": [
            {
                "id": "plan-basic",
                "name": "Básico",
                "price": 9.99,
                "currency": "USD",
                "interval": "month",
                "benefits": ["1 boleto por sorteo"],
                "is_active": True,
                "is_featured": False,
                "created_at": "2026-01-01T00:00:00+00:00",
            },
            {
                "id": "plan-premium",
                "name": "Premium",
                "price": 99.0,
                "currency": "USD",
                "interval": "year",
                "benefits": ["3 boletos por sorteo", "Acceso anticipado"],
                "is_active": True,
                "is_featured": True,
                "created_at": "2026-01-02T00:00:00+00:00",
            },
            {
                "id": "plan-old",
                "name": "Antiguo",
                "price": 5,
                "currency": "USD",
                "interval": "month",
                "is_active": False,
                "is_featured": False,
                "created_at": "2025-06-01T00:00:00+00:00",
            },
        ],
        "subscriptions": [
            {
                "id": "sub-1",
                "user_id": "user-1",
                "plan_id": "plan-basic",
                "status": "active",
                "current_period_end": iso(days=20),
            },
            {
                "id": "sub-expired",
                "user_id": "user-2",
                "plan_id": "plan-basic",
                "status": "active",
                "current_period_end": iso(days=-1),
            },
        ],
        "raffles": [
            {
                "id": "raffle-active",
                "title": "Moto eléctrica",
                "prize_category": "vehicle",
                "status": "active",
                "entry_mode": "hybrid",
                "total_winners": 1,
                "max_entries_per_user": 3,
                "start_date": iso(days=-10),
                "end_date": iso(days=10),
                "draw_date": iso(days=12),
                "is_trending": True,
                "created_at": iso(days=-10),
            },
            {
                "id": "raffle-subs",
                "title": "Laptop gamer",
                "prize_category": "technology",
                "status": "active",
                "entry_mode": "subscribers_only",
                "total_winners": 1,
                "start_date": iso(days=-5),
                "end_date": iso(days=5),
                "draw_date": iso(days=6),
                "created_at": iso(days=-5),
            },
            {
                "id": "raffle-closed",
                "title": "Viaje a Galápagos",
                "prize_category": "travel",
                "status": "closed",
                "entry_mode": "hybrid",
                "total_winners": 2,
                "start_date": iso(days=-30),
                "end_date": iso(days=-1),
                "draw_date": iso(days=1),
                "created_at": iso(days=-30),
            },
            {
                "id": "raffle-draft",
                "title": "Televisor 65 pulgadas",
                "prize_category": "home",
                "status": "draft",
                "entry_mode": "tickets_only",
                "total_winners": 1,
                "start_date": iso(days=1),
                "end_date": iso(days=20),
                "created_at": iso(days=-1),
            },
            {
                "id": "raffle-done",
                "title": "Bono en efectivo",
                "prize_category": "cash",
                "status": "completed",
                "entry_mode": "hybrid",
                "total_winners": 1,
                "start_date": iso(days=-60),
                "end_date": iso(days=-40),
                "draw_date": iso(days=-39),
                "draw_seed": "abc123",
                "created_at": iso(days=-60),
            },
        ],
        "raffle_entries": [
            {
                "id": "entry-c1",
                "raffle_id": "raffle-closed",
                "user_id": "user-1",
                "entry_source": "subscription",
                "subscription_id": "sub-1",
                "ticket_number": "000001",
                "is_winner": False,
                "created_at": iso(days=-20),
            },
            {
                "id": "entry-c2",
                "raffle_id": "raffle-closed",
                "user_id": "user-2",
                "entry_source": "manual_purchase",
                "ticket_number": "000002",
                "is_winner": False,
                "created_at": iso(days=-19),
            },
            {
                "id": "entry-c3",
                "raffle_id": "raffle-closed",
                "user_id": "user-2",
                "entry_source": "manual_purchase",
                "ticket_number": "000003",
                "is_winner": False,
                "created_at": iso(days=-18),
            },
            {
                "id": "entry-c4",
                "raffle_id": "raffle-closed",
                "user_id": "user-1",
                "entry_source": "subscription",
                "subscription_id": "sub-1",
                "ticket_number": "000004",
                "is_winner": False,
                "created_at": iso(days=-17),
            },
            {
                "id": "entry-a1",
                "raffle_id": "raffle-active",
                "user_id": "user-1",
                "entry_source": "subscription",
                "subscription_id": "sub-1",
                "ticket_number": "000001",
                "is_winner": False,
                "created_at": iso(days=-3),
            },
            {
                "id": "entry-d1",
                "raffle_id": "raffle-done",
                "user_id": "user-1",
                "entry_source": "subscription",
                "ticket_number": "000001",
                "is_winner": True,
                "created_at": iso(days=-50),
            },
        ],
        "winners": [
            {
                "id": "winner-1",
                "raffle_id": "raffle-done",
                "entry_id": "entry-d1",
                "user_id": "user-1",
                "prize_position": 1,
                "status": "pending_contact",
                "contact_attempts": 0,
                "notes": "Llamar en la tarde",
                "created_at": iso(days=-39),
            },
        ],
        "payment_methods": [
            {
                "id": "pm-transfer",
                "name": "Transferencia Banco Pichincha",
                "type": "manual_transfer",
                "is_active": True,
                "config": {"scopes": ["raffles"], "currency": "USD", "manual": {"bankName": "Pichincha"}},
                "created_at": "2026-01-01T00:00:00+00:00",
            },
            {
                "id": "pm-qr",
                "name": "Pago con QR",
                "type": "qr_code",
                "is_active": True,
                "config": {"scopes": ["raffles", "plans"], "currency": "USD", "qr": {"provider": "DeUna"}},
                "created_at": "2026-01-02T00:00:00+00:00",
            },
            {
                "id": "pm-card",
                "name": "Tarjeta",
                "type": "stripe_card",
                "is_active": False,
                "config": {"scopes": ["plans"], "currency": "USD"},
                "created_at": "2026-01-03T00:00:00+00:00",
            },
        ],
        "payment_transactions": [
            {
                "id": "tx-manual",
                "user_id": "user-2",
                "payment_method_id": "pm-transfer",
                "transaction_type": "raffle_ticket",
                "amount": 10.0,
                "currency": "USD",
                "raffle_id": "raffle-active",
                "receipt_reference": "REF-001",
                "status": "pending",
                "metadata": {"tickets_requested": 2},
                "created_at": iso(days=-1),
            },
            {
                "id": "tx-qr",
                "user_id": "user-1",
                "payment_method_id": "pm-qr",
                "transaction_type": "subscription",
                "amount": 9.99,
                "currency": "USD",
                "subscription_id": "sub-1",
                "status": "pending",
                "metadata": {},
                "created_at": iso(days=-2),
            },
            {
                "id": "tx-card",
                "user_id": "user-1",
                "payment_method_id": "pm-card",
                "transaction_type": "subscription",
                "amount": 99.0,
                "currency": "USD",
                "status": "completed",
                "metadata": {},
                "created_at": iso(days=-3),
            },
        ],
        "live_events": [
            {
                "id": "event-upcoming",
                "title": "Sorteo en vivo: Moto eléctrica",
                "status": "scheduled",
                "start_at": iso(hours=3),
                "is_visible": True,
                "show_as_alert": True,
                "raffle_id": "raffle-active",
                "created_at": iso(days=-2),
            },
            {
                "id": "event-old",
                "title": "Transmisión pasada",
                "status": "scheduled",
                "start_at": iso(hours=-5),
                "is_visible": True,
                "show_as_alert": False,
                "created_at": iso(days=-3),
            },
            {
                "id": "event-hidden",
                "title": "Evento privado",
                "status": "scheduled",
                "start_at": iso(hours=1),
                "is_visible": False,
                "show_as_alert": False,
                "created_at": iso(days=-1),
            },
            {
                "id": "event-canceled",
                "title": "Evento cancelado",
                "status": "canceled",
                "start_at": iso(hours=1),
                "is_visible": True,
                "show_as_alert": False,
                "created_at": iso(days=-4),
            },
        ],
        "notifications": [
            {
                "id": "notif-prize",
                "user_id": "user-1",
                "title": "¡Ganaste!",
                "message": "Tu boleto 000001 resultó ganador.",
                "type": "prize",
                "read": False,
                "action_url": "/app/boletos",
                "created_at": "2026-03-03T10:00:00+00:00",
            },
            {
                "id": "notif-raffle",
                "user_id": "user-1",
                "title": "Nuevo sorteo",
                "message": "Ya puedes participar en el nuevo sorteo.",
                "type": "raffle",
                "read": False,
                "action_url": None,
                "created_at": "2026-03-02T10:00:00+00:00",
            },
            {
                "id": "notif-read",
                "user_id": "user-1",
                "title": "Pago aprobado",
                "message": "Tu pago fue aprobado.",
                "type": "success",
                "read": True,
                "action_url": None,
                "created_at": "2026-03-01T10:00:00+00:00",
            },
            {
                "id": "notif-other",
                "user_id": "user-2",
                "title": "Bienvenido",
                "message": "Gracias por registrarte.",
                "type": "info",
                "read": False,
                "action_url": None,
                "created_at": "2026-03-01T09:00:00+00:00",
            },
        ],
    }


@pytest.fixture
def store() -> Iterator[MemoryStore]:
    """Seeded in-memory store, also installed as the global store."""
    seeded = MemoryStore(seed_tables())
    set_store(seeded)
    yield seeded
    set_store(None)


@pytest.fixture
def empty_store() -> MemoryStore:
    return MemoryStore()


class FakeAuthClient(auth.SupabaseAuthClient):
    """Auth client answering from a token table instead of the network."""

    def __init__(self, users: dict[str, dict[str, Any]] | None = None) -> None:
        super().__init__("http://auth.test", "anon-key", timeout=1)
        self.users = users or {}
        self.exchanged: list[str] = []
        self.signed_out: list[str | None] = []

    def get_user(self, access_token: str) -> dict[str, Any]:
        if access_token not in self.users:
            raise AuthenticationError()
        return self.users[access_token]

    def exchange_code(self, code: str, code_verifier: str | None = None) -> dict[str, Any]:
        if code == "bad":
            raise AuthenticationError(auth.EXCHANGE_ERROR_MESSAGE)
        self.exchanged.append(code)
        return {"access_token": "token", "user": {"id": "user-1"}}

    def sign_in_password(self, email: str, password: str) -> dict[str, Any]:
        for token, user in self.users.items():
            if user.get("email") == email and password == "secret":
                return {"access_token": token, "refresh_token": "refresh", "expires_in": 3600, "user": user}
        raise AuthenticationError("Credenciales inválidas")

    def sign_out(self, access_token: str | None) -> None:
        self.signed_out.append(access_token)


@pytest.fixture
def auth_client() -> FakeAuthClient:
    return FakeAuthClient(
        {
            "token-admin": {"id": "admin-1", "email": "ana@example.com"},
            "token-new": {
                "id": "new-user",
                "email": "nuevo@example.com",
                "user_metadata": {"fullName": "Nuevo Usuario", "phone": "+593990000000", "cityId": "7"},
            },
        }
    )


@pytest.fixture
def trust_header(monkeypatch):
    monkeypatch.setattr(settings, "trust_user_header", True)


@pytest.fixture
def client(store, auth_client, trust_header):
    """API client over the seeded store; identify with ``X-User-ID`` headers."""
    from fastapi.testclient import TestClient

    from sorteos.api import create_app

    app = create_app(store=store, auth_client=auth_client)
    return TestClient(app)


def as_user(user_id: str) -> dict[str, str]:
    return {"X-User-ID": user_id}
