"""
API tests for the Sorteos FastAPI app.

Requests run through the full middleware stack against the seeded in-memory
store; the caller is identified with ``X-User-ID`` (trusted header) or a
Bearer token answered by the fake auth client.
"""

from unittest import mock

from conftest import as_user

ADMIN = as_user("admin-1")
STAFF = as_user("staff-1")
PARTICIPANT = as_user("user-1")


class TestHealth:
    def test_health(self, client):
        r = client.get("/v1/health")
        assert r.status_code == 200
        assert r.json() == {"ok": True}
        assert r.headers["cache-control"] == "no-store"

    def test_ready(self, client):
        r = client.get("/v1/health/ready")
        assert r.status_code == 200
        assert r.json() == {"ok": True}

    def test_security_headers(self, client):
        r = client.get("/v1/health")
        assert r.headers["x-content-type-options"] == "nosniff"
        assert r.headers["x-frame-options"] == "DENY"

    def test_private_responses_not_cached(self, client):
        r = client.get("/v1/admin/raffles/raffle-active", headers=STAFF)
        assert r.headers["cache-control"] == "no-store"
        assert client.get("/v1/help/support").headers["cache-control"] == "public, max-age=3600"

    def test_request_id_echoed(self, client):
        r = client.get("/v1/health", headers={"X-Request-ID": "req-abc"})
        assert r.headers["x-request-id"] == "req-abc"

    def test_request_id_generated(self, client):
        assert client.get("/v1/health").headers["x-request-id"]


class TestErrorEnvelope:
    def test_unauthenticated(self, client):
        r = client.get("/v1/admin/raffles")
        assert r.status_code == 401
        body = r.json()
        assert body["error"] == "not_authenticated"
        assert body["message"] == "Usuario no autenticado"
        assert body["request_id"] == r.headers["x-request-id"]

    def test_permission_denied(self, client):
        r = client.get("/v1/admin/raffles", headers=PARTICIPANT)
        assert r.status_code == 403
        assert r.json()["error"] == "permission_denied"

    def test_staff_cannot_use_admin_routes(self, client):
        r = client.get("/v1/admin/users", headers=STAFF)
        assert r.status_code == 403

    def test_unknown_profile_header_is_anonymous(self, client):
        assert client.get("/v1/admin/raffles", headers=as_user("ghost")).status_code == 401

    def test_header_ignored_when_not_trusted(self, client, monkeypatch):
        from sorteos.config import settings

        monkeypatch.setattr(settings, "trust_user_header", False)
        assert client.get("/v1/admin/raffles", headers=ADMIN).status_code == 401

    def test_not_found(self, client):
        r = client.get("/v1/admin/raffles/nope", headers=STAFF)
        assert r.status_code == 404
        assert r.json()["message"] == "Sorteo no encontrado"

    def test_request_validation(self, client):
        r = client.post("/v1/admin/raffles/raffle-active/status", json={}, headers=ADMIN)
        assert r.status_code == 422
        body = r.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "Datos inválidos"
        assert body["detail"]

    def test_domain_validation(self, client):
        r = client.post("/v1/admin/raffles", json={"title": ""}, headers=ADMIN)
        assert r.status_code == 400
        assert r.json()["error"] == "validation_error"


class TestRaffleRoutes:
    def test_list(self, client):
        r = client.get("/v1/admin/raffles", headers=STAFF)
        assert r.status_code == 200
        body = r.json()
        assert body["count"] == 5
        assert body["total"] == 5
        assert body["page"] == 1
        assert body["total_pages"] == 1

    def test_list_filters(self, client):
        r = client.get("/v1/admin/raffles", params={"q": "moto"}, headers=STAFF)
        assert [item["id"] for item in r.json()["items"]] == ["raffle-active"]

        r = client.get("/v1/admin/raffles", params={"status": "draft"}, headers=STAFF)
        assert [item["id"] for item in r.json()["items"]] == ["raffle-draft"]

    def test_pagination(self, client):
        r = client.get("/v1/admin/raffles", params={"page_size": 2, "page": 3}, headers=STAFF)
        body = r.json()
        assert body["total_pages"] == 3
        assert len(body["items"]) == 1

    def test_delete(self, client):
        assert client.delete("/v1/admin/raffles/raffle-draft", headers=ADMIN).status_code == 204
        assert client.get("/v1/admin/raffles/raffle-draft", headers=STAFF).status_code == 404

    def test_delete_requires_admin(self, client):
        assert client.delete("/v1/admin/raffles/raffle-draft", headers=STAFF).status_code == 403

    def test_status_transition_conflict(self, client):
        r = client.post("/v1/admin/raffles/raffle-closed/status", json={"status": "drawn"}, headers=ADMIN)
        assert r.status_code == 409
        assert r.json()["error"] == "invalid_state"

    def test_calendar(self, client):
        r = client.get("/v1/admin/raffles/calendar", params={"year": 2026, "month": 2}, headers=ADMIN)
        assert r.status_code == 200
        assert r.headers["cache-control"] == "no-store"
        body = r.json()
        assert body["label"] == "Febrero 2026"
        assert sum(body["status_counts"].values()) == 5

    def test_calendar_requires_admin(self, client):
        assert client.get("/v1/admin/raffles/calendar", headers=STAFF).status_code == 403

    def test_calendar_month_out_of_range(self, client):
        r = client.get("/v1/admin/raffles/calendar", params={"month": 13}, headers=ADMIN)
        assert r.status_code == 422

    def test_draw_and_verify(self, client):
        with mock.patch("sorteos.draw.generate_seed", return_value="a"):
            r = client.post("/v1/admin/raffles/raffle-closed/draw", headers=ADMIN)
        assert r.status_code == 200
        body = r.json()
        assert body["draw_seed"] == "a"
        assert body["total_winners"] == 2
        assert [w["entry_id"] for w in body["winners"]] == ["entry-c3", "entry-c1"]

        r = client.get("/v1/admin/raffles/raffle-closed/verify", headers=STAFF)
        assert r.json() == {"raffle_id": "raffle-closed", "valid": True}

    def test_draw_ignores_client_seed(self, client):
        with mock.patch("sorteos.draw.generate_seed", return_value="server-seed"):
            r = client.post("/v1/admin/raffles/raffle-closed/draw", json={"seed": "s3"}, headers=ADMIN)
        assert r.status_code == 200
        assert r.json()["draw_seed"] == "server-seed"
        assert client.get("/v1/admin/raffles/raffle-closed", headers=STAFF).json()["draw_seed"] == "server-seed"

    def test_draw_on_active_raffle(self, client):
        r = client.post("/v1/admin/raffles/raffle-active/draw", headers=ADMIN)
        assert r.status_code == 409


class TestPublicRoutes:
    def test_alert(self, client):
        r = client.get("/v1/live-events/alert")
        body = r.json()
        assert body["event"]["id"] == "event-upcoming"
        assert body["phase"] == "upcoming"
        assert 0.0 <= body["progress"] <= 1.0

    def test_no_alert(self, client, store):
        store.update("live_events", {"show_as_alert": False}, filters=[("id", "eq", "event-upcoming")])
        assert client.get("/v1/live-events/alert").json() == {"event": None}

    def test_faqs(self, client):
        r = client.get("/v1/help/faqs", params={"q": "gano"})
        assert [f["slug"] for f in r.json()] == ["que-pasa-si-gano"]

    def test_support_channels(self, client):
        assert len(client.get("/v1/help/support").json()) == 3

    def test_payment_methods_by_scope(self, client):
        r = client.get("/v1/payment-methods", params={"scope": "plans"})
        assert [m["id"] for m in r.json()["items"]] == ["pm-qr"]


class TestParticipantRoutes:
    def test_dashboard_requires_session(self, client):
        assert client.get("/v1/me/dashboard").status_code == 401

    def test_dashboard(self, client):
        r = client.get("/v1/me/dashboard", headers=PARTICIPANT)
        assert r.status_code == 200
        assert r.json()["user"]["id"] == "user-1"

    def test_eligibility(self, client):
        r = client.get("/v1/raffles/raffle-active/eligibility", headers=PARTICIPANT)
        assert r.json() == {"eligible": True, "reason": None, "current_entries": 1, "max_entries": 3}

    def test_eligibility_anonymous(self, client):
        r = client.get("/v1/raffles/raffle-active/eligibility")
        assert r.json()["reason"] == "not_authenticated"

    def test_enter_with_subscription(self, client):
        r = client.post("/v1/raffles/raffle-subs/enter", headers=PARTICIPANT)
        assert r.status_code == 201
        assert r.json()["entry_source"] == "subscription"


class TestNotificationRoutes:
    def test_list(self, client):
        r = client.get("/v1/me/notifications", headers=PARTICIPANT)
        assert r.status_code == 200
        body = r.json()
        assert body["unread_count"] == 2
        assert [n["id"] for n in body["notifications"]][0] == "notif-prize"

    def test_requires_session(self, client):
        assert client.get("/v1/me/notifications").status_code == 401

    def test_mark_read(self, client):
        r = client.post("/v1/me/notifications/notif-raffle/read", headers=PARTICIPANT)
        assert r.status_code == 200
        assert r.json()["read"] is True

    def test_mark_read_of_other_user(self, client):
        r = client.post("/v1/me/notifications/notif-other/read", headers=PARTICIPANT)
        assert r.status_code == 404

    def test_mark_all_read(self, client):
        r = client.post("/v1/me/notifications/read-all", headers=PARTICIPANT)
        assert r.json() == {"updated": 2}
        assert client.get("/v1/me/notifications", headers=PARTICIPANT).json()["unread_count"] == 0

    def test_delete(self, client, store):
        r = client.delete("/v1/me/notifications/notif-read", headers=PARTICIPANT)
        assert r.status_code == 204
        assert store.get("notifications", "notif-read") is None

    def test_admin_sends(self, client):
        payload = {"user_id": "user-2", "title": "Aviso", "message": "Tu pago fue recibido.", "type": "success"}
        r = client.post("/v1/admin/notifications", json=payload, headers=ADMIN)
        assert r.status_code == 201
        assert r.json()["type"] == "success"

    def test_participant_cannot_send(self, client):
        payload = {"user_id": "user-2", "title": "Aviso", "message": "Hola"}
        r = client.post("/v1/admin/notifications", json=payload, headers=PARTICIPANT)
        assert r.status_code == 403


class TestPaymentReview:
    def test_approve(self, client, store):
        r = client.post(
            "/v1/admin/transactions/tx-manual/approve", json={"admin_comment": "OK"}, headers=STAFF
        )
        assert r.status_code == 200
        body = r.json()
        assert body["message"] == "Pago aprobado y 2 boletos creados exitosamente"
        assert len(body["entry_ids"]) == 2
        assert store.get("payment_transactions", "tx-manual")["reviewed_by"] == "staff-1"

    def test_approve_twice_conflicts(self, client):
        client.post("/v1/admin/transactions/tx-qr/approve", headers=STAFF)
        r = client.post("/v1/admin/transactions/tx-qr/approve", headers=STAFF)
        assert r.status_code == 409

    def test_reject(self, client):
        r = client.post(
            "/v1/admin/transactions/tx-manual/reject",
            json={"rejection_reason": "Comprobante ilegible"},
            headers=STAFF,
        )
        assert r.json() == {"success": True, "message": "Pago rechazado", "entry_ids": []}

    def test_list_transactions(self, client):
        r = client.get("/v1/admin/transactions", params={"status": "pending"}, headers=STAFF)
        body = r.json()
        assert {item["id"] for item in body["items"]} == {"tx-manual", "tx-qr"}
        assert body["stats"]["total"] == 3


class TestUserRoutes:
    def test_export_csv(self, client):
        r = client.get("/v1/admin/users/export", params={"role": "admin"}, headers=ADMIN)
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/csv")
        assert r.headers["content-disposition"].startswith('attachment; filename="usuarios_')
        lines = r.text.splitlines()
        assert len(lines) == 2
        assert lines[1].startswith('"Ana Admin"')

    def test_change_role(self, client):
        r = client.post("/v1/admin/users/user-2/role", json={"role": "staff"}, headers=ADMIN)
        assert r.status_code == 200
        assert r.json()["role"] == "staff"


class TestWinnerRoutes:
    def test_mark_contacted(self, client):
        r = client.post("/v1/admin/winners/winner-1/contacted", headers=STAFF)
        assert r.json()["status"] == "contacted"
        assert r.json()["contact_attempts"] == 1


class TestAuthRoutes:
    def test_me_with_bearer(self, client):
        r = client.get("/v1/auth/me", headers={"Authorization": "Bearer token-admin"})
        assert r.status_code == 200
        assert r.json()["role"] == "admin"

    def test_invalid_bearer(self, client):
        assert client.get("/v1/auth/me", headers={"Authorization": "Bearer nope"}).status_code == 401

    def test_resolve_redirect(self, client):
        r = client.get("/v1/auth/resolve-redirect", headers=STAFF)
        assert r.json() == {"path": "/staff", "role": "staff"}

    def test_resolve_redirect_anonymous(self, client):
        r = client.get("/v1/auth/resolve-redirect")
        assert r.status_code == 401
        assert r.json() == {"path": "/iniciar-sesion"}

    def test_sign_in(self, client):
        r = client.post("/v1/auth/sign-in", json={"email": "ana@example.com", "password": "secret"})
        assert r.status_code == 200
        body = r.json()
        assert body["access_token"] == "token-admin"
        assert body["path"] == "/administrador"
        assert body["user"]["full_name"] == "Ana Admin"

    def test_sign_in_wrong_password(self, client):
        r = client.post("/v1/auth/sign-in", json={"email": "ana@example.com", "password": "nope"})
        assert r.status_code == 401

    def test_sign_out(self, client, auth_client):
        r = client.post("/v1/auth/sign-out", headers={"Authorization": "Bearer token-admin"})
        assert r.json() == {"success": True}
        assert auth_client.signed_out == ["token-admin"]

    def test_callback_redirect(self, client, auth_client):
        r = client.get("/auth/callback", params={"code": "ok", "type": "signup"}, follow_redirects=False)
        assert r.status_code == 307
        assert r.headers["location"] == "/iniciar-sesion?confirmed=true"
        assert auth_client.exchanged == ["ok"]

    def test_guard(self, client):
        r = client.get("/v1/auth/guard", params={"path": "/administrador"}, headers=PARTICIPANT)
        assert r.json() == {"allowed": False, "redirect_to": "/dashboard"}

        r = client.get("/v1/auth/guard", params={"path": "/ayuda"})
        assert r.json() == {"allowed": True, "redirect_to": None}


class TestObservability:
    def test_sanitize_query(self):
        from sorteos.api.observability import sanitize_query

        assert sanitize_query("code=abc&type=signup") == "code=***REDACTED***&type=signup"
        assert sanitize_query("q=moto&page=2") == "q=moto&page=2"

    def test_client_ip(self, monkeypatch):
        from types import SimpleNamespace

        from sorteos.api.middleware import get_client_ip
        from sorteos.config import settings

        request = SimpleNamespace(
            client=SimpleNamespace(host="10.0.0.1"),
            headers={"x-forwarded-for": "1.2.3.4, 10.0.0.1"},
        )
        assert get_client_ip(request) == "10.0.0.1"

        monkeypatch.setattr(settings, "trust_proxy_headers", True)
        monkeypatch.setattr(settings, "trusted_proxy_ips", {"10.0.0.1"})
        assert get_client_ip(request) == "1.2.3.4"

        monkeypatch.setattr(settings, "trusted_proxy_ips", {"10.0.0.9"})
        assert get_client_ip(request) == "10.0.0.1"
