"""
Tests for role hierarchy and route guard (sorteos.roles).
"""

import pytest

from sorteos import roles


class TestHasRole:
    @pytest.mark.parametrize(
        "user_role,required,expected",
        [
            ("admin", "admin", True),
            ("admin", "staff", True),
            ("admin", "participant", True),
            ("staff", "admin", False),
            ("staff", "staff", True),
            ("participant", "staff", False),
            ("participant", "participant", True),
            (None, "participant", False),
            ("", "participant", False),
            ("superuser", "participant", False),
        ],
    )
    def test_hierarchy(self, user_role, required, expected):
        assert roles.has_role(user_role, required) is expected

    def test_access_helpers(self):
        assert roles.can_access_admin("admin")
        assert not roles.can_access_admin("staff")
        assert roles.can_access_staff("admin")
        assert roles.can_access_dashboard("participant")
        assert not roles.can_access_dashboard(None)


class TestRedirectPath:
    def test_landing_pages(self):
        assert roles.redirect_path("admin") == "/administrador"
        assert roles.redirect_path("staff") == "/staff"
        assert roles.redirect_path("participant") == "/dashboard"

    def test_unknown_role_goes_to_login(self):
        assert roles.redirect_path("ghost") == "/iniciar-sesion"
        assert roles.redirect_path(None) == "/iniciar-sesion"


class TestPublicRoutes:
    @pytest.mark.parametrize("path", ["/", "/ayuda", "/ayuda/faq", "/iniciar-sesion", "/restablecer-clave"])
    def test_public(self, path):
        assert roles.is_public_route(path)

    @pytest.mark.parametrize("path", ["/dashboard", "/administrador/sorteos", "/ayudante", "/x/ayuda"])
    def test_protected(self, path):
        assert not roles.is_public_route(path)


class TestGuardRoute:
    def test_public_route_without_user(self):
        assert roles.guard_route("/ayuda", None, authenticated=False).allowed

    def test_protected_route_redirects_to_login(self):
        decision = roles.guard_route("/dashboard/boletos", None, authenticated=False)
        assert not decision.allowed
        assert decision.redirect_to == "/iniciar-sesion?redirectTo=%2Fdashboard%2Fboletos"

    def test_participant_blocked_from_admin(self):
        decision = roles.guard_route("/administrador", "participant", authenticated=True)
        assert decision == roles.RouteDecision(allowed=False, redirect_to="/dashboard")

    def test_participant_blocked_from_staff(self):
        decision = roles.guard_route("/staff/pagos", "participant", authenticated=True)
        assert decision.redirect_to == "/dashboard"

    def test_staff_allowed_in_staff_not_admin(self):
        assert roles.guard_route("/staff", "staff", authenticated=True).allowed
        assert not roles.guard_route("/administrador/usuarios", "staff", authenticated=True).allowed

    def test_admin_everywhere(self):
        for path in ("/administrador", "/staff", "/dashboard"):
            assert roles.guard_route(path, "admin", authenticated=True).allowed

    def test_missing_role_defaults_to_participant(self):
        assert roles.guard_route("/dashboard", None, authenticated=True).allowed

    def test_unknown_role_cannot_use_dashboard(self):
        decision = roles.guard_route("/dashboard", "ghost", authenticated=True)
        assert decision.redirect_to == "/iniciar-sesion"

    def test_prefix_must_be_a_segment(self):
        assert roles.guard_route("/administradores", "participant", authenticated=True).allowed
