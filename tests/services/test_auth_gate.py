"""Tests for AuthGate sign-in, session persistence and permissions."""

import base64
import json

import pytest

from stock_kernel.exceptions import (
    InvalidCredentialsError,
    NotAuthenticatedError,
    PermissionDeniedError,
)
from stock_kernel.services.auth_service import ADMINISTRATOR, EMPLOYEE


@pytest.fixture
def auth(app):
    return app.auth


def _decode(segment: str) -> dict:
    return json.loads(base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4)))


class TestLogin:
    def test_admin_login(self, auth, clock):
        session = auth.login("admin", "admin123")

        assert session.user.role == ADMINISTRATOR
        assert session.issued_at == clock.now()
        assert (session.expires_at - session.issued_at).total_seconds() == 24 * 3600
        assert auth.is_authenticated()
        assert auth.is_admin()
        assert not auth.is_employee()

    def test_token_shape(self, auth):
        token = auth.login("employee", "emp123").token

        header, payload, signature = token.split(".")
        assert _decode(header) == {"alg": "none", "typ": "JWT"}
        claims = _decode(payload)
        assert claims["username"] == "employee"
        assert claims["role"] == EMPLOYEE
        assert claims["exp"] - claims["iat"] == 24 * 3600
        assert signature

    @pytest.mark.parametrize("username, password", [("admin", "wrong"), ("ghost", "admin123")])
    def test_invalid_credentials(self, auth, username, password, captured_logs):
        with pytest.raises(InvalidCredentialsError):
            auth.login(username, password)

        assert not auth.is_authenticated()
        assert any(r["message"] == "login_failed" for r in captured_logs())

    def test_password_never_exposed_on_user(self, auth):
        user = auth.login("admin", "admin123").user
        assert "password" not in user.to_dict()

    def test_logout(self, auth, backend):
        auth.login("admin", "admin123")
        auth.logout()

        assert auth.current_user is None
        assert backend.get("session") is None


class TestSessionPersistence:
    def test_new_gate_resumes_session(self, auth, make_app, backend):
        auth.login("employee", "emp123")

        other = make_app(backend).auth

        assert other.current_user.username == "employee"
        assert other.is_employee()

    def test_expired_session_dropped(self, auth, make_app, backend, clock, captured_logs):
        auth.login("admin", "admin123")
        clock.advance(24 * 3600)

        other = make_app(backend).auth

        assert not other.is_authenticated()
        assert backend.get("session") is None
        assert any(r["message"] == "session_expired" for r in captured_logs())

    def test_unreadable_session_dropped(self, make_app, backend):
        backend.set("session", "garbage")
        assert not make_app(backend).auth.is_authenticated()
        assert backend.get("session") is None

    def test_session_does_not_touch_document_version(self, auth, documents):
        version = documents.version
        auth.login("admin", "admin123")
        assert documents.version == version


class TestPermissions:
    def test_nobody_signed_in(self, auth):
        assert auth.permissions() == frozenset()
        assert not auth.has_permission("view_products")
        with pytest.raises(NotAuthenticatedError):
            auth.require_permission("view_products")

    def test_employee_permissions(self, auth):
        auth.login("employee", "emp123")

        assert auth.has_permission("register_movement")
        assert not auth.has_permission("delete_product")
        with pytest.raises(PermissionDeniedError) as exc_info:
            auth.require_permission("import_data")
        assert exc_info.value.role == EMPLOYEE
        assert exc_info.value.permission == "import_data"

    def test_admin_has_every_employee_permission(self, auth, settings):
        auth.login("admin", "admin123")
        assert settings.roles[EMPLOYEE] <= auth.permissions()
        assert auth.require_permission("import_data").username == "admin"

    def test_demo_users(self, auth):
        users = {u["username"]: u for u in auth.demo_users()}
        assert users["admin"]["password"] == "admin123"
        assert users["employee"]["role"] == EMPLOYEE
