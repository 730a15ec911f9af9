"""
AuthGate -- simulated sign-in and role permissions.

Responsibility:
    Checks credentials against a static user table, keeps the signed-in
    session in the key-value backend so a new AuthGate on the same backend
    resumes it, and answers permission questions for the current user.

Architecture position:
    Kernel > Services.  Independent of the inventory document; shares only
    the key-value backend.

Non-goals:
    - No real security.  Passwords live in configuration in clear text and
      the token is an unsigned JWT-shaped string anyone can forge.

Failure modes:
    - InvalidCredentialsError: unknown user or wrong password.
    - NotAuthenticatedError / PermissionDeniedError from
      ``require_permission``.
"""

from __future__ import annotations

import base64
import json
import secrets
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.values import from_iso, to_iso
from stock_kernel.exceptions import (
    InvalidCredentialsError,
    NotAuthenticatedError,
    PermissionDeniedError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.storage.base import KeyValueStore

logger = get_logger("services.auth")

ADMINISTRATOR = "ADMINISTRATOR"
EMPLOYEE = "EMPLOYEE"


@dataclass(frozen=True)
class AuthUser:
    """Public view of an account (never carries the password)."""

    id: str
    username: str
    name: str
    role: str
    email: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "role": self.role,
            "email": self.email,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuthUser:
        return cls(
            id=str(data["id"]),
            username=str(data["username"]),
            name=str(data.get("name") or data["username"]),
            role=str(data["role"]),
            email=str(data.get("email") or ""),
        )


@dataclass(frozen=True)
class Credential:
    user: AuthUser
    password: str


@dataclass(frozen=True)
class AuthSession:
    user: AuthUser
    token: str
    issued_at: datetime
    expires_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user.id,
            "user": self.user.to_dict(),
            "token": self.token,
            "loginTime": to_iso(self.issued_at),
            "expiresAt": to_iso(self.expires_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuthSession:
        return cls(
            user=AuthUser.from_dict(data["user"]),
            token=str(data["token"]),
            issued_at=from_iso(data["loginTime"]),
            expires_at=from_iso(data["expiresAt"]),
        )


def _b64(payload: dict[str, Any] | str) -> str:
    if not isinstance(payload, str):
        payload = json.dumps(payload, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode()).decode().rstrip("=")


class AuthGate:
    """
    Sign-in state and permission checks.

    Contract:
        ``has_permission`` is False for every permission when nobody is
        signed in; ``require_permission`` raises instead.
    """

    def __init__(
        self,
        backend: KeyValueStore,
        credentials: Iterable[Credential],
        role_permissions: Mapping[str, Iterable[str]],
        session_key: str = "session",
        session_hours: int = 24,
        clock: Clock | None = None,
    ):
        self._backend = backend
        self._credentials = {c.user.username: c for c in credentials}
        self._roles = {role: frozenset(p) for role, p in role_permissions.items()}
        self._session_key = session_key
        self._session_ttl = timedelta(hours=session_hours)
        self._clock = clock or SystemClock()
        self._session: AuthSession | None = None
        self._restore()

    def _restore(self) -> None:
        stored = self._backend.get(self._session_key)
        if stored is None:
            return
        try:
            session = AuthSession.from_dict(json.loads(stored.value))
        except (KeyError, TypeError, ValueError):
            logger.warning("session_unreadable", extra={"key": self._session_key})
            self._backend.delete(self._session_key)
            return
        if session.expires_at <= self._clock.now():
            logger.info("session_expired", extra={"username": session.user.username})
            self._backend.delete(self._session_key)
            return
        self._session = session
        logger.info(
            "session_restored",
            extra={"username": session.user.username, "role": session.user.role},
        )

    # ------------------------------------------------------------------
    # Sign in / out
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> AuthSession:
        """
        Sign in and persist the session.

        Raises:
            InvalidCredentialsError: Unknown user or wrong password.
        """
        credential = self._credentials.get(username)
        if credential is None or not secrets.compare_digest(
            credential.password.encode(), str(password).encode()
        ):
            logger.warning("login_failed", extra={"username": username})
            raise InvalidCredentialsError(username)

        now = self._clock.now()
        expires_at = now + self._session_ttl
        session = AuthSession(
            user=credential.user,
            token=self._issue_token(credential.user, now, expires_at),
            issued_at=now,
            expires_at=expires_at,
        )
        self._backend.set(self._session_key, json.dumps(session.to_dict()))
        self._session = session
        logger.info(
            "login_succeeded",
            extra={"username": username, "role": credential.user.role},
        )
        return session

    def logout(self) -> None:
        if self._session is not None:
            logger.info("logout", extra={"username": self._session.user.username})
        self._session = None
        self._backend.delete(self._session_key)

    @staticmethod
    def _issue_token(user: AuthUser, issued_at: datetime, expires_at: datetime) -> str:
        header = _b64({"alg": "none", "typ": "JWT"})
        payload = _b64({
            "userId": user.id,
            "username": user.username,
            "role": user.role,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        })
        signature = _b64(secrets.token_hex(8))
        return f"{header}.{payload}.{signature}"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def session(self) -> AuthSession | None:
        return self._session

    @property
    def current_user(self) -> AuthUser | None:
        return self._session.user if self._session is not None else None

    def is_authenticated(self) -> bool:
        return self._session is not None

    def role(self) -> str | None:
        user = self.current_user
        return user.role if user is not None else None

    def is_admin(self) -> bool:
        return self.role() == ADMINISTRATOR

    def is_employee(self) -> bool:
        return self.role() == EMPLOYEE

    def permissions(self) -> frozenset[str]:
        role = self.role()
        if role is None:
            return frozenset()
        return self._roles.get(role, frozenset())

    def has_permission(self, permission: str) -> bool:
        allowed = permission in self.permissions()
        if not allowed:
            logger.debug(
                "permission_denied",
                extra={"permission": permission, "role": self.role()},
            )
        return allowed

    def require_permission(self, permission: str) -> AuthUser:
        """
        Return the current user if they hold ``permission``.

        Raises:
            NotAuthenticatedError: Nobody is signed in.
            PermissionDeniedError: The user's role lacks the permission.
        """
        user = self.current_user
        if user is None:
            raise NotAuthenticatedError(permission)
        if permission not in self.permissions():
            logger.warning(
                "permission_denied",
                extra={"username": user.username, "role": user.role, "permission": permission},
            )
            raise PermissionDeniedError(user.username, user.role, permission)
        return user

    def demo_users(self) -> list[dict[str, str]]:
        """Accounts available for sign-in, passwords included."""
        return [
            {
                "username": c.user.username,
                "password": c.password,
                "name": c.user.name,
                "role": c.user.role,
            }
            for c in self._credentials.values()
        ]
