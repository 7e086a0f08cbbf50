"""
Authentication and first-login gate.

    LOGGED_OUT ──login──▶ FIRST_LOGIN ──change_password──▶ AUTHENTICATED
        ▲                     │                               │
        └────── logout / cancel (from any state) ─────────────┘

A principal whose ``is_first_login`` flag is set lands in FIRST_LOGIN and
can do nothing but change the password or leave. ``data_store()`` is the
only way to reach the rest of the application and refuses until the gate
is AUTHENTICATED.
"""

import logging
from enum import Enum

from shiftboard.core.exceptions import (
    AuthenticationError,
    FirstLoginRequired,
    StorageError,
    ValidationError,
)
from shiftboard.services.data_store import DataStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4


class AuthState(str, Enum):
    LOGGED_OUT = "LOGGED_OUT"
    FIRST_LOGIN = "FIRST_LOGIN"
    AUTHENTICATED = "AUTHENTICATED"


def validate_new_password(new_password, confirm_password) -> None:
    if not isinstance(new_password, str) or len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            details={"new_password": f"min length {MIN_PASSWORD_LENGTH}"},
        )
    if new_password != confirm_password:
        raise ValidationError(
            "Passwords do not match", details={"confirm_password": "does not match"}
        )


class AuthGate:
    """Session state for one client.

    Over HTTP the gate is rebuilt per request from the token's principal
    (``AuthGate(backend, principal)``); in-process callers keep one around.
    """

    def __init__(self, backend, principal=None):
        self.backend = backend
        self.principal = principal

    @property
    def state(self) -> AuthState:
        if self.principal is None:
            return AuthState.LOGGED_OUT
        if self.principal.is_first_login:
            return AuthState.FIRST_LOGIN
        return AuthState.AUTHENTICATED

    def login(self, employee_number: str, password: str):
        """Authenticate by employee number and password.

        Returns:
            The principal, or None if the backend could not be reached.

        Raises:
            AuthenticationError: No principal matches the credentials.
        """
        try:
            principal = self.backend.authenticate((employee_number or "").strip(), password or "")
        except StorageError:
            logger.exception("Login lookup failed")
            return None
        if principal is None:
            logger.info("Login rejected", extra={"employee_number": employee_number})
            raise AuthenticationError("Invalid employee number or password")

        self.principal = principal
        logger.info("Login", extra={
            "principal_id": principal.id,
            "role": principal.role.value,
            "auth_state": self.state.value,
        })
        return principal

    def change_password(self, new_password: str, confirm_password: str):
        """Replace the password and clear the first-login flag.

        Returns:
            The updated principal, or None if the backend update failed
            (state is unchanged in that case).
        """
        if self.principal is None:
            raise AuthenticationError("Not authenticated")
        validate_new_password(new_password, confirm_password)
        try:
            updated = self.backend.change_credential(
                self.principal.role, self.principal.id, new_password
            )
        except StorageError:
            logger.exception("Password change failed", extra={"principal_id": self.principal.id})
            return None
        self.principal = updated
        logger.info("Password changed", extra={
            "principal_id": updated.id, "role": updated.role.value,
        })
        return updated

    def logout(self) -> None:
        self.principal = None

    def cancel(self) -> None:
        """Leave the first-login screen without changing the password."""
        self.logout()

    def require_authenticated(self):
        if self.state is AuthState.LOGGED_OUT:
            raise AuthenticationError("Not authenticated")
        if self.state is AuthState.FIRST_LOGIN:
            raise FirstLoginRequired()
        return self.principal

    def data_store(self, clock, selected_tenant_id: int | None = None) -> DataStore:
        return DataStore(self.backend, clock, self.require_authenticated(), selected_tenant_id)
