"""
Shiftboard exception hierarchy.

Services raise these types; blueprints map them to HTTP status codes in
one place (see ``shiftboard.utils.errors.register_error_handlers``).

Usage:
    from shiftboard.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Activity", resource_id="a1b2c3")
    raise ValidationError("end_time must be after time", details={"end_time": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested entity does not exist within the caller's scope.

    Used for BOTH genuinely missing records AND records outside the
    caller's visibility set, so a 404 never confirms that another tenant's
    record exists.

    Args:
        resource: Entity name (e.g. "Activity", "Collaborator").
        resource_id: The id that was looked up.
        tenant_id: Optional — the manager tenant that was enforced. Logs only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        tenant_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.tenant_id = tenant_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if tenant_id is not None:
            msg += f" (tenant={tenant_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Examples: end time not after start time, password too short, admin
    acting on tenant-scoped data without selecting a tenant.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class AuthenticationError(Exception):
    """Raised when credentials do not match any principal. Maps to HTTP 401."""


class AuthorizationError(Exception):
    """Raised when the principal's role does not allow the operation.

    Maps to HTTP 403.
    """

    def __init__(self, action: str, role: str | None = None) -> None:
        self.action = action
        self.role = role
        msg = f"{action} is not allowed"
        if role:
            msg += f" for role {role}"
        super().__init__(msg)


class FirstLoginRequired(Exception):
    """Raised for any operation attempted before the mandatory password change.

    Maps to HTTP 403 with code ERR_FIRST_LOGIN.
    """

    def __init__(self) -> None:
        super().__init__("Password change required before continuing")


class StorageError(Exception):
    """Raised by a storage backend when a round trip fails.

    The data store logs and swallows it; the local state is left at its
    last-known-good value.
    """
