"""
Domain errors.

Every error carries the HTTP status it maps to; the application's exception
handler turns ``message`` and ``details`` into the response envelope.
"""

from typing import Any


class CasaLinkException(Exception):
    """Root of the CasaLink error hierarchy."""

    status_code: int = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ResourceNotFoundError(CasaLinkException):
    status_code = 404

    def __init__(self, resource_type: str, identifier: Any):
        super().__init__(
            f"{resource_type} '{identifier}' does not exist",
            {"resource": resource_type, "identifier": str(identifier)},
        )
        self.resource_type = resource_type
        self.identifier = identifier


class ResourceAlreadyExistsError(CasaLinkException):
    status_code = 409

    def __init__(self, resource_type: str, identifier: Any):
        super().__init__(
            f"{resource_type} '{identifier}' is already present",
            {"resource": resource_type, "identifier": str(identifier)},
        )
        self.resource_type = resource_type
        self.identifier = identifier


class ValidationError(CasaLinkException):
    """Input rejected by a domain rule, optionally naming the offending field."""

    status_code = 422

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {"field": field} if field else None
        super().__init__(f"{field}: {message}" if field else message, details)
        self.field = field
        self.value = value


class InvalidPrimaryError(ValidationError):
    """The requested primary email is not among the unit's linked residents."""

    def __init__(self, email: str | None):
        super().__init__(
            f"'{email}' is not linked to this unit",
            field="primary_email",
            value=email,
        )


class PrimaryRequiredError(ValidationError):
    """Unlinking the primary resident while others remain needs a successor."""

    def __init__(self, email: str):
        super().__init__(
            f"'{email}' is the primary resident and other residents remain; "
            "name the new primary",
            field="new_primary_email",
            value=email,
        )


class BusinessLogicError(CasaLinkException):
    status_code = 409


class CapacityExceededError(BusinessLogicError):
    """The operation would leave more active units than the tenant is licensed for."""

    def __init__(self, excess_by: int, licensed_units: int | None = None):
        super().__init__(
            f"Licensed unit capacity would be exceeded by {excess_by}",
            {"excess_by": excess_by, "licensed_units": licensed_units},
        )
        self.excess_by = excess_by
        self.licensed_units = licensed_units


class InvalidTransitionError(BusinessLogicError):
    def __init__(self, current_state: str, action: str):
        super().__init__(
            f"Cannot {action} a visitor request in state '{current_state}'",
            {"current_state": current_state, "action": action},
        )
        self.current_state = current_state
        self.action = action


class ConflictError(CasaLinkException):
    """A concurrent writer changed the record first; retry the whole operation."""

    status_code = 409


class AuthenticationError(CasaLinkException):
    """The bearer credentials are missing, malformed or expired."""

    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class TokenError(CasaLinkException):
    """Base class for QR token validation failures."""

    status_code = 401


class TokenExpiredError(TokenError):
    def __init__(self, message: str = "QR token has expired"):
        super().__init__(message)


class TokenInvalidError(TokenError):
    def __init__(self, message: str = "QR token is invalid"):
        super().__init__(message)


class PermissionError(CasaLinkException):
    """The caller's role or capabilities do not cover the action."""

    status_code = 403

    def __init__(self, action: str, resource_type: str):
        super().__init__(
            f"Not allowed to {action} {resource_type}",
            {"action": action, "resource": resource_type},
        )
        self.action = action
        self.resource_type = resource_type
