"""Core infrastructure for the CasaLink backend."""

from .concurrency import retry_on_conflict
from .database_types import UUID, EmailList
from .exceptions import (
    AuthenticationError,
    BusinessLogicError,
    CapacityExceededError,
    CasaLinkException,
    ConflictError,
    InvalidPrimaryError,
    InvalidTransitionError,
    PermissionError,
    PrimaryRequiredError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    ValidationError,
)
from .pagination import PaginatedResults, validate_pagination_params

__all__ = [
    "UUID",
    "EmailList",
    "retry_on_conflict",
    "PaginatedResults",
    "validate_pagination_params",
    # Errors
    "CasaLinkException",
    "AuthenticationError",
    "BusinessLogicError",
    "CapacityExceededError",
    "ConflictError",
    "InvalidPrimaryError",
    "InvalidTransitionError",
    "PermissionError",
    "PrimaryRequiredError",
    "ResourceAlreadyExistsError",
    "ResourceNotFoundError",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "ValidationError",
]
