"""Context variables that correlate log records with a request and tenant."""

import secrets
from contextvars import ContextVar
from uuid import UUID

_transaction_id: ContextVar[str | None] = ContextVar("casalink_transaction_id", default=None)
_tenant_id: ContextVar[UUID | None] = ContextVar("casalink_tenant_id", default=None)


def generate_transaction_id() -> str:
    return secrets.token_hex(4)


def get_transaction_id() -> str:
    """The current transaction id; work outside a request gets one lazily."""
    current = _transaction_id.get()
    if current is None:
        current = generate_transaction_id()
        _transaction_id.set(current)
    return current


def set_transaction_id(txn_id: str) -> None:
    _transaction_id.set(txn_id)


def get_tenant_id() -> UUID | None:
    return _tenant_id.get()


def set_tenant_id(tenant_id: UUID | None) -> None:
    _tenant_id.set(tenant_id)
