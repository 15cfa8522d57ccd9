"""Logging infrastructure: JSON records correlated by transaction and tenant."""

from .context import get_tenant_id, get_transaction_id, set_tenant_id, set_transaction_id
from .logger_config import get_logger, setup_logging, shutdown_logging
from .middleware import RequestIdMiddleware, TransactionIdFilter

__all__ = [
    "get_logger",
    "setup_logging",
    "shutdown_logging",
    "RequestIdMiddleware",
    "TransactionIdFilter",
    "get_tenant_id",
    "get_transaction_id",
    "set_tenant_id",
    "set_transaction_id",
]
