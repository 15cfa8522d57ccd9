"""
Request correlation.

Every request runs under a transaction id, taken from the
``x-transaction-id`` header when the caller supplies one. The id is echoed
back on the response and stamped on every log record.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from .context import (
    generate_transaction_id,
    get_tenant_id,
    get_transaction_id,
    set_tenant_id,
    set_transaction_id,
)

TRANSACTION_HEADER = "x-transaction-id"

request_logger = logging.getLogger("casalink_backend.requests")


class TransactionIdFilter(logging.Filter):
    """Copies the current transaction and tenant ids onto each record.

    Runs in the emitting thread, before a queued record loses its context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "transaction_id"):
            record.transaction_id = get_transaction_id()
        if getattr(record, "tenant_id", None) is None:
            tenant_id = get_tenant_id()
            if tenant_id is not None:
                record.tenant_id = str(tenant_id)
        return True


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Binds a transaction id per request and logs its outcome."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        txn_id = request.headers.get(TRANSACTION_HEADER) or generate_transaction_id()
        set_transaction_id(txn_id)
        set_tenant_id(None)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            request_logger.exception(
                "Request failed",
                extra={"method": request.method, "path": request.url.path},
            )
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        request_logger.log(
            level,
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={
                "status_code": response.status_code,
                "duration_ms": round(elapsed_ms, 1),
            },
        )

        response.headers[TRANSACTION_HEADER] = txn_id
        return response
