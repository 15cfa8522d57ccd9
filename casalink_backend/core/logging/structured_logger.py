"""
Log record formatting.

JSON output is one object per line with the request's transaction id and,
once the caller is authenticated, its tenant id.
"""

import logging
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from .context import get_tenant_id, get_transaction_id

SERVICE_NAME = "casalink-backend"

TEXT_LOG_FORMAT = (
    "%(asctime)s %(levelname)-8s [%(transaction_id)s] %(name)s: %(message)s"
)


class CorrelatedJsonFormatter(JsonFormatter):
    """JSON formatter stamping records with correlation fields."""

    def __init__(self):
        super().__init__(
            "%(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "name": "logger"},
            static_fields={"service": SERVICE_NAME},
            timestamp=True,
        )

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("transaction_id", get_transaction_id())

        tenant_id = log_record.get("tenant_id") or get_tenant_id()
        if tenant_id is not None:
            log_record["tenant_id"] = str(tenant_id)
        if record.levelno >= logging.WARNING:
            log_record["source"] = f"{record.module}:{record.funcName}:{record.lineno}"


def build_formatter(use_json_format: bool) -> logging.Formatter:
    if use_json_format:
        return CorrelatedJsonFormatter()
    return logging.Formatter(TEXT_LOG_FORMAT)
