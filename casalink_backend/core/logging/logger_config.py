"""
Process-wide logging setup.

``setup_logging`` runs once from the application lifespan. Console-only
logging writes synchronously; file logging goes through ``FileLogger``.
"""

import logging
import sys

from .file_logger import FileLogger, configure_external_loggers
from .middleware import TransactionIdFilter
from .structured_logger import build_formatter

APP_LOGGER = "casalink_backend"

_file_logger: FileLogger | None = None
_configured = False


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger under the application namespace, usually ``get_logger(__name__)``."""
    if not name or name == APP_LOGGER:
        return logging.getLogger(APP_LOGGER)
    if name.startswith(f"{APP_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER}.{name}")


def setup_logging(settings) -> logging.Logger:
    """Configure handlers from settings. Repeated calls are no-ops.

    Args:
        settings: Application settings providing the ``log_*`` fields

    Returns:
        The application logger
    """
    global _file_logger, _configured

    app_logger = logging.getLogger(APP_LOGGER)
    if _configured:
        return app_logger

    level = logging.getLevelName(settings.log_level)
    use_json = settings.log_format.lower() == "json"

    if settings.log_to_file:
        _file_logger = FileLogger(
            path=settings.log_file_path,
            level=level,
            use_json_format=use_json,
            max_bytes=settings.log_max_bytes,
            backup_count=settings.log_backup_count,
        )
        handler: logging.Handler = _file_logger.start()
        configure_external_loggers(handler)
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(build_formatter(use_json))
        handler.setLevel(level)
        app_logger.handlers = [handler]
        app_logger.propagate = False
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    handler.addFilter(TransactionIdFilter())
    app_logger.setLevel(level)
    _configured = True
    return app_logger


def shutdown_logging() -> None:
    """Flush queued records and allow a later ``setup_logging`` call."""
    global _file_logger, _configured

    if _file_logger is not None:
        _file_logger.stop()
        _file_logger = None
    _configured = False
