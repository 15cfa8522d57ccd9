"""
Queued file logging.

Request handlers only enqueue records; a listener thread formats them and
writes to stdout and a size-rotated file.
"""

import logging
import queue
import sys
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path

from .structured_logger import build_formatter

# Loggers whose records go through the queue, with the level they are held at.
# NOTSET leaves the level to the application logger.
ROUTED_LOGGERS = {
    "casalink_backend": logging.NOTSET,
    "sqlalchemy.engine": logging.WARNING,
    "uvicorn.error": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "asyncmy": logging.WARNING,
    "py.warnings": logging.NOTSET,
}


class FileLogger:
    """Owns the record queue and the listener draining it."""

    def __init__(
        self,
        path: str,
        level: int,
        use_json_format: bool,
        max_bytes: int,
        backup_count: int,
    ):
        self.path = Path(path)
        self.level = level
        self.use_json_format = use_json_format
        self.max_bytes = max_bytes
        self.backup_count = backup_count
        self.queue_handler = QueueHandler(queue.SimpleQueue())
        self.queue_handler.setLevel(level)
        self._listener: QueueListener | None = None

    def _sinks(self) -> list[logging.Handler]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        formatter = build_formatter(self.use_json_format)
        sinks: list[logging.Handler] = [
            logging.StreamHandler(sys.stdout),
            RotatingFileHandler(
                self.path,
                maxBytes=self.max_bytes,
                backupCount=self.backup_count,
                encoding="utf-8",
            ),
        ]
        for sink in sinks:
            sink.setFormatter(formatter)
        return sinks

    def start(self) -> QueueHandler:
        """Start draining the queue; returns the handler loggers should use."""
        if self._listener is None:
            self._listener = QueueListener(self.queue_handler.queue, *self._sinks())
            self._listener.start()
        return self.queue_handler

    def stop(self) -> None:
        """Drain outstanding records, then stop the listener thread."""
        if self._listener is not None:
            self._listener.stop()
            self._listener = None


def configure_external_loggers(handler: logging.Handler) -> None:
    """Send the application's and its libraries' records to ``handler`` only."""
    logging.captureWarnings(True)
    for name, level in ROUTED_LOGGERS.items():
        routed = logging.getLogger(name)
        routed.handlers = [handler]
        routed.propagate = False
        if level != logging.NOTSET:
            routed.setLevel(level)
