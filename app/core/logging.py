"""Logging configuration for the credential services.

Two formatters, picked by LOG_JSON:

  _ContainerFormatter: human-readable, single line, for local dev.
  _JsonFormatter: one JSON object per line, for log aggregation.

Every record carries ``service`` and ``worker_id`` so lines from the
issuance and verification replicas can be told apart once they land in
the same aggregator.  ``request_id`` is added per request by the filter
in app/middleware/request_context.py.

Secrets never reach the log: Settings.credential_secret is excluded from
the settings repr, and nothing logs signature inputs.
"""

from __future__ import annotations

import json
import logging
import sys

from app.middleware.request_context import RequestContextFilter


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter tuned for container stdout.

    - Always: ISO-8601 timestamp, level, service/worker, logger name, message
    - WARNING+: appends [filename:lineno]
    - ERROR/CRITICAL: stack trace included when exc_info is present
    """

    _BASE_FMT = "%(asctime)s %(levelname)-8s [%(service)s/%(worker_id)s] %(name)s  %(message)s"
    _LOC_SUFFIX = "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        ms = int(record.msecs)
        # Insert .NNN before the timezone offset (last 5 chars: +0000)
        return f"{base[:-5]}.{ms:03d}{base[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        # Records from loggers outside the filter's reach still format.
        for key in ("service", "worker_id"):
            if not hasattr(record, key):
                setattr(record, key, "-")
        if record.levelno >= logging.WARNING:
            self._style._fmt = self._BASE_FMT + self._LOC_SUFFIX
        else:
            self._style._fmt = self._BASE_FMT
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter.

    Context fields attached by the filters and by the request middleware's
    ``extra=`` appear as top-level keys.
    """

    _CONTEXT_FIELDS = (
        "service",
        "worker_id",
        "request_id",
        "method",
        "path",
        "status_code",
        "duration_ms",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class _WorkerIdFilter(logging.Filter):
    """Stamps the replica's worker id on every record."""

    def __init__(self, worker_id: str) -> None:
        super().__init__()
        self.worker_id = worker_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.worker_id = self.worker_id  # type: ignore[attr-defined]
        return True


def setup_logging(
    level_name: str,
    *,
    json_format: bool = False,
    worker_id: str | None = None,
) -> None:
    """Configure the root logger for container environments.

    Args:
        level_name: Log level string (debug/info/warning/error)
        json_format: If True, emit JSON lines (LOG_JSON).
        worker_id: Replica identity stamped on every record (WORKER_ID).
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())
    # On the handler, not the root logger: handler filters also see
    # records propagated up from child loggers.
    handler.addFilter(RequestContextFilter())
    if worker_id is not None:
        handler.addFilter(_WorkerIdFilter(worker_id))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Keep third-party loggers from flooding at DEBUG
    for name in (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "httpcore",
        "httpx",
        "sqlalchemy.engine",
        "aiosqlite",
    ):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
