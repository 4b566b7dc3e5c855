"""
Trust Engine - Structured Logging

JSON lines in production, a compact colored line in development. Every
entry carries the fields bound with LogContext (contribution_id, effect,
target_entity_id, ...) plus any whitelisted `extra=` keys.

Usage:
    from trust_engine.core.logging import LogContext, get_logger

    logger = get_logger(__name__)

    with LogContext(contribution_id=contribution_id):
        logger.info("Side effects started")
"""

from __future__ import annotations

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Generator

from pydantic import BaseModel

_log_context: ContextVar[Dict[str, Any]] = ContextVar("trust_engine_log_context", default={})


def get_current_context() -> Dict[str, Any]:
    """Copy of the fields bound in the current task."""
    return dict(_log_context.get())


@contextmanager
def LogContext(**fields: Any) -> Generator[None, None, None]:
    """
    Bind fields to every log line emitted inside the block.

    Nested blocks layer on top of the outer fields and restore them on exit.
    """
    token = _log_context.set({**_log_context.get(), **fields})
    try:
        yield
    finally:
        _log_context.reset(token)


# =============================================================================
# Redaction
# =============================================================================

_SENSITIVE_MARKERS = ("secret", "api_key", "apikey", "token", "authorization", "password")
REDACTED = "[REDACTED]"


def _is_sensitive(key: Any) -> bool:
    lowered = str(key).lower()
    return any(marker in lowered for marker in _SENSITIVE_MARKERS)


def redact_sensitive(data: Any, _depth: int = 0) -> Any:
    """Replace values under credential-looking keys (OpenAI key, webhook secret)."""
    if _depth > 8:
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump()
    if isinstance(data, dict):
        return {
            key: REDACTED if _is_sensitive(key) else redact_sensitive(value, _depth + 1)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [redact_sensitive(item, _depth + 1) for item in data]
    return data


# =============================================================================
# Formatters
# =============================================================================

# Keys lifted from `extra=` onto the JSON payload
_EXTRA_KEYS = (
    "contribution_id",
    "target_entity_id",
    "author_id",
    "effect",
    "recipient_id",
    "duration_ms",
    "status",
    "error_code",
    "count",
    "points",
    "tier",
)


def _record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields = get_current_context()
    for key in _EXTRA_KEYS:
        value = getattr(record, key, None)
        if value is not None:
            fields[key] = value
    return fields


class StructuredJsonFormatter(logging.Formatter):
    """
    One JSON object per line:

        {"timestamp": "...Z", "level": "WARNING",
         "logger": "trust_engine.pipeline.effects",
         "message": "Side effect failed", "effect": "citation",
         "contribution_id": "c-1"}
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_record_fields(record))

        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(redact_sensitive(payload), default=str, ensure_ascii=False)


class ColoredConsoleFormatter(logging.Formatter):
    """Single-line colored output for local runs."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        fields = _record_fields(record)
        tags = " ".join(f"{key}={fields[key]}" for key in ("contribution_id", "effect") if key in fields)
        stamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        color = self.COLORS.get(record.levelname, "")

        line = f"{color}{stamp} {record.levelname:<8}{self.RESET} {record.name}"
        if tags:
            line += f" [{tags}]"
        line += f" {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# =============================================================================
# Configuration
# =============================================================================


class _BelowWarning(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.WARNING


def configure_structured_logging(
    level: str = "INFO",
    json_output: bool = True,
    service_name: str = "trust-engine",
) -> None:
    """
    Install the formatter on the root logger.

    DEBUG/INFO go to stdout, WARNING and above to stderr. Existing root
    handlers are replaced so repeated calls do not duplicate output.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter: logging.Formatter = StructuredJsonFormatter() if json_output else ColoredConsoleFormatter()

    out = logging.StreamHandler(sys.stdout)
    out.addFilter(_BelowWarning())
    err = logging.StreamHandler(sys.stderr)
    err.setLevel(logging.WARNING)
    for handler in (out, err):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    _log_context.set({**_log_context.get(), "service": service_name})


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class Timer:
    """
    Wall-clock timer for a block.

        with Timer() as t:
            await effect.fn()
        logger.info("done", extra={"duration_ms": t.elapsed_ms})
    """

    def __init__(self) -> None:
        self._start = 0.0
        self._end: float | None = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc: Any) -> None:
        self._end = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000, 2)
