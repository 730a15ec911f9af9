"""
Structured JSON logging for the stock kernel.

Responsibility:
    Renders every record under the ``stock_kernel`` logger namespace as one
    JSON object per line, enriched with the operation context (actor,
    product, movement, session) bound by the code currently running.

Usage:
    logger = get_logger("services.movement")
    with LogContext.bind(actor_id="admin", product_id="PROD-001"):
        logger.info("movement_committed", extra={"quantity": 5})

Audit relevance:
    Every kernel event is a machine-readable line; exceptions carry their
    ``code`` and structured attributes as ``exc_*`` fields.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import IO, Any

_ROOT_LOGGER = "stock_kernel"

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "actor_id",
    "product_id",
    "movement_id",
    "session_id",
)

# The mapping stored here is never mutated; every change installs a new dict.
_context: ContextVar[dict[str, str]] = ContextVar("stock_log_context", default={})


# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------


class LogContext:
    """
    Operation-scoped log fields, isolated per thread and per asyncio task.

    Only the names in ``CONTEXT_FIELDS`` are accepted; ``None`` values are
    ignored rather than stored.
    """

    @staticmethod
    def _accepted(fields: dict[str, str | None]) -> dict[str, str]:
        unknown = sorted(set(fields) - set(CONTEXT_FIELDS))
        if unknown:
            raise TypeError(f"unknown log context field(s): {', '.join(unknown)}")
        return {k: v for k, v in fields.items() if v is not None}

    @classmethod
    def set(cls, **fields: str | None) -> None:
        _context.set({**_context.get(), **cls._accepted(fields)})

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """Overlay fields for the duration of a ``with`` block."""
        token = _context.set({**_context.get(), **cls._accepted(fields)})
        try:
            yield cls
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: base fields, context, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }
        for name, value in vars(record).items():
            if name not in _RESERVED_ATTRS:
                payload.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``stock_kernel`` namespace."""
    return logging.getLogger(f"{_ROOT_LOGGER}.{name}")


_setup_lock = threading.Lock()
_configured = False


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: IO[str] | None = None,
    handler: logging.Handler | None = None,
) -> logging.Logger:
    """
    Attach a JSON handler to the ``stock_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``.
    """
    global _configured
    root = logging.getLogger(_ROOT_LOGGER)
    with _setup_lock:
        if _configured:
            return root
        target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())
        root.addHandler(target)
        root.setLevel(level)
        root.propagate = False
        _configured = True
    return root


def reset_logging() -> None:
    """Detach handlers and restore logger defaults (test helper)."""
    global _configured
    root = logging.getLogger(_ROOT_LOGGER)
    with _setup_lock:
        root.handlers.clear()
        root.setLevel(logging.NOTSET)
        root.propagate = True
        _configured = False
