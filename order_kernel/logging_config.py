"""
Structured JSON logging for the order kernel.

Every record under the ``order_kernel`` namespace is rendered as one JSON
line: a fixed envelope (``ts``, ``level``, ``logger``, ``message``), the
request-scoped fields held by ``LogContext`` (order code, proposal id,
correlation id, actor), and whatever the caller passed through ``extra=``.
Messages are snake_case event names; the details travel as fields.

Exceptions derived from ``OrderKernelError`` are flattened into
``exc_code`` and ``exc_<attribute>`` fields so a rejected edit or a failed
store write can be filtered without parsing the traceback.
"""

__all__ = [
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
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

_LOGGER_PREFIX = "order_kernel"


# ---------------------------------------------------------------------------
# Request-scoped fields
# ---------------------------------------------------------------------------


class LogContext:
    """
    Fields attached to every record emitted in the current context.

    Backed by ContextVars, so values set while handling one order never
    leak into a concurrent task handling another.  Values are stored as
    strings; ``bind`` accepts UUIDs and enums and stringifies them.
    """

    FIELDS: tuple[str, ...] = (
        "correlation_id",
        "order_code",
        "proposal_id",
        "actor_id",
    )

    _vars: dict[str, ContextVar[str | None]] = {
        name: ContextVar(f"order_log_{name}", default=None) for name in FIELDS
    }

    @classmethod
    def _var(cls, name: str) -> ContextVar[str | None]:
        try:
            return cls._vars[name]
        except KeyError:
            raise ValueError(f"Unknown log context field: {name}") from None

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set context fields.  ``None`` values leave a field unchanged."""
        for name, value in fields.items():
            if value is not None:
                cls._var(name).set(str(value))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        """Non-empty context fields, in declaration order."""
        return {
            name: value
            for name, var in cls._vars.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in cls._vars.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        tokens = [
            (cls._var(name), cls._var(name).set(str(value)))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON rendering
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else arrived through extra=.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
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
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger ``order_kernel.<name>``; e.g. ``get_logger("engines.totals")``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Install the JSON handler on the ``order_kernel`` logger.

    Only the first call has an effect until ``reset_logging`` runs.
    Records do not propagate to the root logger.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())

    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False
    logger.addHandler(handler)


def reset_logging() -> None:
    """Drop handlers and the configured flag (test suites only)."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
