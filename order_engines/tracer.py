"""
``@traced_engine``: DEBUG trace records for pure engine calls.

Each call of a decorated engine function emits one ``ORDER_ENGINE_TRACE``
record carrying the engine name and version, a short fingerprint of the
selected arguments, and the wall time spent.  Two calls with equal inputs
yield equal fingerprints, so a trace can be matched against a replay of
the same order snapshot.  The decorator never touches arguments or the
return value.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

from order_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_TYPE_ENGINE = "ORDER_ENGINE_TRACE"


@functools.singledispatch
def _stable_text(value: Any) -> str:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _stable_text(dataclasses.asdict(value))
    return repr(value)


@_stable_text.register(type(None))
def _(value) -> str:
    return "null"


@_stable_text.register(Enum)
def _(value) -> str:
    return str(value.value)


@_stable_text.register(int)
@_stable_text.register(str)
@_stable_text.register(Decimal)
def _(value) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    # Decimal("10") and Decimal("10.0") are the same percentage.
    if isinstance(value, Decimal):
        value = value.normalize()
    return str(value)


@_stable_text.register(Mapping)
def _(value) -> str:
    return "{" + ",".join(f"{k}:{_stable_text(v)}" for k, v in sorted(value.items())) + "}"


@_stable_text.register(list)
@_stable_text.register(tuple)
def _(value) -> str:
    return "[" + ",".join(_stable_text(item) for item in value) + "]"


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    inputs: Mapping[str, Any],
) -> str:
    """16 hex chars of SHA-256 over ``name=value`` pairs; absent names read as null."""
    text = "|".join(f"{name}={_stable_text(inputs.get(name))}" for name in fingerprint_fields)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """
    Wrap an engine function with an ``ORDER_ENGINE_TRACE`` DEBUG record.

    ``fingerprint_fields`` names parameters of the wrapped function; they
    are matched whether passed positionally or by keyword.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_ms = (time.perf_counter() - started) * 1000

            if _logger.isEnabledFor(logging.DEBUG):
                arguments = signature.bind_partial(*args, **kwargs).arguments
                _logger.debug(
                    TRACE_TYPE_ENGINE,
                    extra={
                        "trace_type": TRACE_TYPE_ENGINE,
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "input_fingerprint": (
                            compute_input_fingerprint(fingerprint_fields, arguments)
                            if fingerprint_fields else ""
                        ),
                        "duration_ms": round(elapsed_ms, 3),
                        "function": func.__qualname__,
                    },
                )
            return result

        return wrapper

    return decorator
