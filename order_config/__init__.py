"""
order_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``EngineSettings`` built
    from the packaged ``defaults.yaml`` and, when the
    ``ORDER_ENGINE_CONFIG`` environment variable names a file, that file
    merged on top.

Architecture position:
    Configuration -- sits above ``order_kernel`` and below
    ``order_services``.  The kernel and the engines MUST NEVER import from
    ``order_config``; services translate settings into engine inputs
    (``EngineSettings.bounds``).

Failure modes:
    - ``FileNotFoundError`` -- the override file does not exist.
    - ``ValueError`` -- a bound or adjustment kind is invalid.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from order_config.loader import load_settings
from order_config.schema import (
    AdjustmentSettings,
    DraftSettings,
    EngineSettings,
    StoreSettings,
)

_logger = logging.getLogger("order_kernel.config")

CONFIG_ENV_VAR = "ORDER_ENGINE_CONFIG"


def get_active_config(config_path: Path | None = None) -> EngineSettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override file; defaults to ``$ORDER_ENGINE_CONFIG``
            when set, otherwise the packaged defaults are used alone.

    Guarantees:
        An ``ORDER_CONFIG_TRACE`` log entry is emitted on every call.
        Settings are not cached; callers hold the returned object.
    """
    if config_path is None and os.environ.get(CONFIG_ENV_VAR):
        config_path = Path(os.environ[CONFIG_ENV_VAR])

    settings = load_settings(config_path)

    _logger.info(
        "ORDER_CONFIG_TRACE",
        extra={
            "trace_type": "ORDER_CONFIG_TRACE",
            "config_version": settings.version,
            "checksum": settings.checksum,
            "override_path": str(config_path) if config_path else None,
            "currency": settings.currency,
        },
    )
    return settings


__all__ = [
    "get_active_config",
    "EngineSettings",
    "AdjustmentSettings",
    "StoreSettings",
    "DraftSettings",
    "CONFIG_ENV_VAR",
]
