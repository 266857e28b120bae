"""
Configuration Loader (``order_config.loader``).

Responsibility
--------------
Loads YAML settings files and parses them into the typed
``order_config.schema`` dataclasses.  The single public entry point for
runtime config is ``order_config.get_active_config()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Override files are deep-merged over the packaged defaults; keys absent
  from the override keep their default values.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the merged
  source data.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown adjustment kind or out-of-range bound  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from order_config.schema import (
    AdjustmentSettings,
    DraftSettings,
    EngineSettings,
    StoreSettings,
)
from order_kernel.domain.values import AdjustmentKind, to_decimal

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return data


def merge_settings(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_settings(merged[key], value)
        else:
            merged[key] = value
    return merged


def _percent(value: Any, name: str) -> Decimal:
    pct = to_decimal(value)
    if pct < 0 or pct > 100:
        raise ValueError(f"{name} must lie in [0, 100], got {pct}")
    return pct


def parse_adjustments(data: dict[str, Any]) -> AdjustmentSettings:
    defaults = AdjustmentSettings()
    return AdjustmentSettings(
        discount_percent_max=_percent(
            data.get("discount_percent_max", defaults.discount_percent_max),
            "discount_percent_max",
        ),
        deposit_percent_max=_percent(
            data.get("deposit_percent_max", defaults.deposit_percent_max),
            "deposit_percent_max",
        ),
        commission_percent_max=_percent(
            data.get("commission_percent_max", defaults.commission_percent_max),
            "commission_percent_max",
        ),
        default_discount_kind=AdjustmentKind(
            data.get("default_discount_kind", defaults.default_discount_kind.value)
        ),
        default_deposit_kind=AdjustmentKind(
            data.get("default_deposit_kind", defaults.default_deposit_kind.value)
        ),
    )


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """Parse an ``EngineSettings`` from a merged settings dict."""
    store = data.get("store") or {}
    drafts = data.get("drafts") or {}
    store_defaults = StoreSettings()
    draft_defaults = DraftSettings()
    return EngineSettings(
        version=int(data.get("version", 1)),
        currency=str(data.get("currency", "VND")),
        adjustments=parse_adjustments(data.get("adjustments") or {}),
        store=StoreSettings(
            orders_path=str(store.get("orders_path", store_defaults.orders_path)).strip("/"),
            database_url=str(store.get("database_url", store_defaults.database_url)),
        ),
        drafts=DraftSettings(
            code_prefix=str(drafts.get("code_prefix", draft_defaults.code_prefix)),
            awaiting_images_issue=str(
                drafts.get("awaiting_images_issue", draft_defaults.awaiting_images_issue)
            ),
        ),
        checksum=compute_checksum(data),
    )


def load_settings(override_path: Path | None = None) -> EngineSettings:
    """Load the packaged defaults, optionally merged with an override file."""
    data = load_yaml_file(DEFAULTS_PATH)
    if override_path is not None:
        data = merge_settings(data, load_yaml_file(override_path))
    return parse_settings(data)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
