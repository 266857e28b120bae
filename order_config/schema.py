"""
Engine settings schema.

Typed, frozen view of the YAML settings.  The loader parses YAML into
these types; services receive them from ``get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from order_kernel.domain.values import AdjustmentBounds, AdjustmentKind


@dataclass(frozen=True)
class AdjustmentSettings:
    """Percentage bounds and default kinds for discount and deposit."""

    discount_percent_max: Decimal = Decimal("99.9")
    deposit_percent_max: Decimal = Decimal("100")
    commission_percent_max: Decimal = Decimal("100")
    default_discount_kind: AdjustmentKind = AdjustmentKind.AMOUNT
    default_deposit_kind: AdjustmentKind = AdjustmentKind.PERCENTAGE

    def to_bounds(self) -> AdjustmentBounds:
        return AdjustmentBounds(
            discount_percent_max=self.discount_percent_max,
            deposit_percent_max=self.deposit_percent_max,
            commission_percent_max=self.commission_percent_max,
        )


@dataclass(frozen=True)
class StoreSettings:
    orders_path: str = "orders"
    database_url: str = "sqlite://"


@dataclass(frozen=True)
class DraftSettings:
    code_prefix: str = "ORD"
    awaiting_images_issue: str = "Chờ lấy ảnh"


@dataclass(frozen=True)
class EngineSettings:
    """Root settings object.  ``checksum`` identifies the source data."""

    version: int = 1
    currency: str = "VND"
    adjustments: AdjustmentSettings = field(default_factory=AdjustmentSettings)
    store: StoreSettings = field(default_factory=StoreSettings)
    drafts: DraftSettings = field(default_factory=DraftSettings)
    checksum: str = ""

    @property
    def bounds(self) -> AdjustmentBounds:
        return self.adjustments.to_bounds()
