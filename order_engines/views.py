"""
order_engines.views -- Read-side projection of an order snapshot.

Everything a dashboard shows about one order is derived here from the
snapshot alone, so it can be recomputed on every store notification.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from order_engines.production import (
    order_completion_ratio,
    product_completion_ratio,
)
from order_engines.totals import compute_breakdown
from order_engines.transitions import allowed_targets, next_status
from order_kernel.domain.order import FinancialBreakdown, Order, OrderStatus
from order_kernel.domain.values import DEFAULT_BOUNDS, AdjustmentBounds


@dataclass(frozen=True)
class OrderView:
    code: str
    status: OrderStatus
    breakdown: FinancialBreakdown
    completion_ratio: Decimal
    product_completion: tuple[tuple[str, Decimal], ...]
    next_status: OrderStatus | None
    allowed_targets: tuple[OrderStatus, ...]
    is_terminal: bool
    cached_totals_stale: bool
    currency: str = "VND"


def derive_view(
    order: Order,
    bounds: AdjustmentBounds = DEFAULT_BOUNDS,
    *,
    currency: str = "VND",
) -> OrderView:
    """Project ``order`` for display; amounts are minor units of ``currency``."""
    breakdown = compute_breakdown(order, bounds)
    return OrderView(
        code=order.code,
        status=order.status,
        breakdown=breakdown,
        completion_ratio=order_completion_ratio(order),
        product_completion=tuple(
            (p.product_id, product_completion_ratio(p)) for p in order.products
        ),
        next_status=next_status(order.status),
        allowed_targets=allowed_targets(order.status),
        is_terminal=order.is_terminal,
        cached_totals_stale=(
            order.cached_totals is not None and order.cached_totals != breakdown
        ),
        currency=currency,
    )
