"""
order_engines.totals -- Financial calculator for orders.

Responsibility:
    Turn line items plus the discount, shipping and deposit configuration
    of an order into its derived amounts: subtotal, discount amount, total,
    deposit amount, remaining balance and consultant commission.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import order_kernel/domain types.

Invariants enforced:
    - Money is a non-negative ``int`` in minor units; no float arithmetic.
    - Percentages are quantized to one fractional digit (ROUND_HALF_UP) and
      clamped to the configured bounds; discount stays below 100%.
    - Percentage results are rounded half-up to whole units.
    - Amount discounts are clamped to the subtotal and amount deposits to
      [0, total], so no derived amount is ever negative.
    - Derived amounts are always recomputed from source fields.

Failure modes:
    - ValueError propagated from ``to_decimal`` when a source field is not
      numeric.  Missing values are never an error: missing price is 0,
      missing or zero quantity is 1.

Usage:
    from order_engines.totals import compute_totals, compute_deposit

    totals = compute_totals(order.products, order.discount,
                            order.discount_kind, order.shipping_fee)
    deposit = compute_deposit(totals.total, order.deposit, order.deposit_kind)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable

from order_engines.tracer import traced_engine
from order_kernel.domain.order import FinancialBreakdown, Order, Product
from order_kernel.domain.values import (
    DEFAULT_BOUNDS,
    AdjustmentBounds,
    AdjustmentKind,
    percent_of,
    to_minor_units,
    to_percentage,
)


@dataclass(frozen=True)
class OrderTotals:
    """Subtotal, discount and total of an order, in minor units."""

    subtotal: int
    discount_amount: int
    total: int


@dataclass(frozen=True)
class DepositBreakdown:
    deposit_amount: int
    remaining: int


def line_amount(product: Product) -> int:
    """Price times quantity; missing price is 0, missing or zero quantity is 1."""
    price = to_minor_units(product.price)
    quantity = product.quantity if product.quantity and product.quantity > 0 else 1
    return price * quantity


def compute_subtotal(products: Iterable[Product]) -> int:
    return sum((line_amount(p) for p in products), 0)


def discount_amount_for(
    subtotal: int,
    discount_value: Decimal | int | None,
    discount_kind: AdjustmentKind,
    bounds: AdjustmentBounds = DEFAULT_BOUNDS,
) -> int:
    if discount_kind == AdjustmentKind.PERCENTAGE:
        pct = to_percentage(discount_value, bounds.discount_percent_max)
        return min(percent_of(subtotal, pct), subtotal)
    return min(to_minor_units(discount_value), subtotal)


@traced_engine("totals", "1.0", fingerprint_fields=("discount_value", "discount_kind", "shipping_fee"))
def compute_totals(
    products: Iterable[Product],
    discount_value: Decimal | int | None = None,
    discount_kind: AdjustmentKind = AdjustmentKind.AMOUNT,
    shipping_fee: int | None = None,
    *,
    bounds: AdjustmentBounds = DEFAULT_BOUNDS,
) -> OrderTotals:
    """Compute subtotal, discount amount and total.

    Zero products yield subtotal 0 and a total equal to the shipping fee.
    """
    subtotal = compute_subtotal(products)
    discount = discount_amount_for(subtotal, discount_value, discount_kind, bounds)
    shipping = to_minor_units(shipping_fee)
    return OrderTotals(
        subtotal=subtotal,
        discount_amount=discount,
        total=subtotal - discount + shipping,
    )


@traced_engine("totals", "1.0", fingerprint_fields=("total", "deposit_value", "deposit_kind"))
def compute_deposit(
    total: int,
    deposit_value: Decimal | int | None = None,
    deposit_kind: AdjustmentKind = AdjustmentKind.PERCENTAGE,
    *,
    bounds: AdjustmentBounds = DEFAULT_BOUNDS,
) -> DepositBreakdown:
    """Compute the deposit amount and the remaining balance."""
    total = max(0, total)
    if deposit_kind == AdjustmentKind.PERCENTAGE:
        pct = to_percentage(deposit_value, bounds.deposit_percent_max)
        amount = min(percent_of(total, pct), total)
    else:
        amount = min(to_minor_units(deposit_value), total)
    return DepositBreakdown(deposit_amount=amount, remaining=total - amount)


def compute_commission(
    total: int,
    shipping_fee: int | None,
    percentage: Decimal | int | None,
    *,
    bounds: AdjustmentBounds = DEFAULT_BOUNDS,
) -> int:
    """Consultant commission on the discounted merchandise value.

    The base excludes shipping: ``total - shipping_fee``.
    """
    base = max(0, total - to_minor_units(shipping_fee))
    pct = to_percentage(percentage, bounds.commission_percent_max)
    return percent_of(base, pct)


def compute_breakdown(
    order: Order,
    bounds: AdjustmentBounds = DEFAULT_BOUNDS,
) -> FinancialBreakdown:
    """Full derived breakdown of an order from its source fields."""
    totals = compute_totals(
        order.products,
        order.discount,
        order.discount_kind,
        order.shipping_fee,
        bounds=bounds,
    )
    deposit = compute_deposit(totals.total, order.deposit, order.deposit_kind, bounds=bounds)
    return FinancialBreakdown(
        subtotal=totals.subtotal,
        discount_amount=totals.discount_amount,
        total=totals.total,
        deposit_amount=deposit.deposit_amount,
        remaining=deposit.remaining,
        commission_amount=compute_commission(
            totals.total,
            order.shipping_fee,
            order.commission_percentage,
            bounds=bounds,
        ),
    )


def refresh_cached_totals(
    order: Order,
    bounds: AdjustmentBounds = DEFAULT_BOUNDS,
) -> Order:
    """Return a snapshot whose ``cached_totals`` match its source fields."""
    breakdown = compute_breakdown(order, bounds)
    if order.cached_totals == breakdown:
        return order
    return replace(order, cached_totals=breakdown)
