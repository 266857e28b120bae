"""
Values -- Monetary and percentage primitives for order arithmetic.

Responsibility:
    Provides the coercion and rounding rules every financial computation
    uses: money is an ``int`` in the smallest currency unit, percentages
    are ``Decimal`` with one fractional digit.  ``AdjustmentKind`` tells
    whether a discount/deposit value is an absolute amount or a percentage.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by the order model, the totals engine and the config layer.

Invariants enforced:
    - Money never passes through float arithmetic.  Floats arriving from
      the store are converted through ``str`` before use.
    - Percentages are quantized to one fractional digit (ROUND_HALF_UP)
      and clamped into their bounds.
    - Percentage-of-amount results are rounded half-up to whole units.

Failure modes:
    - ValueError when a value cannot be interpreted as a number.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any

HUNDRED = Decimal("100")
ZERO_PERCENT = Decimal("0.0")
PERCENT_QUANTUM = Decimal("0.1")
_UNIT = Decimal("1")


class AdjustmentKind(str, Enum):
    """How a discount or deposit value is interpreted."""

    AMOUNT = "amount"
    PERCENTAGE = "percentage"


@dataclass(frozen=True)
class AdjustmentBounds:
    """
    Upper bounds applied to percentage inputs.

    Contract:
        Discount percentages stay strictly below 100 (default bound 99.9)
        so a percentage discount can never zero out an order by itself.
        Deposit and commission percentages may reach 100.

    Guarantees:
        - All bounds are quantized to one fractional digit and lie in
          [0, 100].
    """

    discount_percent_max: Decimal = Decimal("99.9")
    deposit_percent_max: Decimal = Decimal("100.0")
    commission_percent_max: Decimal = Decimal("100.0")

    def __post_init__(self) -> None:
        for name in ("discount_percent_max", "deposit_percent_max", "commission_percent_max"):
            raw = to_decimal(getattr(self, name))
            if raw < 0 or raw > HUNDRED:
                raise ValueError(f"{name} must lie in [0, 100], got {raw}")
            object.__setattr__(self, name, raw.quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP))


def to_decimal(value: Any) -> Decimal:
    """
    Convert a store/UI value to Decimal without float artefacts.

    ``None`` and empty strings become zero; booleans are rejected.
    """
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal) and value.is_finite():
        return value
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Not a number: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def _quantize(value: Decimal, quantum: Decimal) -> Decimal:
    try:
        return value.quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError(f"Number out of range: {value}") from e


def to_minor_units(value: Any) -> int:
    """
    Interpret a value as a money amount in minor units.

    Fractional inputs are rounded half-up; negatives clamp to zero because
    money fields are non-negative by contract.
    """
    amount = _quantize(to_decimal(value), _UNIT)
    return max(0, int(amount))


def to_percentage(value: Any, upper: Decimal = HUNDRED) -> Decimal:
    """Quantize a percentage to one fractional digit and clamp to [0, upper]."""
    pct = _quantize(to_decimal(value), PERCENT_QUANTUM)
    if pct < 0:
        return ZERO_PERCENT
    if pct > upper:
        return upper.quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)
    return pct


def percent_of(amount: int, percentage: Decimal) -> int:
    """Return ``amount * percentage / 100`` rounded half-up to whole units."""
    result = (Decimal(amount) * percentage / HUNDRED).quantize(_UNIT, rounding=ROUND_HALF_UP)
    return int(result)


def to_store_number(value: Decimal | int) -> int | float:
    """
    Render a Decimal for the JSON document store.

    Integral values become ``int``; one-digit percentages become ``float``
    (re-read through ``str`` so no precision is lost on the way back).
    """
    if isinstance(value, int):
        return value
    if value == value.to_integral_value():
        return int(value)
    return float(value)


DEFAULT_BOUNDS = AdjustmentBounds()
