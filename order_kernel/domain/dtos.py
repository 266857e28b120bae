"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable structures that flow between the engines and the
    services: validation results, transition failures and decisions, store
    patches, and the staged proposals of the confirm/cancel handshake.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - A ``TransitionDecision`` carries a patch iff it is accepted and a
      failure iff it is rejected.
    - Guard failures and sequence errors are values, never exceptions.
    - ``OrderPatch`` only ever names fields the lifecycle is allowed to
      touch: status, timestamp and the deposit fields.

Data flow:
    intent -> PendingConfirmation -> TransitionDecision -> OrderPatch -> store
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from order_kernel.domain.clock import to_epoch_ms
from order_kernel.domain.order import OrderStatus
from order_kernel.domain.values import AdjustmentKind, to_store_number


# =========================================================================
# Validation
# =========================================================================


@dataclass(frozen=True)
class ValidationError:
    """
    A single validation error.

    Contract:
        Carries a machine-readable code, human-readable message, optional
        field path, and optional details dict.
    """

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class ValidationResult:
    """
    Result of validation.

    Guarantees:
        - errors is always a tuple (never None)
        - bool(result) == result.is_valid
    """

    is_valid: bool
    errors: tuple[ValidationError, ...] = field(default_factory=tuple)

    @classmethod
    def success(cls) -> ValidationResult:
        return cls(is_valid=True, errors=())

    @classmethod
    def failure(cls, *errors: ValidationError) -> ValidationResult:
        return cls(is_valid=False, errors=tuple(errors))

    def __bool__(self) -> bool:
        return self.is_valid


# =========================================================================
# Transition outcome
# =========================================================================


class FailureKind(str, Enum):
    """Why a proposed status change was refused."""

    INVALID_SEQUENCE = "invalid_sequence"
    GUARD_FAILED = "guard_failed"
    INVARIANT_VIOLATION = "invariant_violation"


@dataclass(frozen=True)
class TransitionFailure:
    """
    A refused transition.

    ``reason`` is the actionable message naming the unmet condition;
    ``product_ids`` lists the products that block it, when applicable.
    """

    kind: FailureKind
    code: str
    reason: str
    guard: str | None = None
    product_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class OrderPatch:
    """
    Partial update for one order document.

    Deposit fields are ``None`` unless the confirming user supplied them.
    """

    order_code: str
    status: OrderStatus
    updated_at: datetime
    is_deposit_paid: bool | None = None
    deposit: Decimal | None = None
    deposit_kind: AdjustmentKind | None = None
    deposit_amount: int | None = None

    def to_document(self) -> dict[str, Any]:
        """Render as a partial in the persisted document shape."""
        doc: dict[str, Any] = {
            "status": self.status.value,
            "updatedAt": to_epoch_ms(self.updated_at),
        }
        if self.is_deposit_paid is not None:
            doc["isDepositPaid"] = self.is_deposit_paid
        if self.deposit is not None:
            doc["deposit"] = to_store_number(self.deposit)
        if self.deposit_kind is not None:
            doc["depositType"] = self.deposit_kind.value
        if self.deposit_amount is not None:
            doc["depositAmount"] = self.deposit_amount
        return doc


@dataclass(frozen=True)
class TransitionDecision:
    """Result of proposing a status transition."""

    accepted: bool
    from_status: OrderStatus
    to_status: OrderStatus
    patch: OrderPatch | None = None
    failure: TransitionFailure | None = None

    def __post_init__(self) -> None:
        if self.accepted != (self.patch is not None) or self.accepted == (self.failure is not None):
            raise ValueError("accepted decisions carry a patch, rejected ones a failure")

    @classmethod
    def accept(cls, from_status: OrderStatus, patch: OrderPatch) -> TransitionDecision:
        return cls(accepted=True, from_status=from_status, to_status=patch.status, patch=patch)

    @classmethod
    def reject(
        cls,
        from_status: OrderStatus,
        to_status: OrderStatus,
        failure: TransitionFailure,
    ) -> TransitionDecision:
        return cls(accepted=False, from_status=from_status, to_status=to_status, failure=failure)

    @property
    def reason(self) -> str:
        return self.failure.reason if self.failure else ""

    def __bool__(self) -> bool:
        return self.accepted


# =========================================================================
# Reconciliation handshake
# =========================================================================


class IntentSource(str, Enum):
    """Transport that raised a status intent.  The engine treats all alike."""

    BUTTON = "button"
    BOARD = "board"
    KEYBOARD = "keyboard"


@dataclass(frozen=True)
class PendingConfirmation:
    """
    A staged status proposal awaiting confirm or cancel.

    ``from_status`` is informational: confirmation re-validates against the
    snapshot current at confirm time, not the one captured here.
    """

    proposal_id: UUID
    order_code: str
    from_status: OrderStatus
    proposed_status: OrderStatus
    source: IntentSource
    raised_at: datetime


@dataclass(frozen=True)
class ConfirmationFields:
    """Optional fields supplied by the confirming user."""

    is_deposit_paid: bool | None = None
    deposit: Decimal | int | None = None
    deposit_kind: AdjustmentKind | None = None

    @property
    def is_empty(self) -> bool:
        return self.is_deposit_paid is None and self.deposit is None and self.deposit_kind is None
