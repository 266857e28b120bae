"""
Pure domain layer.

This module contains the order snapshots, lifecycle types, reference
directories and transfer objects, with NO dependencies on:
- ORM (SQLAlchemy)
- Database or document store
- I/O

All domain objects are immutable and deterministic.
"""

from order_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from order_kernel.domain.directory import (
    Department,
    ReferenceDirectory,
    StaffMember,
    Stage,
)
from order_kernel.domain.documents import order_from_document, order_to_document
from order_kernel.domain.dtos import (
    ConfirmationFields,
    FailureKind,
    IntentSource,
    OrderPatch,
    PendingConfirmation,
    TransitionDecision,
    TransitionFailure,
    ValidationError,
    ValidationResult,
)
from order_kernel.domain.lifecycle import Guard, Lifecycle, Transition
from order_kernel.domain.order import (
    FORWARD_SEQUENCE,
    TERMINAL_STATUSES,
    FinancialBreakdown,
    ImageRef,
    Order,
    OrderStatus,
    Product,
    Workflow,
)
from order_kernel.domain.values import (
    DEFAULT_BOUNDS,
    AdjustmentBounds,
    AdjustmentKind,
)

__all__ = [
    # Time
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Aggregate
    "Order",
    "OrderStatus",
    "Product",
    "Workflow",
    "ImageRef",
    "FinancialBreakdown",
    "FORWARD_SEQUENCE",
    "TERMINAL_STATUSES",
    # Values
    "AdjustmentKind",
    "AdjustmentBounds",
    "DEFAULT_BOUNDS",
    # Lifecycle
    "Guard",
    "Transition",
    "Lifecycle",
    # Directory
    "Department",
    "Stage",
    "StaffMember",
    "ReferenceDirectory",
    # DTOs
    "ValidationError",
    "ValidationResult",
    "FailureKind",
    "TransitionFailure",
    "TransitionDecision",
    "OrderPatch",
    "IntentSource",
    "PendingConfirmation",
    "ConfirmationFields",
    # Codec
    "order_from_document",
    "order_to_document",
]
