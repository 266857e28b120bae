"""
Order Invariants Contract.

These invariants are structural law for the order aggregate.  No settings
file or caller flag may switch them off.

This module exists solely to declare them explicitly.  Enforcement is
distributed across the transition engine (status monotonicity, structural
checks), the production tracker (department/staff consistency) and the
totals calculator (derived amounts).
"""

from enum import Enum, unique


@unique
class OrderInvariant(str, Enum):
    """Non-configurable invariants of the order aggregate."""

    STATUS_MONOTONIC = "status_monotonic"
    """Status only advances one step along the forward sequence or moves
    to CANCELLED.  Never regresses.  Enforced by propose_transition."""

    PRODUCTS_PRESENT = "products_present"
    """An order leaving PENDING has at least one product."""

    WORKFLOW_PER_PRODUCT = "workflow_per_product"
    """Every product has at least one workflow before the order leaves
    PENDING."""

    KNOWN_REFERENCES = "known_references"
    """Workflows reference departments and stages that exist in the
    reference directory."""

    DEPARTMENT_STAFF = "department_staff"
    """Workflow members belong to the workflow's department.  Changing the
    department clears stages and members."""

    DERIVED_AMOUNTS = "derived_amounts"
    """Discount, deposit and commission amounts are recomputed from their
    source fields, never edited independently."""


ALL_ORDER_INVARIANTS: frozenset[OrderInvariant] = frozenset(OrderInvariant)

# The kernel package may not import from these packages.
# Enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "order_engines",
    "order_services",
    "order_config",
)
