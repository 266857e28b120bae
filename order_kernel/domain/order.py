"""
Order aggregate (``order_kernel.domain.order``).

Responsibility
--------------
Immutable snapshots of an order, its products and their production
workflows.  Every edit produces a new snapshot (``dataclasses.replace``);
nothing in the engine mutates an order in place, so a snapshot delivered
by the store can be re-evaluated any number of times with the same result.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  May import only
from ``domain/values``.

Invariants enforced
-------------------
* ``OrderStatus`` members and ``FORWARD_SEQUENCE`` define the only legal
  status order; ``TERMINAL_STATUSES`` have no outgoing edges.
* Products are kept in insertion order and addressed by ``product_id``;
  product ids are unique within an order.
* Workflow ids are unique within a product.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterator

from order_kernel.domain.values import AdjustmentKind


# =========================================================================
# Status
# =========================================================================


class OrderStatus(str, Enum):
    """Order lifecycle states (persisted as the lower-case value)."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


FORWARD_SEQUENCE: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.IN_PROGRESS,
    OrderStatus.ON_HOLD,
    OrderStatus.COMPLETED,
)

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset({
    OrderStatus.COMPLETED,
    OrderStatus.CANCELLED,
})

# Statuses in which products and workflows may still be restructured.
STRUCTURE_EDITABLE_STATUSES: frozenset[OrderStatus] = frozenset({
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.IN_PROGRESS,
})


# =========================================================================
# Products and workflows
# =========================================================================


@dataclass(frozen=True)
class ImageRef:
    """Durable reference to an uploaded image.  The binary never enters the engine."""

    uid: str
    name: str
    url: str


@dataclass(frozen=True)
class Workflow:
    """
    A production stage grouping attached to a product.

    Contract: members are staff ids from ``department_code``; stage names
    mirror ``stage_codes`` one-to-one once resolved from the directory.
    """

    workflow_id: str
    department_code: str | None = None
    stage_codes: tuple[str, ...] = ()
    stage_names: tuple[str, ...] = ()
    members: tuple[str, ...] = ()
    is_done: bool = False
    updated_at: datetime | None = None


@dataclass(frozen=True)
class Product:
    """
    A line item of an order.

    ``quantity`` and ``price`` may be ``None`` while a draft is being
    entered; the totals engine treats them as 1 and 0.
    """

    product_id: str
    name: str = ""
    quantity: int | None = 1
    price: int | None = 0
    images: tuple[ImageRef, ...] = ()
    images_done: tuple[ImageRef, ...] = ()
    workflows: tuple[Workflow, ...] = ()

    def __post_init__(self) -> None:
        ids = [wf.workflow_id for wf in self.workflows]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate workflow ids in product {self.product_id}")

    def workflow(self, workflow_id: str) -> Workflow | None:
        for wf in self.workflows:
            if wf.workflow_id == workflow_id:
                return wf
        return None

    @property
    def has_received_images(self) -> bool:
        return len(self.images) > 0

    @property
    def has_completed_images(self) -> bool:
        return len(self.images_done) > 0


# =========================================================================
# Derived financial snapshot
# =========================================================================


@dataclass(frozen=True)
class FinancialBreakdown:
    """
    Derived amounts of an order, in minor currency units.

    Cached on the order for display only.  Authoritative values are always
    recomputed from the source fields by the totals engine.
    """

    subtotal: int = 0
    discount_amount: int = 0
    total: int = 0
    deposit_amount: int = 0
    remaining: int = 0
    commission_amount: int = 0


# =========================================================================
# Order
# =========================================================================


@dataclass(frozen=True)
class Order:
    """
    Immutable snapshot of a customer order.

    ``code`` is the identity and never changes.  ``discount`` and
    ``deposit`` hold either an amount in minor units or a percentage,
    depending on their ``*_kind``.
    """

    code: str
    status: OrderStatus = OrderStatus.PENDING
    customer_code: str | None = None
    customer_name: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    ordered_at: datetime | None = None
    delivery_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str | None = None
    created_by_name: str = ""
    notes: str = ""
    issues: tuple[str, ...] = ()
    discount: Decimal = Decimal("0")
    discount_kind: AdjustmentKind = AdjustmentKind.AMOUNT
    shipping_fee: int = 0
    deposit: Decimal = Decimal("0")
    deposit_kind: AdjustmentKind = AdjustmentKind.PERCENTAGE
    is_deposit_paid: bool = False
    consultant_id: str | None = None
    consultant_name: str = ""
    commission_percentage: Decimal = Decimal("0")
    products: tuple[Product, ...] = field(default_factory=tuple)
    cached_totals: FinancialBreakdown | None = None

    def __post_init__(self) -> None:
        ids = [p.product_id for p in self.products]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate product ids in order {self.code}")

    def product(self, product_id: str) -> Product | None:
        for product in self.products:
            if product.product_id == product_id:
                return product
        return None

    @property
    def product_ids(self) -> tuple[str, ...]:
        return tuple(p.product_id for p in self.products)

    def iter_workflows(self) -> Iterator[tuple[Product, Workflow]]:
        """Yield (product, workflow) pairs across the whole aggregate."""
        for product in self.products:
            for wf in product.workflows:
                yield product, wf

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
