"""
Module: order_engines
Responsibility:
    Package entrypoint re-exporting the pure order engines: financial
    calculator, workflow tracker, transition engine, reconciliation
    handshake, draft validation and read-side views.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import order_kernel (and sibling engine modules).
    MUST NOT import order_services, order_config or sqlalchemy.

Invariants enforced:
    - Purity: engines never call ``datetime.now()``.  A Clock is passed in
      wherever a timestamp is produced.
    - Determinism: identical inputs always produce identical outputs.
"""

from order_engines.drafts import generate_order_code, prepare_submission, validate_draft
from order_engines.production import (
    add_workflow,
    attach_images,
    available_departments,
    eligible_staff,
    is_order_production_complete,
    is_product_complete,
    order_completion_ratio,
    product_completion_ratio,
    prune_ineligible_members,
    remove_workflow,
    replace_workflow,
    set_department,
    set_done,
    set_members,
    set_stages,
)
from order_engines.reconciliation import (
    apply_intent,
    apply_patch,
    board_move_intent,
    confirm_intent,
    raise_intent,
)
from order_engines.totals import (
    DepositBreakdown,
    OrderTotals,
    compute_breakdown,
    compute_commission,
    compute_deposit,
    compute_totals,
    refresh_cached_totals,
)
from order_engines.transitions import (
    ORDER_LIFECYCLE,
    GuardCheck,
    GuardExecutor,
    allowed_targets,
    default_guard_executor,
    is_terminal,
    next_status,
    propose_transition,
)
from order_engines.views import OrderView, derive_view

__all__ = [
    # Totals
    "OrderTotals",
    "DepositBreakdown",
    "compute_totals",
    "compute_deposit",
    "compute_commission",
    "compute_breakdown",
    "refresh_cached_totals",
    # Production
    "is_product_complete",
    "is_order_production_complete",
    "product_completion_ratio",
    "order_completion_ratio",
    "set_department",
    "set_stages",
    "set_members",
    "set_done",
    "eligible_staff",
    "prune_ineligible_members",
    "available_departments",
    "add_workflow",
    "replace_workflow",
    "remove_workflow",
    "attach_images",
    # Transitions
    "ORDER_LIFECYCLE",
    "GuardCheck",
    "GuardExecutor",
    "default_guard_executor",
    "propose_transition",
    "next_status",
    "allowed_targets",
    "is_terminal",
    # Reconciliation
    "raise_intent",
    "confirm_intent",
    "board_move_intent",
    "apply_patch",
    "apply_intent",
    # Drafts
    "validate_draft",
    "generate_order_code",
    "prepare_submission",
    # Views
    "OrderView",
    "derive_view",
]
