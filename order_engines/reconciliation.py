"""
order_engines.reconciliation -- Confirm/cancel handshake for status changes.

Responsibility:
    Stage an externally proposed status change (button, board drop,
    keyboard) as a PendingConfirmation, and on confirmation re-validate
    it against the snapshot current at that moment, merging any fields
    the confirming user supplied.  Also folds accepted patches back into
    an in-memory snapshot.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The store-bound coordinator lives in
    ``order_services.lifecycle_service``; it keeps staged proposals and
    performs the write.

Invariants enforced:
    - A proposal is confirmed only against a snapshot of the same order
      (ProposalMismatchError otherwise).
    - Guards are re-run on the latest snapshot, never on the one captured
      when the intent was raised.
    - Confirm-time deposit fields are merged before the guards run, so a
      deposit recorded in the confirmation can satisfy ``deposit_paid``.
    - Dropping a card into its own column, or into a column that is not a
      status, raises no intent.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Hashable
from uuid import UUID, uuid4

from order_engines.totals import compute_deposit, compute_totals, refresh_cached_totals
from order_engines.transitions import GuardExecutor, propose_transition
from order_kernel.domain.clock import Clock
from order_kernel.domain.directory import ReferenceDirectory
from order_kernel.domain.dtos import (
    ConfirmationFields,
    IntentSource,
    OrderPatch,
    PendingConfirmation,
    TransitionDecision,
    TransitionFailure,
)
from order_kernel.domain.order import Order, OrderStatus
from order_kernel.domain.values import (
    DEFAULT_BOUNDS,
    AdjustmentBounds,
    to_decimal,
)
from order_kernel.exceptions import ProposalMismatchError
from order_kernel.logging_config import get_logger

logger = get_logger("engines.reconciliation")


def raise_intent(
    order: Order,
    proposed_status: OrderStatus | str,
    *,
    clock: Clock,
    source: IntentSource = IntentSource.BUTTON,
    proposal_id: UUID | None = None,
) -> PendingConfirmation:
    """Stage a proposed status change.  Nothing is validated yet."""
    pending = PendingConfirmation(
        proposal_id=proposal_id or uuid4(),
        order_code=order.code,
        from_status=order.status,
        proposed_status=OrderStatus(proposed_status),
        source=source,
        raised_at=clock.now(),
    )
    logger.info(
        "status_intent_raised",
        extra={
            "proposal_id": str(pending.proposal_id),
            "order_code": pending.order_code,
            "from_status": pending.from_status.value,
            "to_status": pending.proposed_status.value,
            "source": pending.source.value,
        },
    )
    return pending


def board_move_intent(
    order: Order,
    source_column: Hashable,
    destination_column: Hashable,
    *,
    clock: Clock,
    proposal_id: UUID | None = None,
) -> PendingConfirmation | None:
    """Translate a board drag-and-drop into an intent.

    Returns None when the card is dropped back into the column it came
    from, into a column that is not an order status, or into the column
    of the order's current status.
    """
    if source_column == destination_column:
        return None
    try:
        target = OrderStatus(destination_column)
    except ValueError:
        logger.debug(
            "board_drop_ignored",
            extra={"order_code": order.code, "destination": str(destination_column)},
        )
        return None
    if target == order.status:
        return None
    return raise_intent(
        order, target, clock=clock, source=IntentSource.BOARD, proposal_id=proposal_id,
    )


def merge_confirmation_fields(order: Order, extra: ConfirmationFields | None) -> Order:
    """Overlay the confirming user's deposit fields on a snapshot."""
    if extra is None or extra.is_empty:
        return order
    changes: dict = {}
    if extra.is_deposit_paid is not None:
        changes["is_deposit_paid"] = extra.is_deposit_paid
    if extra.deposit is not None:
        changes["deposit"] = to_decimal(extra.deposit)
    if extra.deposit_kind is not None:
        changes["deposit_kind"] = extra.deposit_kind
    return replace(order, **changes)


def confirm_intent(
    pending: PendingConfirmation,
    current_order: Order,
    extra: ConfirmationFields | None = None,
    *,
    clock: Clock,
    directory: ReferenceDirectory | None = None,
    executor: GuardExecutor | None = None,
    bounds: AdjustmentBounds = DEFAULT_BOUNDS,
) -> TransitionDecision:
    """Re-validate a staged proposal against the latest snapshot.

    On acceptance with confirmation fields, the patch also carries those
    fields and the recomputed deposit amount.

    Raises:
        ProposalMismatchError: the snapshot is of a different order.
    """
    if pending.order_code != current_order.code:
        raise ProposalMismatchError(pending.order_code, current_order.code)

    candidate = merge_confirmation_fields(current_order, extra)
    decision = propose_transition(
        candidate,
        pending.proposed_status,
        clock=clock,
        directory=directory,
        executor=executor,
    )
    if not decision.accepted or extra is None or extra.is_empty:
        return decision

    totals = compute_totals(
        candidate.products,
        candidate.discount,
        candidate.discount_kind,
        candidate.shipping_fee,
        bounds=bounds,
    )
    deposit = compute_deposit(
        totals.total, candidate.deposit, candidate.deposit_kind, bounds=bounds,
    )
    patch = replace(
        decision.patch,
        is_deposit_paid=extra.is_deposit_paid,
        deposit=candidate.deposit if extra.deposit is not None else None,
        deposit_kind=extra.deposit_kind,
        deposit_amount=deposit.deposit_amount,
    )
    return TransitionDecision.accept(decision.from_status, patch)


def apply_patch(
    order: Order,
    patch: OrderPatch,
    bounds: AdjustmentBounds = DEFAULT_BOUNDS,
) -> Order:
    """Fold an accepted patch into a snapshot.

    Raises:
        ValueError: the patch targets another order.
    """
    if patch.order_code != order.code:
        raise ValueError(f"Patch for {patch.order_code} applied to order {order.code}")
    changes: dict = {"status": patch.status, "updated_at": patch.updated_at}
    if patch.is_deposit_paid is not None:
        changes["is_deposit_paid"] = patch.is_deposit_paid
    if patch.deposit is not None:
        changes["deposit"] = patch.deposit
    if patch.deposit_kind is not None:
        changes["deposit_kind"] = patch.deposit_kind
    updated = replace(order, **changes)
    if updated.cached_totals is not None and patch.deposit_amount is not None:
        updated = refresh_cached_totals(updated, bounds)
    return updated


def apply_intent(
    snapshot: Order,
    target: OrderStatus | str,
    *,
    clock: Clock,
    extra: ConfirmationFields | None = None,
    directory: ReferenceDirectory | None = None,
    executor: GuardExecutor | None = None,
    source: IntentSource = IntentSource.BUTTON,
) -> Order | TransitionFailure:
    """Reducer: raise and immediately confirm an intent on one snapshot.

    Returns the next snapshot, or the failure leaving ``snapshot`` as is.
    """
    pending = raise_intent(snapshot, target, clock=clock, source=source)
    decision = confirm_intent(
        pending, snapshot, extra, clock=clock, directory=directory, executor=executor,
    )
    if not decision.accepted:
        return decision.failure
    return apply_patch(snapshot, decision.patch)
