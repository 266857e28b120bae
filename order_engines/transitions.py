"""
order_engines.transitions -- Order status transition engine.

Responsibility:
    Declares the order lifecycle (states, transitions, guards) as data and
    decides whether a proposed status change is permitted for a given
    order snapshot.  On success it returns the patch to persist; on
    failure it returns a typed reason.  It never mutates the order.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import order_kernel/domain types and sibling engines.
    The clock is injected; the only side effect is a log record.

Invariants enforced:
    - Status only advances one step along FORWARD_SEQUENCE, or moves to
      CANCELLED from a non-terminal status.  Anything else is
      INVALID_SEQUENCE.
    - Before leaving PENDING (and on every later non-cancel move) the
      order has products, every product has a workflow, and with a
      directory every workflow references known departments and stages.
      A breach is INVARIANT_VIOLATION and is logged at ERROR.
    - Guards are evaluated in declaration order; the first failing guard
      is reported.  Guards without an evaluator fail closed.
    - Same snapshot, same target and same clock reading give the same
      decision.

Data flow:
    propose_transition(order, target)
        -> sequence check -> structural checks -> guards
        -> TransitionDecision(patch | failure)
        -> "order_transition" trace record
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from order_engines.production import is_product_complete
from order_kernel.domain.clock import Clock
from order_kernel.domain.directory import ReferenceDirectory
from order_kernel.domain.dtos import (
    FailureKind,
    OrderPatch,
    TransitionDecision,
    TransitionFailure,
)
from order_kernel.domain.lifecycle import Guard, Lifecycle, Transition
from order_kernel.domain.order import (
    FORWARD_SEQUENCE,
    TERMINAL_STATUSES,
    Order,
    OrderStatus,
)
from order_kernel.invariants import OrderInvariant
from order_kernel.logging_config import get_logger

logger = get_logger("engines.transitions")

TRACE_TYPE_ORDER_TRANSITION = "ORDER_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_INVALID_SEQUENCE = "invalid_sequence"
OUTCOME_GUARD_FAILED = "guard_failed"
OUTCOME_INVARIANT_VIOLATION = "invariant_violation"


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

RECEIVED_IMAGES_PRESENT = Guard(
    name="received_images_present",
    description="Every product has at least one received image",
    failure_reason="missing received images",
)

DEPOSIT_PAID = Guard(
    name="deposit_paid",
    description="The customer's deposit has been recorded as paid",
    failure_reason="deposit not paid",
)

PRODUCTION_COMPLETE = Guard(
    name="production_complete",
    description="Every workflow of every product is done",
    failure_reason="production incomplete",
)

COMPLETED_IMAGES_PRESENT = Guard(
    name="completed_images_present",
    description="Every product has at least one completed-work image",
    failure_reason="missing completed images",
)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

_CANCELLABLE = tuple(s for s in OrderStatus if s not in TERMINAL_STATUSES)

ORDER_LIFECYCLE = Lifecycle(
    name="order",
    description="Service order from intake to delivery",
    initial_state=OrderStatus.PENDING.value,
    states=tuple(s.value for s in OrderStatus),
    transitions=(
        Transition(
            from_state=OrderStatus.PENDING.value,
            to_state=OrderStatus.CONFIRMED.value,
            action="confirm",
            guards=(RECEIVED_IMAGES_PRESENT, DEPOSIT_PAID),
        ),
        Transition(
            from_state=OrderStatus.CONFIRMED.value,
            to_state=OrderStatus.IN_PROGRESS.value,
            action="start_production",
        ),
        Transition(
            from_state=OrderStatus.IN_PROGRESS.value,
            to_state=OrderStatus.ON_HOLD.value,
            action="finish_production",
            guards=(PRODUCTION_COMPLETE,),
        ),
        Transition(
            from_state=OrderStatus.ON_HOLD.value,
            to_state=OrderStatus.COMPLETED.value,
            action="complete",
            guards=(COMPLETED_IMAGES_PRESENT,),
        ),
    ) + tuple(
        Transition(
            from_state=s.value,
            to_state=OrderStatus.CANCELLED.value,
            action="cancel",
            structural_checks=False,
        )
        for s in _CANCELLABLE
    ),
    terminal_states=tuple(s.value for s in TERMINAL_STATUSES),
)

logger.info("order_lifecycle_registered", extra={
    "lifecycle_name": ORDER_LIFECYCLE.name,
    "state_count": len(ORDER_LIFECYCLE.states),
    "transition_count": len(ORDER_LIFECYCLE.transitions),
})


def next_status(status: OrderStatus) -> OrderStatus | None:
    """Immediate forward successor, or None for terminal statuses."""
    if status in TERMINAL_STATUSES:
        return None
    idx = FORWARD_SEQUENCE.index(status)
    return FORWARD_SEQUENCE[idx + 1] if idx + 1 < len(FORWARD_SEQUENCE) else None


def allowed_targets(status: OrderStatus) -> tuple[OrderStatus, ...]:
    """Targets the sequence rule permits from ``status`` (guards not applied)."""
    return tuple(
        OrderStatus(t.to_state)
        for t in ORDER_LIFECYCLE.transitions_from(status.value)
    )


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


# ---------------------------------------------------------------------------
# Guard evaluation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GuardCheck:
    """Outcome of one guard: pass/fail plus the blocking products."""

    passed: bool
    product_ids: tuple[str, ...] = ()

    @classmethod
    def ok(cls) -> GuardCheck:
        return cls(passed=True)

    @classmethod
    def blocked(cls, *product_ids: str) -> GuardCheck:
        return cls(passed=False, product_ids=tuple(product_ids))


GuardEvaluator = Callable[[Order], GuardCheck]


def _products_failing(order: Order, predicate: Callable) -> GuardCheck:
    failing = tuple(p.product_id for p in order.products if not predicate(p))
    return GuardCheck.blocked(*failing) if failing else GuardCheck.ok()


def _received_images_present(order: Order) -> GuardCheck:
    return _products_failing(order, lambda p: p.has_received_images)


def _deposit_paid(order: Order) -> GuardCheck:
    return GuardCheck.ok() if order.is_deposit_paid else GuardCheck.blocked()


def _production_complete(order: Order) -> GuardCheck:
    return _products_failing(order, is_product_complete)


def _completed_images_present(order: Order) -> GuardCheck:
    return _products_failing(order, lambda p: p.has_completed_images)


class GuardExecutor:
    """Evaluates lifecycle guards against an order snapshot.

    Guards are declared on transitions (name + description).  This
    executor holds the evaluation logic per guard name.
    """

    def __init__(self) -> None:
        self._evaluators: dict[str, GuardEvaluator] = {}

    def register(self, guard_name: str, evaluator: GuardEvaluator) -> None:
        """Register an evaluator for a guard by name."""
        self._evaluators[guard_name] = evaluator

    def evaluate(self, guard: Guard, order: Order) -> GuardCheck:
        """Evaluate a guard.  Missing evaluators and errors fail closed."""
        fn = self._evaluators.get(guard.name)
        if fn is None:
            logger.warning(
                "guard_no_evaluator",
                extra={"guard_name": guard.name},
            )
            return GuardCheck.blocked()
        try:
            return fn(order)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "guard_evaluation_error",
                extra={"guard_name": guard.name, "error": str(e)},
            )
            return GuardCheck.blocked()


def default_guard_executor() -> GuardExecutor:
    """Return a GuardExecutor with the order guards registered."""
    ex = GuardExecutor()
    ex.register(RECEIVED_IMAGES_PRESENT.name, _received_images_present)
    ex.register(DEPOSIT_PAID.name, _deposit_paid)
    ex.register(PRODUCTION_COMPLETE.name, _production_complete)
    ex.register(COMPLETED_IMAGES_PRESENT.name, _completed_images_present)
    return ex


_DEFAULT_EXECUTOR = default_guard_executor()


# ---------------------------------------------------------------------------
# Structural checks
# ---------------------------------------------------------------------------


def _violation(
    order: Order,
    invariant: OrderInvariant,
    reason: str,
    product_ids: tuple[str, ...] = (),
) -> TransitionFailure:
    logger.error(
        "order_invariant_violated",
        extra={
            "invariant": invariant.value,
            "order_code": order.code,
            "status": order.status.value,
            "product_ids": list(product_ids),
            "reason": reason,
        },
    )
    return TransitionFailure(
        kind=FailureKind.INVARIANT_VIOLATION,
        code=invariant.value,
        reason=reason,
        product_ids=product_ids,
    )


def check_structure(
    order: Order,
    directory: ReferenceDirectory | None = None,
) -> TransitionFailure | None:
    """Return the first structural invariant the order breaks, if any."""
    if not order.products:
        return _violation(order, OrderInvariant.PRODUCTS_PRESENT, "order has no products")

    bare = tuple(p.product_id for p in order.products if not p.workflows)
    if bare:
        return _violation(
            order, OrderInvariant.WORKFLOW_PER_PRODUCT, "product without workflow", bare,
        )

    if directory is not None:
        unknown = []
        for product, wf in order.iter_workflows():
            if not directory.has_department(wf.department_code) or any(
                not directory.has_stage(code) for code in wf.stage_codes
            ):
                unknown.append(product.product_id)
        if unknown:
            return _violation(
                order,
                OrderInvariant.KNOWN_REFERENCES,
                "unknown department or stage reference",
                tuple(dict.fromkeys(unknown)),
            )
    return None


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------


def _emit_transition_trace(
    order: Order,
    target: OrderStatus,
    action: str,
    outcome: str,
    reason: str,
    duration_ms: float,
    guard: str | None = None,
) -> None:
    record = {
        "trace_type": TRACE_TYPE_ORDER_TRANSITION,
        "lifecycle": ORDER_LIFECYCLE.name,
        "action": action,
        "order_code": order.code,
        "from_status": order.status.value,
        "to_status": target.value,
        "outcome": outcome,
        "reason": reason,
        "duration_ms": round(duration_ms, 3),
    }
    if guard is not None:
        record["guard"] = guard
    logger.info("order_transition", extra=record)


def propose_transition(
    order: Order,
    target: OrderStatus | str,
    *,
    clock: Clock,
    directory: ReferenceDirectory | None = None,
    executor: GuardExecutor | None = None,
) -> TransitionDecision:
    """Decide whether ``order`` may move to ``target``.

    Args:
        order: The current snapshot.
        target: Proposed status.
        clock: Source of the patch's ``updated_at``.
        directory: Enables the department/stage reference check.
        executor: Guard evaluators; defaults to the built-in order guards.

    Returns:
        An accepted decision carrying an OrderPatch, or a rejected one
        carrying a TransitionFailure.  Never raises for a refused move.

    Raises:
        ValueError: ``target`` is not an order status.
    """
    t0 = time.perf_counter()
    target = OrderStatus(target)
    executor = executor or _DEFAULT_EXECUTOR

    def _finish(decision: TransitionDecision, action: str) -> TransitionDecision:
        failure = decision.failure
        _emit_transition_trace(
            order,
            target,
            action,
            OUTCOME_SUCCESS if failure is None else failure.kind.value,
            "" if failure is None else failure.reason,
            (time.perf_counter() - t0) * 1000,
            guard=None if failure is None else failure.guard,
        )
        return decision

    transition = ORDER_LIFECYCLE.find(order.status.value, target.value)
    if transition is None:
        if order.is_terminal:
            reason = f"order is {order.status.value}; no further transitions"
        else:
            reason = f"cannot move from {order.status.value} to {target.value}"
        failure = TransitionFailure(
            kind=FailureKind.INVALID_SEQUENCE,
            code=OrderInvariant.STATUS_MONOTONIC.value,
            reason=reason,
        )
        return _finish(TransitionDecision.reject(order.status, target, failure), "none")

    if transition.structural_checks:
        failure = check_structure(order, directory)
        if failure is not None:
            return _finish(
                TransitionDecision.reject(order.status, target, failure),
                transition.action,
            )

    for guard in transition.guards:
        check = executor.evaluate(guard, order)
        if not check.passed:
            failure = TransitionFailure(
                kind=FailureKind.GUARD_FAILED,
                code=guard.name,
                reason=guard.failure_reason,
                guard=guard.name,
                product_ids=check.product_ids,
            )
            return _finish(
                TransitionDecision.reject(order.status, target, failure),
                transition.action,
            )

    patch = OrderPatch(order_code=order.code, status=target, updated_at=clock.now())
    return _finish(TransitionDecision.accept(order.status, patch), transition.action)
