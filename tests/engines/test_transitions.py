"""
Tests for the order status transition engine.

Sequence rule, structural invariants, guard evaluation (including the
fail-closed executor), and the ``order_transition`` trace record.
"""

from dataclasses import replace

import pytest

from order_engines.transitions import (
    COMPLETED_IMAGES_PRESENT,
    DEPOSIT_PAID,
    ORDER_LIFECYCLE,
    GuardCheck,
    GuardExecutor,
    allowed_targets,
    check_structure,
    default_guard_executor,
    is_terminal,
    next_status,
    propose_transition,
)
from order_kernel.domain.dtos import FailureKind
from order_kernel.domain.order import ImageRef, OrderStatus, Product, Workflow
from order_kernel.invariants import OrderInvariant

NON_TERMINAL = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.IN_PROGRESS,
    OrderStatus.ON_HOLD,
]


def without_images(order):
    return replace(order, products=tuple(replace(p, images=()) for p in order.products))


def with_all_done(order):
    return replace(
        order,
        products=tuple(
            replace(p, workflows=tuple(replace(wf, is_done=True) for wf in p.workflows))
            for p in order.products
        ),
    )


def with_completed_images(order):
    return replace(
        order,
        products=tuple(
            replace(p, images_done=(ImageRef(uid=f"done-{p.product_id}", name="after.jpg", url="u"),))
            for p in order.products
        ),
    )


# =============================================================================
# Lifecycle declaration
# =============================================================================


class TestLifecycle:

    def test_forward_successors(self):
        assert next_status(OrderStatus.PENDING) is OrderStatus.CONFIRMED
        assert next_status(OrderStatus.ON_HOLD) is OrderStatus.COMPLETED
        assert next_status(OrderStatus.COMPLETED) is None
        assert next_status(OrderStatus.CANCELLED) is None

    def test_allowed_targets_include_cancel(self):
        assert allowed_targets(OrderStatus.CONFIRMED) == (
            OrderStatus.IN_PROGRESS,
            OrderStatus.CANCELLED,
        )
        assert allowed_targets(OrderStatus.COMPLETED) == ()

    def test_terminal_statuses(self):
        assert is_terminal(OrderStatus.COMPLETED)
        assert is_terminal(OrderStatus.CANCELLED)
        assert not is_terminal(OrderStatus.ON_HOLD)

    def test_confirm_guards_in_declaration_order(self):
        confirm = ORDER_LIFECYCLE.find("pending", "confirmed")
        assert [g.name for g in confirm.guards] == ["received_images_present", "deposit_paid"]


# =============================================================================
# Guards
# =============================================================================


class TestGuardedTransitions:

    def test_missing_received_images_blocks_confirm(self, make_order, clock):
        order = without_images(make_order(is_deposit_paid=True))
        decision = propose_transition(order, OrderStatus.CONFIRMED, clock=clock)

        assert not decision.accepted
        assert decision.failure.kind is FailureKind.GUARD_FAILED
        assert decision.failure.guard == "received_images_present"
        assert decision.reason == "missing received images"
        assert decision.failure.product_ids == ("p1",)
        assert order.status is OrderStatus.PENDING

    def test_unpaid_deposit_blocks_confirm(self, make_order, clock):
        decision = propose_transition(make_order(), OrderStatus.CONFIRMED, clock=clock)

        assert decision.failure.guard == DEPOSIT_PAID.name
        assert decision.reason == "deposit not paid"
        assert decision.failure.product_ids == ()

    def test_first_failing_guard_reported(self, make_order, clock):
        order = without_images(make_order())
        decision = propose_transition(order, OrderStatus.CONFIRMED, clock=clock)
        assert decision.failure.guard == "received_images_present"

    def test_confirm_succeeds_with_images_and_deposit(self, make_order, clock):
        decision = propose_transition(
            make_order(is_deposit_paid=True), OrderStatus.CONFIRMED, clock=clock,
        )

        assert decision.accepted
        assert decision.patch.status is OrderStatus.CONFIRMED
        assert decision.patch.updated_at == clock.now()
        assert decision.patch.order_code == "ORD123456ABC"

    def test_start_production_has_no_guards(self, make_order, clock):
        decision = propose_transition(
            make_order(status=OrderStatus.CONFIRMED), "in_progress", clock=clock,
        )
        assert decision.accepted

    def test_production_complete_required_for_on_hold(self, make_order, clock):
        order = make_order(("p1", "p2"), status=OrderStatus.IN_PROGRESS)

        blocked = propose_transition(order, OrderStatus.ON_HOLD, clock=clock)
        assert blocked.reason == "production incomplete"
        assert blocked.failure.product_ids == ("p1", "p2")

        done = propose_transition(with_all_done(order), OrderStatus.ON_HOLD, clock=clock)
        assert done.accepted

    def test_completed_images_required_then_retry_succeeds(self, make_order, clock):
        order = with_all_done(make_order(("p1", "p2"), status=OrderStatus.ON_HOLD))

        blocked = propose_transition(order, OrderStatus.COMPLETED, clock=clock)
        assert blocked.failure.guard == COMPLETED_IMAGES_PRESENT.name
        assert blocked.reason == "missing completed images"

        retried = propose_transition(with_completed_images(order), OrderStatus.COMPLETED, clock=clock)
        assert retried.accepted
        assert retried.to_status is OrderStatus.COMPLETED


# =============================================================================
# Sequence rule
# =============================================================================


class TestSequence:

    @pytest.mark.parametrize("status", NON_TERMINAL)
    def test_cancel_from_every_non_terminal_status(self, make_order, clock, status):
        order = make_order(status=status, products=())
        decision = propose_transition(order, OrderStatus.CANCELLED, clock=clock)
        assert decision.accepted

    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.PENDING, OrderStatus.IN_PROGRESS),
            (OrderStatus.CONFIRMED, OrderStatus.PENDING),
            (OrderStatus.ON_HOLD, OrderStatus.IN_PROGRESS),
            (OrderStatus.IN_PROGRESS, OrderStatus.IN_PROGRESS),
        ],
    )
    def test_skips_and_regressions_rejected(self, make_order, clock, current, target):
        decision = propose_transition(make_order(status=current), target, clock=clock)

        assert decision.failure.kind is FailureKind.INVALID_SEQUENCE
        assert decision.failure.code == OrderInvariant.STATUS_MONOTONIC.value
        assert decision.reason == f"cannot move from {current.value} to {target.value}"

    @pytest.mark.parametrize("status", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
    def test_terminal_orders_cannot_move(self, make_order, clock, status):
        decision = propose_transition(make_order(status=status), OrderStatus.CANCELLED, clock=clock)

        assert decision.failure.kind is FailureKind.INVALID_SEQUENCE
        assert decision.reason == f"order is {status.value}; no further transitions"

    def test_unknown_target_raises(self, make_order, clock):
        with pytest.raises(ValueError):
            propose_transition(make_order(), "shipped", clock=clock)

    def test_same_inputs_same_decision(self, make_order, clock):
        order = make_order()
        first = propose_transition(order, OrderStatus.CONFIRMED, clock=clock)
        second = propose_transition(order, OrderStatus.CONFIRMED, clock=clock)
        assert first == second


# =============================================================================
# Structural invariants
# =============================================================================


class TestStructure:

    def test_order_without_products(self, make_order, clock, captured_logs):
        order = make_order(products=(), is_deposit_paid=True)
        decision = propose_transition(order, OrderStatus.CONFIRMED, clock=clock)

        assert decision.failure.kind is FailureKind.INVARIANT_VIOLATION
        assert decision.failure.code == OrderInvariant.PRODUCTS_PRESENT.value
        assert decision.reason == "order has no products"

        errors = [r for r in captured_logs() if r["message"] == "order_invariant_violated"]
        assert errors[0]["level"] == "ERROR"
        assert errors[0]["invariant"] == "products_present"

    def test_product_without_workflow(self, make_order):
        order = make_order(("p1", "p2"))
        bare = replace(order.product("p2"), workflows=())
        order = replace(order, products=(order.product("p1"), bare))

        failure = check_structure(order)
        assert failure.code == OrderInvariant.WORKFLOW_PER_PRODUCT.value
        assert failure.product_ids == ("p2",)

    def test_structure_checked_before_guards(self, make_order, clock):
        order = replace(make_order(), products=(Product(product_id="p1"),))
        decision = propose_transition(order, OrderStatus.CONFIRMED, clock=clock)
        assert decision.failure.kind is FailureKind.INVARIANT_VIOLATION

    def test_unknown_references_need_directory(self, make_order, directory):
        order = make_order()
        p1 = order.product("p1")
        stray = Workflow(workflow_id="w-x", department_code="ENGRAVING", stage_codes=("ETCH",))
        order = replace(order, products=(replace(p1, workflows=p1.workflows + (stray,)),))

        assert check_structure(order) is None
        failure = check_structure(order, directory)
        assert failure.code == OrderInvariant.KNOWN_REFERENCES.value
        assert failure.product_ids == ("p1",)

    def test_known_references_pass(self, make_order, directory):
        assert check_structure(make_order(), directory) is None

    def test_cancel_skips_structural_checks(self, make_order, clock):
        order = make_order(status=OrderStatus.CONFIRMED, products=())
        assert propose_transition(order, OrderStatus.CANCELLED, clock=clock).accepted


# =============================================================================
# Guard executor
# =============================================================================


class TestGuardExecutor:

    def test_missing_evaluator_fails_closed(self, make_order, clock, captured_logs):
        decision = propose_transition(
            make_order(is_deposit_paid=True),
            OrderStatus.CONFIRMED,
            clock=clock,
            executor=GuardExecutor(),
        )

        assert not decision.accepted
        assert decision.failure.guard == "received_images_present"
        assert any(r["message"] == "guard_no_evaluator" for r in captured_logs())

    def test_raising_evaluator_fails_closed(self, make_order, clock, captured_logs):
        executor = default_guard_executor()

        def _boom(order):
            raise RuntimeError("payments offline")

        executor.register(DEPOSIT_PAID.name, _boom)
        decision = propose_transition(
            make_order(is_deposit_paid=True), OrderStatus.CONFIRMED, clock=clock, executor=executor,
        )

        assert decision.failure.guard == DEPOSIT_PAID.name
        warnings = [r for r in captured_logs() if r["message"] == "guard_evaluation_error"]
        assert warnings[0]["error"] == "payments offline"

    def test_custom_evaluator_can_override(self, make_order, clock):
        executor = default_guard_executor()
        executor.register(DEPOSIT_PAID.name, lambda order: GuardCheck.ok())
        decision = propose_transition(
            make_order(), OrderStatus.CONFIRMED, clock=clock, executor=executor,
        )
        assert decision.accepted


# =============================================================================
# Trace record
# =============================================================================


class TestTransitionTrace:

    def test_accepted_transition_traced(self, make_order, clock, captured_logs):
        propose_transition(make_order(is_deposit_paid=True), OrderStatus.CONFIRMED, clock=clock)

        traces = [r for r in captured_logs() if r["message"] == "order_transition"]
        assert len(traces) == 1
        trace = traces[0]
        assert trace["trace_type"] == "ORDER_TRANSITION"
        assert trace["action"] == "confirm"
        assert trace["order_code"] == "ORD123456ABC"
        assert trace["from_status"] == "pending"
        assert trace["to_status"] == "confirmed"
        assert trace["outcome"] == "success"
        assert "guard" not in trace

    def test_rejected_transition_traced_with_guard(self, make_order, clock, captured_logs):
        propose_transition(make_order(), OrderStatus.CONFIRMED, clock=clock)

        trace = [r for r in captured_logs() if r["message"] == "order_transition"][0]
        assert trace["outcome"] == "guard_failed"
        assert trace["reason"] == "deposit not paid"
        assert trace["guard"] == "deposit_paid"
