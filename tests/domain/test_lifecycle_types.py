"""Tests for the lifecycle value objects and transition DTOs."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from order_kernel.domain.dtos import (
    FailureKind,
    OrderPatch,
    TransitionDecision,
    TransitionFailure,
)
from order_kernel.domain.lifecycle import Guard, Lifecycle, Transition
from order_kernel.domain.order import Order, OrderStatus, Product, Workflow
from order_kernel.domain.values import AdjustmentKind

NOW = datetime(2024, 3, 15, tzinfo=timezone.utc)


class TestLifecycleDefinition:

    def test_unknown_state_rejected(self):
        with pytest.raises(ValueError, match="unknown state"):
            Lifecycle(
                name="t",
                description="",
                initial_state="a",
                states=("a", "b"),
                transitions=(Transition("a", "c", "go"),),
            )

    def test_initial_state_must_exist(self):
        with pytest.raises(ValueError, match="initial state"):
            Lifecycle(name="t", description="", initial_state="x", states=("a",), transitions=())

    def test_terminal_state_cannot_have_outgoing_edge(self):
        with pytest.raises(ValueError, match="terminal state"):
            Lifecycle(
                name="t",
                description="",
                initial_state="a",
                states=("a", "b"),
                transitions=(Transition("b", "a", "reopen"),),
                terminal_states=("b",),
            )

    def test_find_and_transitions_from(self):
        guard = Guard("g", "desc", "blocked")
        lifecycle = Lifecycle(
            name="t",
            description="",
            initial_state="a",
            states=("a", "b", "c"),
            transitions=(
                Transition("a", "b", "next", guards=(guard,)),
                Transition("a", "c", "skip"),
            ),
        )
        assert lifecycle.find("a", "b").guards == (guard,)
        assert lifecycle.find("b", "a") is None
        assert [t.action for t in lifecycle.transitions_from("a")] == ["next", "skip"]


class TestTransitionDecision:

    def test_accepted_requires_patch(self):
        with pytest.raises(ValueError):
            TransitionDecision(
                accepted=True,
                from_status=OrderStatus.PENDING,
                to_status=OrderStatus.CONFIRMED,
            )

    def test_rejected_requires_failure(self):
        with pytest.raises(ValueError):
            TransitionDecision(
                accepted=False,
                from_status=OrderStatus.PENDING,
                to_status=OrderStatus.CONFIRMED,
            )

    def test_reject_exposes_reason(self):
        failure = TransitionFailure(
            kind=FailureKind.GUARD_FAILED,
            code="deposit_paid",
            reason="deposit not paid",
            guard="deposit_paid",
        )
        decision = TransitionDecision.reject(OrderStatus.PENDING, OrderStatus.CONFIRMED, failure)
        assert not decision
        assert decision.reason == "deposit not paid"


class TestOrderPatch:

    def test_minimal_patch_document(self):
        patch = OrderPatch(order_code="ORD1", status=OrderStatus.IN_PROGRESS, updated_at=NOW)
        assert patch.to_document() == {
            "status": "in_progress",
            "updatedAt": 1_710_460_800_000,
        }

    def test_deposit_fields_rendered_when_present(self):
        patch = OrderPatch(
            order_code="ORD1",
            status=OrderStatus.CONFIRMED,
            updated_at=NOW,
            is_deposit_paid=True,
            deposit=Decimal("30"),
            deposit_kind=AdjustmentKind.PERCENTAGE,
            deposit_amount=450_000,
        )
        doc = patch.to_document()
        assert doc["isDepositPaid"] is True
        assert doc["deposit"] == 30
        assert doc["depositType"] == "percentage"
        assert doc["depositAmount"] == 450_000


class TestOrderAggregate:

    def test_duplicate_product_ids_rejected(self):
        with pytest.raises(ValueError, match="Duplicate product"):
            Order(code="ORD1", products=(Product("p1"), Product("p1")))

    def test_duplicate_workflow_ids_rejected(self):
        with pytest.raises(ValueError, match="Duplicate workflow"):
            Product("p1", workflows=(Workflow("w1"), Workflow("w1", department_code="LEATHER")))
