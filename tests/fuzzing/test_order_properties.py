"""
Property-based tests for the order engines.

Boundaries fuzzed here:
- Totals: arbitrary line items, discount/shipping/deposit inputs of either
  kind; derived amounts stay non-negative and consistent.
- Transitions: every (status, target) pair; the status never regresses
  and never skips a step.
- Document codec: parsed snapshots survive a serialize/parse cycle.
- Workflow tracker: changing the department always clears dependents.
"""

from datetime import datetime, timezone
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from order_engines.production import set_department
from order_engines.totals import compute_breakdown, compute_deposit, compute_totals
from order_engines.transitions import next_status, propose_transition
from order_kernel.domain.clock import DeterministicClock
from order_kernel.domain.documents import order_from_document, order_to_document
from order_kernel.domain.order import (
    ImageRef,
    Order,
    OrderStatus,
    Product,
    Workflow,
)
from order_kernel.domain.values import AdjustmentKind

CLOCK = DeterministicClock(datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc))

amounts = st.integers(min_value=0, max_value=10_000_000_000)
kinds = st.sampled_from(list(AdjustmentKind))
adjustments = st.one_of(
    st.none(),
    st.integers(min_value=-1_000, max_value=20_000_000_000),
    st.decimals(min_value=-10, max_value=200, places=2, allow_nan=False, allow_infinity=False),
)
ids = st.text(alphabet="abcdefghjkmnpqrstuvwxyz0123456789", min_size=1, max_size=6)


@composite
def products(draw, max_size=4) -> tuple[Product, ...]:
    product_ids = draw(st.lists(ids, min_size=0, max_size=max_size, unique=True))
    return tuple(
        Product(
            product_id=pid,
            name=draw(st.text(max_size=12)),
            quantity=draw(st.one_of(st.none(), st.integers(min_value=-2, max_value=50))),
            price=draw(st.one_of(st.none(), amounts)),
            images=tuple(
                ImageRef(uid=f"{pid}-{i}", name=f"{i}.jpg", url=f"https://img/{pid}/{i}")
                for i in range(draw(st.integers(min_value=0, max_value=2)))
            ),
            workflows=tuple(
                Workflow(
                    workflow_id=f"{pid}-w{i}",
                    department_code=draw(st.sampled_from(["PLATING", "LEATHER", None])),
                    stage_codes=tuple(draw(st.lists(st.sampled_from(["GOLD", "STITCH", "DYE"]), max_size=2, unique=True))),
                    members=tuple(draw(st.lists(st.sampled_from(["s-an", "s-chi"]), max_size=2, unique=True))),
                    is_done=draw(st.booleans()),
                )
                for i in range(draw(st.integers(min_value=0, max_value=2)))
            ),
        )
        for pid in product_ids
    )


@composite
def orders(draw) -> Order:
    return Order(
        code="ORD" + draw(st.text(alphabet="0123456789", min_size=6, max_size=6)) + "K7Q",
        status=draw(st.sampled_from(list(OrderStatus))),
        products=draw(products()),
        discount=Decimal(draw(st.integers(min_value=0, max_value=500_000))),
        discount_kind=draw(kinds),
        shipping_fee=draw(st.integers(min_value=0, max_value=100_000)),
        deposit=Decimal(draw(st.integers(min_value=0, max_value=100))),
        deposit_kind=draw(kinds),
        is_deposit_paid=draw(st.booleans()),
        commission_percentage=draw(st.sampled_from([Decimal("0"), Decimal("2.5"), Decimal("10")])),
        issues=tuple(draw(st.lists(st.text(max_size=10), max_size=3))),
    )


class TestTotalsProperties:

    @given(products(), adjustments, kinds, st.one_of(st.none(), amounts))
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_total_identity_and_bounds(self, items, discount, kind, shipping):
        totals = compute_totals(items, discount, kind, shipping)

        assert 0 <= totals.discount_amount <= totals.subtotal
        assert totals.total == totals.subtotal - totals.discount_amount + (shipping or 0)
        assert totals.total >= 0

    @given(amounts, adjustments, kinds)
    @settings(max_examples=200)
    def test_deposit_never_exceeds_total(self, total, deposit, kind):
        result = compute_deposit(total, deposit, kind)

        assert 0 <= result.deposit_amount <= total
        assert result.deposit_amount + result.remaining == total

    @given(orders())
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_breakdown_is_deterministic(self, order):
        assert compute_breakdown(order) == compute_breakdown(order)


class TestTransitionProperties:

    @given(orders(), st.sampled_from(list(OrderStatus)))
    @settings(max_examples=300, suppress_health_check=[HealthCheck.too_slow])
    def test_status_never_regresses_or_skips(self, order, target):
        decision = propose_transition(order, target, clock=CLOCK)

        if decision.accepted:
            assert not order.is_terminal
            assert target in (next_status(order.status), OrderStatus.CANCELLED)
            assert decision.patch.status is target

    @given(orders())
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_cancel_always_allowed_before_terminal(self, order):
        decision = propose_transition(order, OrderStatus.CANCELLED, clock=CLOCK)
        assert decision.accepted == (not order.is_terminal)


class TestCodecProperties:

    @given(orders())
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_serialize_parse_preserves_snapshot(self, order):
        again = order_from_document(order_to_document(order))

        assert again.code == order.code
        assert again.status == order.status
        assert again.products == order.products
        assert again.issues == order.issues
        assert compute_breakdown(again) == compute_breakdown(order)


class TestWorkflowProperties:

    @given(
        st.sampled_from(["PLATING", "LEATHER", "POLISH", None]),
        st.sampled_from(["PLATING", "LEATHER", "POLISH", None]),
    )
    def test_department_change_clears_dependents(self, before, after):
        wf = Workflow(
            workflow_id="w1",
            department_code=before,
            stage_codes=("GOLD",),
            stage_names=("Gold plating",),
            members=("s-an",),
        )
        changed = set_department(wf, after)

        if before == after:
            assert changed is wf
        else:
            assert changed.stage_codes == ()
            assert changed.members == ()
