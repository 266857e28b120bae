"""Tests for the read-side order projection."""

from dataclasses import replace
from decimal import Decimal

from order_engines.totals import refresh_cached_totals
from order_engines.views import derive_view
from order_kernel.domain.order import OrderStatus


class TestDeriveView:

    def test_projection_of_fresh_order(self, make_order):
        view = derive_view(refresh_cached_totals(make_order(("p1", "p2"))))

        assert view.breakdown.total == 3_000_000
        assert view.completion_ratio == Decimal("0")
        assert view.product_completion == (("p1", Decimal("0")), ("p2", Decimal("0")))
        assert view.next_status is OrderStatus.CONFIRMED
        assert view.allowed_targets == (OrderStatus.CONFIRMED, OrderStatus.CANCELLED)
        assert not view.is_terminal
        assert not view.cached_totals_stale

    def test_stale_cache_detected(self, make_order):
        order = replace(refresh_cached_totals(make_order()), shipping_fee=50_000)
        assert derive_view(order).cached_totals_stale

    def test_missing_cache_is_not_stale(self, make_order):
        assert not derive_view(make_order()).cached_totals_stale

    def test_terminal_order(self, make_order):
        view = derive_view(make_order(status=OrderStatus.CANCELLED))
        assert view.is_terminal
        assert view.next_status is None
        assert view.allowed_targets == ()
