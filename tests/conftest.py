"""
Pytest fixtures for the order lifecycle test suite.

Provides:
- Structured log capture
- Deterministic clock
- Reference directory (departments, stages, staff)
- Order factory
- In-memory and SQLite-backed document stores
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest

from order_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from order_kernel.domain.clock import DeterministicClock
from order_kernel.domain.directory import (
    Department,
    ReferenceDirectory,
    StaffMember,
    Stage,
)
from order_kernel.domain.order import ImageRef, Order, Product, Workflow
from order_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from order_services.store import InMemoryDocumentStore, SqlDocumentStore

FIXED_NOW = datetime(2024, 3, 15, 9, 30, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture order_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            propose_transition(...)
            logs = captured_logs()
            assert any(r["message"] == "order_transition" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("order_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def directory() -> ReferenceDirectory:
    """Two departments with their stages and staff; one inactive member."""
    return ReferenceDirectory.build(
        departments=[
            Department(code="PLATING", name="Plating"),
            Department(code="LEATHER", name="Leather"),
            Department(code="POLISH", name="Polishing"),
        ],
        stages=[
            Stage(code="GOLD", name="Gold plating", department_code="PLATING"),
            Stage(code="SILVER", name="Silver plating", department_code="PLATING"),
            Stage(code="STITCH", name="Re-stitching", department_code="LEATHER"),
            Stage(code="DYE", name="Dyeing", department_code="LEATHER"),
            Stage(code="CLEAN", name="Cleaning"),
        ],
        staff=[
            StaffMember(staff_id="s-an", name="An", departments=("PLATING",)),
            StaffMember(staff_id="s-binh", name="Binh", departments=("PLATING", "POLISH")),
            StaffMember(staff_id="s-chi", name="Chi", departments=("LEATHER",)),
            StaffMember(
                staff_id="s-dung", name="Dung", departments=("LEATHER",), is_active=False,
            ),
        ],
    )


# =============================================================================
# Store fixtures
# =============================================================================


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def sql_store(clock):
    """SqlDocumentStore over a fresh in-memory SQLite database."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield SqlDocumentStore(clock=clock)
    drop_tables()
    reset_engine()


@pytest.fixture(params=["memory", "sql"])
def any_store(request):
    """Run a test against both store implementations."""
    if request.param == "memory":
        return request.getfixturevalue("memory_store")
    return request.getfixturevalue("sql_store")


# =============================================================================
# Order factories
# =============================================================================


@pytest.fixture
def make_order():
    """
    Factory for orders that pass every structural check.

    Each product gets a received image and one staffed LEATHER workflow.
    Keyword overrides are applied to the Order.

    Usage::

        def test_something(make_order):
            order = make_order(status=OrderStatus.CONFIRMED, is_deposit_paid=True)
    """

    def _make(product_ids=("p1",), *, price=1_500_000, quantity=1, **overrides) -> Order:
        products = tuple(
            Product(
                product_id=pid,
                name=f"Item {pid}",
                quantity=quantity,
                price=price,
                images=(ImageRef(uid=f"img-{pid}", name=f"{pid}.jpg", url=f"https://img/{pid}"),),
                workflows=(
                    Workflow(
                        workflow_id=f"w-{pid}",
                        department_code="LEATHER",
                        stage_codes=("STITCH",),
                        stage_names=("Re-stitching",),
                        members=("s-chi",),
                    ),
                ),
            )
            for pid in product_ids
        )
        fields = {"code": "ORD123456ABC", "products": products}
        fields.update(overrides)
        return Order(**fields)

    return _make
