"""
order_engines.drafts -- Draft validation and submission preparation.

Responsibility:
    Validate an order draft before its first (or a full) write, generate
    order codes, and normalise the draft into the document that gets
    persisted: timestamps, resolved stage names, cached totals and the
    automatic "awaiting images" issue.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Clock and random source are injected.

Invariants enforced:
    - A submittable draft has at least one product; every product has a
      non-blank name, quantity >= 1, a price >= 0 and at least one
      workflow; every workflow has stages and members.
    - Percentage discounts stay within the configured bound.
    - A draft saved past PENDING carries received images on every product
      and, when CONFIRMED, a deposit amount above zero.
    - Cached totals written with the draft always match its source fields.
"""

from __future__ import annotations

import random
import string
from dataclasses import replace

from order_engines.production import resolve_stage_names
from order_engines.totals import compute_breakdown, refresh_cached_totals
from order_kernel.domain.clock import Clock, to_epoch_ms
from order_kernel.domain.directory import ReferenceDirectory
from order_kernel.domain.dtos import ValidationError, ValidationResult
from order_kernel.domain.order import Order, OrderStatus
from order_kernel.domain.values import (
    DEFAULT_BOUNDS,
    AdjustmentBounds,
    AdjustmentKind,
)
from order_kernel.logging_config import get_logger

logger = get_logger("engines.drafts")

DEFAULT_CODE_PREFIX = "ORD"
DEFAULT_AWAITING_IMAGES_ISSUE = "Chờ lấy ảnh"
_CODE_ALPHABET = string.digits + string.ascii_uppercase
_CODE_SUFFIX_LENGTH = 3


def generate_order_code(
    clock: Clock,
    rng: random.Random | None = None,
    prefix: str = DEFAULT_CODE_PREFIX,
) -> str:
    """``prefix`` + last six digits of the epoch-ms clock + 3 base-36 chars."""
    rng = rng or random.Random()
    millis = str(to_epoch_ms(clock.now()))[-6:]
    suffix = "".join(rng.choice(_CODE_ALPHABET) for _ in range(_CODE_SUFFIX_LENGTH))
    return f"{prefix}{millis}{suffix}"


def validate_draft(
    order: Order,
    bounds: AdjustmentBounds = DEFAULT_BOUNDS,
) -> ValidationResult:
    """Collect every problem that blocks submitting ``order``."""
    errors: list[ValidationError] = []

    if not order.products:
        errors.append(ValidationError(
            code="no_products",
            message="Order must contain at least one product",
            field="products",
        ))

    for product in order.products:
        field = f"products.{product.product_id}"
        if not product.name.strip():
            errors.append(ValidationError(
                code="blank_product_name",
                message=f"Product {product.product_id} needs a name",
                field=f"{field}.name",
            ))
        if product.quantity is None or product.quantity < 1:
            errors.append(ValidationError(
                code="invalid_quantity",
                message=f"Product {product.product_id} needs a quantity of at least 1",
                field=f"{field}.quantity",
                details={"quantity": product.quantity},
            ))
        if product.price is None or product.price < 0:
            errors.append(ValidationError(
                code="invalid_price",
                message=f"Product {product.product_id} needs a price of at least 0",
                field=f"{field}.price",
                details={"price": product.price},
            ))
        if order.status != OrderStatus.PENDING and not product.has_received_images:
            errors.append(ValidationError(
                code="missing_received_images",
                message=f"Product {product.product_id} needs a received image "
                        f"once the order is {order.status.value}",
                field=f"{field}.images",
            ))
        if not product.workflows:
            errors.append(ValidationError(
                code="missing_workflow",
                message=f"Product {product.product_id} needs at least one workflow",
                field=f"{field}.workflows",
            ))
        for wf in product.workflows:
            wf_field = f"{field}.workflows.{wf.workflow_id}"
            if not wf.stage_codes:
                errors.append(ValidationError(
                    code="missing_stages",
                    message=f"Workflow {wf.workflow_id} of product {product.product_id} needs stages",
                    field=f"{wf_field}.workflowCode",
                ))
            if not wf.members:
                errors.append(ValidationError(
                    code="missing_members",
                    message=f"Workflow {wf.workflow_id} of product {product.product_id} needs members",
                    field=f"{wf_field}.members",
                ))

    if order.discount < 0 or (
        order.discount_kind == AdjustmentKind.PERCENTAGE
        and order.discount > bounds.discount_percent_max
    ):
        errors.append(ValidationError(
            code="discount_out_of_bounds",
            message="Discount is outside the permitted range",
            field="discount",
            details={
                "discount": order.discount,
                "kind": order.discount_kind.value,
                "max_percent": bounds.discount_percent_max,
            },
        ))

    if order.status == OrderStatus.CONFIRMED and order.products:
        if compute_breakdown(order, bounds).deposit_amount <= 0:
            errors.append(ValidationError(
                code="deposit_required",
                message="A confirmed order needs a deposit above zero",
                field="deposit",
            ))

    if errors:
        logger.info(
            "draft_validation_failed",
            extra={
                "order_code": order.code,
                "error_codes": [e.code for e in errors],
            },
        )
        return ValidationResult.failure(*errors)
    return ValidationResult.success()


def needs_awaiting_images_issue(order: Order) -> bool:
    return order.status == OrderStatus.PENDING and any(
        not p.has_received_images for p in order.products
    )


def prepare_submission(
    order: Order,
    *,
    clock: Clock,
    directory: ReferenceDirectory | None = None,
    bounds: AdjustmentBounds = DEFAULT_BOUNDS,
    rng: random.Random | None = None,
    code_prefix: str = DEFAULT_CODE_PREFIX,
    awaiting_images_issue: str = DEFAULT_AWAITING_IMAGES_ISSUE,
) -> Order:
    """Normalise a validated draft into the snapshot to persist.

    Generates a code when missing, stamps created/updated timestamps,
    resolves stage names, drops blank issues, appends the awaiting-images
    issue where it applies and refreshes cached totals.
    """
    now = clock.now()
    code = order.code or generate_order_code(clock, rng, code_prefix)

    products = order.products
    if directory is not None:
        products = tuple(
            replace(
                p,
                workflows=tuple(
                    replace(resolve_stage_names(wf, directory), updated_at=now)
                    for wf in p.workflows
                ),
            )
            for p in products
        )
    else:
        products = tuple(
            replace(p, workflows=tuple(replace(wf, updated_at=now) for wf in p.workflows))
            for p in products
        )

    issues = tuple(i for i in order.issues if i and i.strip())
    prepared = replace(
        order,
        code=code,
        products=products,
        created_at=order.created_at or now,
        updated_at=now,
        issues=issues,
    )
    if needs_awaiting_images_issue(prepared) and awaiting_images_issue not in issues:
        prepared = replace(prepared, issues=issues + (awaiting_images_issue,))
    return refresh_cached_totals(prepared, bounds)
