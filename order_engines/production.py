"""
order_engines.production -- Workflow tracker for products and orders.

Responsibility:
    Track per-product production workflows (department, stages, staff,
    done flag), aggregate them into product- and order-level completion,
    and keep dependent selections consistent when a choice upstream
    changes.  Also provides the order-level edit helpers that enforce the
    mutability rule for each status.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import order_kernel/domain types and kernel exceptions.

Invariants enforced:
    - Workflow members are drawn only from active staff of the workflow's
      department (IneligibleStaffError otherwise).
    - Changing the department clears stages and members; changing the
      stages clears members.
    - A department appears at most once among the workflows of a product.
    - Structural edits are allowed only in PENDING, CONFIRMED and
      IN_PROGRESS; images may be attached in any non-terminal status;
      terminal orders are read-only (OrderLockedError).
    - Directories are passed per call and never retained.

Failure modes:
    - UnknownProductError / UnknownWorkflowError for ids not in the order.
    - DuplicateDepartmentError when a department is reused in a product.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Iterable

from order_kernel.domain.clock import Clock
from order_kernel.domain.directory import Department, ReferenceDirectory, StaffMember
from order_kernel.domain.order import (
    STRUCTURE_EDITABLE_STATUSES,
    ImageRef,
    Order,
    Product,
    Workflow,
)
from order_kernel.exceptions import (
    DuplicateDepartmentError,
    IneligibleStaffError,
    OrderLockedError,
    UnknownProductError,
    UnknownWorkflowError,
)
from order_kernel.logging_config import get_logger

logger = get_logger("engines.production")

_ZERO = Decimal("0")
_ONE = Decimal("1")


# =========================================================================
# Completion
# =========================================================================


def is_product_complete(product: Product) -> bool:
    """True when every workflow of the product is done."""
    return all(wf.is_done for wf in product.workflows)


def is_order_production_complete(order: Order) -> bool:
    return all(is_product_complete(p) for p in order.products)


def _ratio(done: int, total: int) -> Decimal:
    if total == 0:
        return _ZERO
    return Decimal(done) / Decimal(total)


def product_completion_ratio(product: Product) -> Decimal:
    """Done workflows over all workflows, in [0, 1]; 0 without workflows."""
    done = sum(1 for wf in product.workflows if wf.is_done)
    return _ratio(done, len(product.workflows))


def order_completion_ratio(order: Order) -> Decimal:
    workflows = [wf for _, wf in order.iter_workflows()]
    done = sum(1 for wf in workflows if wf.is_done)
    return _ratio(done, len(workflows))


# =========================================================================
# Workflow edits
# =========================================================================


def set_department(workflow: Workflow, department_code: str | None) -> Workflow:
    """Select a department.  Stages and members of the old one are cleared."""
    if department_code == workflow.department_code:
        return workflow
    return replace(
        workflow,
        department_code=department_code,
        stage_codes=(),
        stage_names=(),
        members=(),
    )


def set_stages(
    workflow: Workflow,
    stage_codes: Iterable[str],
    directory: ReferenceDirectory,
) -> Workflow:
    """Select stages, resolving display names; clears members.

    Codes missing from the directory keep the code as their name and are
    reported by the transition engine's reference check.
    """
    codes = tuple(dict.fromkeys(stage_codes))
    names = tuple(directory.stage_name(code) or code for code in codes)
    return replace(workflow, stage_codes=codes, stage_names=names, members=())


def resolve_stage_names(workflow: Workflow, directory: ReferenceDirectory) -> Workflow:
    """Refresh ``stage_names`` from the directory without touching members."""
    names = tuple(directory.stage_name(code) or code for code in workflow.stage_codes)
    if names == workflow.stage_names:
        return workflow
    return replace(workflow, stage_names=names)


def eligible_staff(
    workflow: Workflow,
    directory: ReferenceDirectory,
) -> tuple[StaffMember, ...]:
    """Active staff whose department list contains the workflow's department."""
    return tuple(
        member for member in directory.staff.values()
        if member.is_active and member.belongs_to(workflow.department_code)
    )


def set_members(
    workflow: Workflow,
    members: Iterable[str],
    directory: ReferenceDirectory,
) -> Workflow:
    """Assign staff.  Every id must be eligible for the workflow's department.

    Raises:
        IneligibleStaffError: one or more ids are not eligible.
    """
    requested = tuple(dict.fromkeys(members))
    eligible = {m.staff_id for m in eligible_staff(workflow, directory)}
    rejected = tuple(sid for sid in requested if sid not in eligible)
    if rejected:
        logger.warning(
            "workflow_members_rejected",
            extra={
                "workflow_id": workflow.workflow_id,
                "department_code": workflow.department_code,
                "staff_ids": list(rejected),
            },
        )
        raise IneligibleStaffError(workflow.workflow_id, workflow.department_code, rejected)
    return replace(workflow, members=requested)


def prune_ineligible_members(workflow: Workflow, directory: ReferenceDirectory) -> Workflow:
    """Drop members no longer eligible (e.g. after the staff directory changed)."""
    eligible = {m.staff_id for m in eligible_staff(workflow, directory)}
    kept = tuple(sid for sid in workflow.members if sid in eligible)
    if kept == workflow.members:
        return workflow
    logger.info(
        "workflow_members_pruned",
        extra={
            "workflow_id": workflow.workflow_id,
            "removed": [sid for sid in workflow.members if sid not in eligible],
        },
    )
    return replace(workflow, members=kept)


def set_done(workflow: Workflow, is_done: bool, clock: Clock) -> Workflow:
    return replace(workflow, is_done=is_done, updated_at=clock.now())


def available_departments(
    product: Product,
    workflow_id: str | None,
    directory: ReferenceDirectory,
) -> tuple[Department, ...]:
    """Departments selectable for ``workflow_id``.

    Excludes departments already used by any other workflow of the same
    product.  Pass ``None`` for a workflow that is not yet attached.
    """
    used = {
        wf.department_code for wf in product.workflows
        if wf.workflow_id != workflow_id and wf.department_code is not None
    }
    return tuple(d for d in directory.departments.values() if d.code not in used)


# =========================================================================
# Order-level edits
# =========================================================================


def ensure_structure_editable(order: Order, edit: str) -> None:
    """Raise OrderLockedError unless products/workflows may be restructured."""
    if order.status not in STRUCTURE_EDITABLE_STATUSES:
        raise OrderLockedError(order.code, order.status.value, edit)


def ensure_not_terminal(order: Order, edit: str) -> None:
    if order.is_terminal:
        raise OrderLockedError(order.code, order.status.value, edit)


def _require_product(order: Order, product_id: str) -> Product:
    product = order.product(product_id)
    if product is None:
        raise UnknownProductError(order.code, product_id)
    return product


def _replace_product(order: Order, product: Product) -> Order:
    return replace(
        order,
        products=tuple(
            product if p.product_id == product.product_id else p
            for p in order.products
        ),
    )


def _check_department_unique(product: Product, workflow: Workflow) -> None:
    if workflow.department_code is None:
        return
    for other in product.workflows:
        if other.workflow_id != workflow.workflow_id and other.department_code == workflow.department_code:
            raise DuplicateDepartmentError(product.product_id, workflow.department_code)


def add_product(order: Order, product: Product) -> Order:
    ensure_structure_editable(order, "adding a product")
    return replace(order, products=order.products + (product,))


def remove_product(order: Order, product_id: str) -> Order:
    ensure_structure_editable(order, "removing a product")
    _require_product(order, product_id)
    return replace(
        order,
        products=tuple(p for p in order.products if p.product_id != product_id),
    )


def add_workflow(order: Order, product_id: str, workflow: Workflow) -> Order:
    """Append a workflow to a product.

    Raises:
        OrderLockedError, UnknownProductError, DuplicateDepartmentError,
        ValueError (workflow id already present).
    """
    ensure_structure_editable(order, "adding a workflow")
    product = _require_product(order, product_id)
    if product.workflow(workflow.workflow_id) is not None:
        raise ValueError(
            f"Workflow {workflow.workflow_id} already exists in product {product_id}"
        )
    _check_department_unique(product, workflow)
    return _replace_product(
        order, replace(product, workflows=product.workflows + (workflow,))
    )


def replace_workflow(order: Order, product_id: str, workflow: Workflow) -> Order:
    """Swap in an edited workflow (matched by ``workflow_id``)."""
    ensure_structure_editable(order, "editing a workflow")
    product = _require_product(order, product_id)
    if product.workflow(workflow.workflow_id) is None:
        raise UnknownWorkflowError(product_id, workflow.workflow_id)
    _check_department_unique(product, workflow)
    return _replace_product(
        order,
        replace(
            product,
            workflows=tuple(
                workflow if wf.workflow_id == workflow.workflow_id else wf
                for wf in product.workflows
            ),
        ),
    )


def remove_workflow(order: Order, product_id: str, workflow_id: str) -> Order:
    ensure_structure_editable(order, "removing a workflow")
    product = _require_product(order, product_id)
    if product.workflow(workflow_id) is None:
        raise UnknownWorkflowError(product_id, workflow_id)
    return _replace_product(
        order,
        replace(
            product,
            workflows=tuple(wf for wf in product.workflows if wf.workflow_id != workflow_id),
        ),
    )


def attach_images(
    order: Order,
    product_id: str,
    images: Iterable[ImageRef],
    *,
    completed: bool = False,
) -> Order:
    """Record uploaded images on a product.

    ``completed=False`` appends to the received images, ``True`` to the
    completed-work images.  Images with a uid already present are skipped.
    """
    ensure_not_terminal(order, "attaching images")
    product = _require_product(order, product_id)
    existing = product.images_done if completed else product.images
    seen = {img.uid for img in existing}
    added: list[ImageRef] = []
    for img in images:
        if img.uid not in seen:
            seen.add(img.uid)
            added.append(img)
    if not added:
        return order
    if completed:
        updated = replace(product, images_done=existing + tuple(added))
    else:
        updated = replace(product, images=existing + tuple(added))
    return _replace_product(order, updated)
