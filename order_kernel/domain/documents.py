"""
Persisted document codec (``order_kernel.domain.documents``).

Responsibility
--------------
Maps the nested JSON shape stored in the realtime document store to the
immutable order snapshot and back.  Field names follow the store's
camelCase convention; timestamps are epoch milliseconds.

Architecture position
---------------------
**Kernel domain layer** -- pure functions, ZERO I/O.  The store adapters
in ``order_services`` hand raw dicts in and take raw dicts out.

Failure modes
-------------
* ``MalformedDocumentError`` when the code is missing, the status or an
  adjustment kind is unknown, or a nested collection has the wrong type.
* Missing optional fields fall back to UI defaults (empty lists, zero
  amounts, ``False`` flags) instead of failing.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping

from order_kernel.domain.clock import from_epoch_ms, to_epoch_ms
from order_kernel.domain.order import (
    FinancialBreakdown,
    ImageRef,
    Order,
    OrderStatus,
    Product,
    Workflow,
)
from order_kernel.domain.values import (
    AdjustmentKind,
    to_decimal,
    to_minor_units,
    to_store_number,
)
from order_kernel.exceptions import MalformedDocumentError


# =========================================================================
# Serialization
# =========================================================================


def image_to_document(image: ImageRef) -> dict[str, Any]:
    return {"uid": image.uid, "name": image.name, "url": image.url}


def workflow_to_document(workflow: Workflow) -> dict[str, Any]:
    return {
        "departmentCode": workflow.department_code,
        "workflowCode": list(workflow.stage_codes),
        "workflowName": list(workflow.stage_names),
        "members": list(workflow.members),
        "isDone": workflow.is_done,
        "updatedAt": to_epoch_ms(workflow.updated_at),
    }


def product_to_document(product: Product) -> dict[str, Any]:
    return {
        "name": product.name,
        "quantity": product.quantity,
        "price": product.price,
        "images": [image_to_document(i) for i in product.images],
        "imagesDone": [image_to_document(i) for i in product.images_done],
        "workflows": {
            wf.workflow_id: workflow_to_document(wf) for wf in product.workflows
        },
    }


def order_to_document(order: Order) -> dict[str, Any]:
    """Render a full order document (used for ``write``)."""
    doc: dict[str, Any] = {
        "code": order.code,
        "status": order.status.value,
        "customerCode": order.customer_code,
        "customerName": order.customer_name,
        "phone": order.phone,
        "email": order.email,
        "address": order.address,
        "orderDate": to_epoch_ms(order.ordered_at),
        "deliveryDate": to_epoch_ms(order.delivery_at),
        "createdAt": to_epoch_ms(order.created_at),
        "updatedAt": to_epoch_ms(order.updated_at),
        "createdBy": order.created_by,
        "createdByName": order.created_by_name,
        "notes": order.notes,
        "issues": list(order.issues),
        "discount": to_store_number(order.discount),
        "discountType": order.discount_kind.value,
        "shippingFee": order.shipping_fee,
        "deposit": to_store_number(order.deposit),
        "depositType": order.deposit_kind.value,
        "isDepositPaid": order.is_deposit_paid,
        "consultantId": order.consultant_id,
        "consultantName": order.consultant_name,
        "commissionPercentage": to_store_number(order.commission_percentage),
        "products": {p.product_id: product_to_document(p) for p in order.products},
    }
    if order.cached_totals is not None:
        doc.update(breakdown_to_document(order.cached_totals))
    return doc


def breakdown_to_document(breakdown: FinancialBreakdown) -> dict[str, Any]:
    return {
        "subtotal": breakdown.subtotal,
        "discountAmount": breakdown.discount_amount,
        "totalAmount": breakdown.total,
        "depositAmount": breakdown.deposit_amount,
        "remainingAmount": breakdown.remaining,
        "commissionAmount": breakdown.commission_amount,
    }


# =========================================================================
# Parsing
# =========================================================================


def _kind(value: Any, default: AdjustmentKind, path: str) -> AdjustmentKind:
    if value in (None, ""):
        return default
    try:
        return AdjustmentKind(value)
    except ValueError as e:
        raise MalformedDocumentError(path, f"unknown adjustment kind {value!r}") from e


def _adjustment(value: Any) -> Decimal:
    raw = to_decimal(value)
    to_minor_units(raw)  # range check; keeps the raw value
    return raw


def _mapping(value: Any, path: str, what: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise MalformedDocumentError(path, f"{what} must be an object")
    return value


def _images(value: Any, path: str) -> tuple[ImageRef, ...]:
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise MalformedDocumentError(path, "image list must be an array")
    images = []
    for raw in value:
        if not isinstance(raw, Mapping):
            raise MalformedDocumentError(path, "image entry must be an object")
        images.append(ImageRef(
            uid=str(raw.get("uid", "")),
            name=str(raw.get("name", "")),
            url=str(raw.get("url", "")),
        ))
    return tuple(images)


def workflow_from_document(workflow_id: str, data: Mapping[str, Any]) -> Workflow:
    return Workflow(
        workflow_id=workflow_id,
        department_code=data.get("departmentCode"),
        stage_codes=tuple(data.get("workflowCode") or ()),
        stage_names=tuple(data.get("workflowName") or ()),
        members=tuple(data.get("members") or ()),
        is_done=bool(data.get("isDone", False)),
        updated_at=from_epoch_ms(data.get("updatedAt")),
    )


def product_from_document(product_id: str, data: Mapping[str, Any], path: str = "") -> Product:
    product_path = f"{path}/products/{product_id}"
    quantity = data.get("quantity")
    price = data.get("price")
    workflows = _mapping(data.get("workflows"), product_path, "workflows")
    return Product(
        product_id=product_id,
        name=str(data.get("name", "")),
        quantity=int(quantity) if quantity is not None else None,
        price=to_minor_units(price) if price is not None else None,
        images=_images(data.get("images"), product_path),
        images_done=_images(data.get("imagesDone"), product_path),
        workflows=tuple(
            workflow_from_document(wid, _mapping(wf, product_path, "workflow"))
            for wid, wf in workflows.items()
        ),
    )


def _breakdown_from_document(data: Mapping[str, Any]) -> FinancialBreakdown | None:
    if "totalAmount" not in data:
        return None
    return FinancialBreakdown(
        subtotal=to_minor_units(data.get("subtotal")),
        discount_amount=to_minor_units(data.get("discountAmount")),
        total=to_minor_units(data.get("totalAmount")),
        deposit_amount=to_minor_units(data.get("depositAmount")),
        remaining=to_minor_units(data.get("remainingAmount")),
        commission_amount=to_minor_units(data.get("commissionAmount")),
    )


def order_from_document(
    data: Mapping[str, Any],
    path: str = "",
    *,
    default_discount_kind: AdjustmentKind = AdjustmentKind.AMOUNT,
    default_deposit_kind: AdjustmentKind = AdjustmentKind.PERCENTAGE,
) -> Order:
    """
    Parse a persisted order document.

    The default kinds apply to documents that omit ``discountType`` or
    ``depositType``.

    Raises:
        MalformedDocumentError: code missing, unknown status/kind, or wrong
            collection types.
    """
    if not isinstance(data, Mapping):
        raise MalformedDocumentError(path, "document must be an object")
    code = data.get("code")
    if not code:
        raise MalformedDocumentError(path, "missing order code")

    raw_status = data.get("status") or OrderStatus.PENDING.value
    try:
        status = OrderStatus(raw_status)
    except ValueError as e:
        raise MalformedDocumentError(path, f"unknown status {raw_status!r}") from e

    products = _mapping(data.get("products"), path, "products")
    issues = data.get("issues") or ()
    if not isinstance(issues, (list, tuple)):
        raise MalformedDocumentError(path, "issues must be an array")

    try:
        return Order(
            code=str(code),
            status=status,
            customer_code=data.get("customerCode"),
            customer_name=str(data.get("customerName") or ""),
            phone=str(data.get("phone") or ""),
            email=str(data.get("email") or ""),
            address=str(data.get("address") or ""),
            ordered_at=from_epoch_ms(data.get("orderDate")),
            delivery_at=from_epoch_ms(data.get("deliveryDate")),
            created_at=from_epoch_ms(data.get("createdAt")),
            updated_at=from_epoch_ms(data.get("updatedAt")),
            created_by=data.get("createdBy"),
            created_by_name=str(data.get("createdByName") or ""),
            notes=str(data.get("notes") or ""),
            issues=tuple(str(i) for i in issues),
            discount=_adjustment(data.get("discount")),
            discount_kind=_kind(data.get("discountType"), default_discount_kind, path),
            shipping_fee=to_minor_units(data.get("shippingFee")),
            deposit=_adjustment(data.get("deposit")),
            deposit_kind=_kind(data.get("depositType"), default_deposit_kind, path),
            is_deposit_paid=bool(data.get("isDepositPaid", False)),
            consultant_id=data.get("consultantId"),
            consultant_name=str(data.get("consultantName") or ""),
            commission_percentage=_adjustment(data.get("commissionPercentage")),
            products=tuple(
                product_from_document(pid, _mapping(p, path, "product"), path)
                for pid, p in products.items()
            ),
            cached_totals=_breakdown_from_document(data),
        )
    except (TypeError, ValueError, OverflowError) as e:
        raise MalformedDocumentError(path, str(e)) from e
