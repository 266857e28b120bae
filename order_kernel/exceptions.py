"""
Typed Exception Hierarchy for the Order Kernel.

===============================================================================
WHAT IS AN EXCEPTION HERE
===============================================================================

Transition outcomes are NOT exceptions.  A rejected status change
(invalid sequence, failed guard, broken structural invariant) is returned
as a ``TransitionDecision`` value so callers must handle the negative case
explicitly.  Exceptions are reserved for boundary and programming errors:

  - a persisted document that cannot be parsed
  - a store write that failed
  - an edit attempted on a locked order
  - a confirmation for a proposal that no longer exists

Every exception carries a ``code`` class attribute (machine-readable) and
stores its context as attributes (never only in the message).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    OrderKernelError (base)
    |
    +-- DocumentError
    |   +-- MalformedDocumentError
    |   +-- DocumentNotFoundError
    |
    +-- StoreError
    |
    +-- EditError
    |   +-- OrderLockedError
    |   +-- UnknownProductError
    |   +-- UnknownWorkflowError
    |   +-- IneligibleStaffError
    |   +-- DuplicateDepartmentError
    |
    +-- ReconciliationError
    |   +-- ProposalNotFoundError
    |   +-- ProposalMismatchError
    |
    +-- DraftRejectedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                      | When Raised
----------------|---------------------------|-------------------------------------------
Document        | MALFORMED_DOCUMENT        | Persisted order cannot be parsed
                | DOCUMENT_NOT_FOUND        | No document at the requested path
----------------|---------------------------|-------------------------------------------
Store           | STORE_ERROR               | Write/read against the store failed
----------------|---------------------------|-------------------------------------------
Edit            | ORDER_LOCKED              | Edit not permitted in current status
                | UNKNOWN_PRODUCT           | Product id not in order
                | UNKNOWN_WORKFLOW          | Workflow id not in product
                | INELIGIBLE_STAFF          | Staff not in workflow's department
                | DUPLICATE_DEPARTMENT      | Department already used in product
----------------|---------------------------|-------------------------------------------
Reconciliation  | PROPOSAL_NOT_FOUND        | Confirm/cancel of unknown proposal
                | PROPOSAL_MISMATCH         | Proposal confirmed against other order
----------------|---------------------------|-------------------------------------------
Draft           | DRAFT_REJECTED            | Submitted draft failed validation
"""

from __future__ import annotations

from typing import Any


class OrderKernelError(Exception):
    """
    Base exception for all order kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "ORDER_KERNEL_ERROR"


# Document-related exceptions


class DocumentError(OrderKernelError):
    """Base exception for persisted-document errors."""

    code: str = "DOCUMENT_ERROR"


class MalformedDocumentError(DocumentError):
    """Persisted order document cannot be mapped to the domain model."""

    code: str = "MALFORMED_DOCUMENT"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed order document at {path}: {reason}")


class DocumentNotFoundError(DocumentError):
    """No document exists at the requested store path."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Document not found: {path}")


# Store exceptions


class StoreError(OrderKernelError):
    """
    A store read or write failed.

    The engine never retries.  The in-memory snapshot is left unchanged
    and the caller decides whether to retry or notify the user.
    """

    code: str = "STORE_ERROR"

    def __init__(self, path: str, operation: str, reason: str):
        self.path = path
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store {operation} failed for {path}: {reason}")


# Edit exceptions


class EditError(OrderKernelError):
    """Base exception for rejected order edits."""

    code: str = "EDIT_ERROR"


class OrderLockedError(EditError):
    """The order's status no longer permits this kind of edit."""

    code: str = "ORDER_LOCKED"

    def __init__(self, order_code: str, status: str, edit: str):
        self.order_code = order_code
        self.status = status
        self.edit = edit
        super().__init__(
            f"Order {order_code} is {status}; {edit} is no longer permitted"
        )


class UnknownProductError(EditError):
    """Product id is not part of the order."""

    code: str = "UNKNOWN_PRODUCT"

    def __init__(self, order_code: str, product_id: str):
        self.order_code = order_code
        self.product_id = product_id
        super().__init__(f"Order {order_code} has no product {product_id}")


class UnknownWorkflowError(EditError):
    """Workflow id is not part of the product."""

    code: str = "UNKNOWN_WORKFLOW"

    def __init__(self, product_id: str, workflow_id: str):
        self.product_id = product_id
        self.workflow_id = workflow_id
        super().__init__(f"Product {product_id} has no workflow {workflow_id}")


class IneligibleStaffError(EditError):
    """Staff member does not belong to the workflow's department."""

    code: str = "INELIGIBLE_STAFF"

    def __init__(self, workflow_id: str, department_code: str | None, staff_ids: tuple[str, ...]):
        self.workflow_id = workflow_id
        self.department_code = department_code
        self.staff_ids = staff_ids
        super().__init__(
            f"Staff {', '.join(staff_ids)} not eligible for workflow "
            f"{workflow_id} (department {department_code})"
        )


class DuplicateDepartmentError(EditError):
    """Department already assigned to another workflow of the same product."""

    code: str = "DUPLICATE_DEPARTMENT"

    def __init__(self, product_id: str, department_code: str):
        self.product_id = product_id
        self.department_code = department_code
        super().__init__(
            f"Department {department_code} already used in product {product_id}"
        )


# Reconciliation exceptions


class ReconciliationError(OrderKernelError):
    """Base exception for the confirm/cancel handshake."""

    code: str = "RECONCILIATION_ERROR"


class ProposalNotFoundError(ReconciliationError):
    """Proposal was never staged, or was already confirmed or cancelled."""

    code: str = "PROPOSAL_NOT_FOUND"

    def __init__(self, proposal_id: Any):
        self.proposal_id = proposal_id
        super().__init__(f"No staged proposal {proposal_id}")


class ProposalMismatchError(ReconciliationError):
    """Proposal is being confirmed against a snapshot of a different order."""

    code: str = "PROPOSAL_MISMATCH"

    def __init__(self, proposal_order_code: str, snapshot_order_code: str):
        self.proposal_order_code = proposal_order_code
        self.snapshot_order_code = snapshot_order_code
        super().__init__(
            f"Proposal for order {proposal_order_code} confirmed against "
            f"snapshot of order {snapshot_order_code}"
        )


# Draft exceptions


class DraftRejectedError(OrderKernelError):
    """Submitted draft failed validation; nothing was written."""

    code: str = "DRAFT_REJECTED"

    def __init__(self, order_code: str, errors: tuple[Any, ...]):
        self.order_code = order_code
        self.errors = errors
        super().__init__(
            f"Draft {order_code} rejected: {len(errors)} validation error(s)"
        )
