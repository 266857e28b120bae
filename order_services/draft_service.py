"""
order_services.draft_service -- Draft submission.

Responsibility:
    Validates an order draft, normalises it (code, timestamps, stage
    names, cached totals, automatic issues) and writes the full document
    to the store.

Architecture position:
    Services layer.  Delegates validation and normalisation to
    ``order_engines.drafts``; persistence to the DocumentStore.

Failure modes:
    - DraftRejectedError carrying every validation error; nothing is
      written.
    - DraftRejectedError when a new order is not PENDING or a resubmit
      changes the stored status; OrderLockedError when the stored order
      is terminal.
    - StoreError propagated from the store.
"""

from __future__ import annotations

import random
from dataclasses import replace
from typing import Any

from order_config.schema import EngineSettings
from order_engines.drafts import generate_order_code, prepare_submission, validate_draft
from order_kernel.domain.clock import Clock, SystemClock
from order_kernel.domain.directory import ReferenceDirectory
from order_kernel.domain.documents import order_from_document, order_to_document
from order_kernel.domain.dtos import ValidationError
from order_kernel.domain.order import Order, OrderStatus
from order_kernel.exceptions import DraftRejectedError, OrderLockedError
from order_kernel.logging_config import LogContext, get_logger
from order_services.store import DocumentStore, order_path

logger = get_logger("services.drafts")

# Attempts at finding an unused generated code before giving up.
MAX_CODE_ATTEMPTS = 5


class OrderDraftService:
    def __init__(
        self,
        store: DocumentStore,
        *,
        clock: Clock | None = None,
        directory: ReferenceDirectory | None = None,
        settings: EngineSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._directory = directory
        self._settings = settings or EngineSettings()
        self._rng = rng or random.Random()

    def _path(self, code: str) -> str:
        return order_path(self._settings.store.orders_path, code)

    def _unused_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_order_code(
                self._clock, self._rng, self._settings.drafts.code_prefix,
            )
            if self._store.read(self._path(code)) is None:
                return code
            logger.warning("order_code_collision", extra={"order_code": code})
        raise RuntimeError(f"No unused order code after {MAX_CODE_ATTEMPTS} attempts")

    def new_draft(self, **fields: Any) -> Order:
        """Blank PENDING order carrying the configured default adjustment kinds."""
        adjustments = self._settings.adjustments
        fields.setdefault("discount_kind", adjustments.default_discount_kind)
        fields.setdefault("deposit_kind", adjustments.default_deposit_kind)
        return Order(code=fields.pop("code", ""), **fields)

    def _check_status(self, order: Order) -> None:
        """Drafts never move an order along the lifecycle.

        New orders start PENDING; a resubmitted order keeps its stored
        status, and terminal orders are not rewritten at all.
        """
        document = self._store.read(self._path(order.code)) if order.code else None
        if document is None:
            if order.status is not OrderStatus.PENDING:
                raise DraftRejectedError(order.code, (
                    ValidationError(
                        code="new_order_not_pending",
                        message="A new order must start as pending",
                        field="status",
                        details={"submitted": order.status.value},
                    ),
                ))
            return

        stored = order_from_document(document, self._path(order.code))
        if stored.is_terminal:
            raise OrderLockedError(order.code, stored.status.value, "resubmitting the order")
        if stored.status is not order.status:
            raise DraftRejectedError(order.code, (
                ValidationError(
                    code="status_changed",
                    message="Status changes go through the lifecycle service",
                    field="status",
                    details={"stored": stored.status.value, "submitted": order.status.value},
                ),
            ))

    def submit(self, order: Order) -> Order:
        """Validate, normalise and write ``order``; return what was written.

        Raises:
            DraftRejectedError: the draft failed validation or tried to
                change the stored status.
            OrderLockedError: the stored order is completed or cancelled.
        """
        self._check_status(order)
        bounds = self._settings.bounds
        result = validate_draft(order, bounds)
        if not result.is_valid:
            raise DraftRejectedError(order.code, result.errors)

        if not order.code:
            order = replace(order, code=self._unused_code())

        prepared = prepare_submission(
            order,
            clock=self._clock,
            directory=self._directory,
            bounds=bounds,
            rng=self._rng,
            code_prefix=self._settings.drafts.code_prefix,
            awaiting_images_issue=self._settings.drafts.awaiting_images_issue,
        )
        with LogContext.bind(order_code=prepared.code):
            self._store.write(self._path(prepared.code), order_to_document(prepared))
            logger.info(
                "order_draft_submitted",
                extra={
                    "status": prepared.status.value,
                    "product_count": len(prepared.products),
                    "total": prepared.cached_totals.total if prepared.cached_totals else 0,
                    "issues": list(prepared.issues),
                },
            )
        return prepared
