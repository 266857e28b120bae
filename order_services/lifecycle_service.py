"""
order_services.lifecycle_service -- Store-bound order lifecycle coordinator.

Responsibility:
    Receives status intents (button, board drop, keyboard), stages them
    as proposals, and on confirmation re-validates them against the
    latest store snapshot and persists the resulting patch.  Keeps a
    parsed snapshot per watched order, refreshed from store notifications.

Architecture position:
    Services layer.  Thin coordinator -- delegates every decision to the
    pure engines (``order_engines.reconciliation``,
    ``order_engines.transitions``) and persistence to the DocumentStore.

Invariants enforced:
    - Guards are evaluated against the snapshot current at confirm time.
    - ``cancel`` never touches the store.
    - A failed store write leaves cached snapshots unchanged and keeps the
      proposal staged; the service never retries.
    - Watched snapshots change only through store notifications.

Failure modes:
    - ProposalNotFoundError for unknown, confirmed or cancelled proposals.
    - DocumentNotFoundError when the order has no document.
    - MalformedDocumentError when the stored document cannot be parsed.
    - StoreError propagated from the store.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Hashable
from uuid import UUID

from order_config.schema import EngineSettings
from order_engines.production import ensure_not_terminal
from order_engines.reconciliation import (
    board_move_intent,
    confirm_intent,
    raise_intent,
)
from order_engines.totals import refresh_cached_totals
from order_engines.transitions import GuardExecutor
from order_engines.views import OrderView, derive_view
from order_kernel.domain.clock import Clock, SystemClock
from order_kernel.domain.directory import ReferenceDirectory
from order_kernel.domain.documents import order_from_document, order_to_document
from order_kernel.domain.dtos import (
    ConfirmationFields,
    IntentSource,
    PendingConfirmation,
    TransitionDecision,
)
from order_kernel.domain.order import Order, OrderStatus
from order_kernel.exceptions import (
    DocumentNotFoundError,
    ProposalNotFoundError,
    StoreError,
)
from order_kernel.logging_config import LogContext, get_logger
from order_services.store import Document, DocumentStore, Unsubscribe, order_path

logger = get_logger("services.lifecycle")


class OrderLifecycleService:
    """Coordinates status intents, confirmation and persistence."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        clock: Clock | None = None,
        directory: ReferenceDirectory | None = None,
        settings: EngineSettings | None = None,
        executor: GuardExecutor | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._directory = directory
        self._settings = settings or EngineSettings()
        self._executor = executor
        self._pending: dict[UUID, PendingConfirmation] = {}
        self._snapshots: dict[str, Order] = {}
        self._subscriptions: dict[str, Unsubscribe] = {}

    # ------------------------------------------------------------------
    # Directory
    # ------------------------------------------------------------------

    @property
    def directory(self) -> ReferenceDirectory | None:
        return self._directory

    def set_directory(self, directory: ReferenceDirectory | None) -> None:
        """Swap the reference directory used by later confirmations."""
        self._directory = directory

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def path(self, code: str) -> str:
        return order_path(self._settings.store.orders_path, code)

    def _parse(self, document: Document, path: str) -> Order:
        adjustments = self._settings.adjustments
        return order_from_document(
            document,
            path,
            default_discount_kind=adjustments.default_discount_kind,
            default_deposit_kind=adjustments.default_deposit_kind,
        )

    def watch(self, code: str) -> Unsubscribe:
        """Keep a parsed snapshot of ``code`` in sync with the store."""
        if code in self._subscriptions:
            return self._subscriptions[code]
        path = self.path(code)

        def _on_change(document: Document | None) -> None:
            if document is None:
                self._snapshots.pop(code, None)
                logger.info("order_snapshot_removed", extra={"order_code": code})
                return
            self._snapshots[code] = self._parse(document, path)
            logger.debug(
                "order_snapshot_updated",
                extra={"order_code": code, "status": self._snapshots[code].status.value},
            )

        unsubscribe = self._store.subscribe(path, _on_change)

        def _unwatch() -> None:
            unsubscribe()
            self._subscriptions.pop(code, None)
            self._snapshots.pop(code, None)

        self._subscriptions[code] = _unwatch
        return _unwatch

    def snapshot(self, code: str) -> Order:
        """Latest snapshot: the watched copy, else a fresh store read."""
        if code in self._subscriptions:
            order = self._snapshots.get(code)
            if order is None:
                raise DocumentNotFoundError(self.path(code))
            return order
        path = self.path(code)
        document = self._store.read(path)
        if document is None:
            raise DocumentNotFoundError(path)
        return self._parse(document, path)

    def view(self, code: str) -> OrderView:
        return derive_view(
            self.snapshot(code), self._settings.bounds, currency=self._settings.currency,
        )

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def on_intent(
        self,
        code: str,
        target: OrderStatus | str,
        source: IntentSource = IntentSource.BUTTON,
    ) -> PendingConfirmation:
        """Stage a proposed status change for ``code``."""
        order = self.snapshot(code)
        pending = raise_intent(order, target, clock=self._clock, source=source)
        self._pending[pending.proposal_id] = pending
        return pending

    def on_board_drop(
        self,
        code: str,
        source_column: Hashable,
        destination_column: Hashable,
    ) -> PendingConfirmation | None:
        """Stage an intent from a board drop; None when the drop is a no-op."""
        order = self.snapshot(code)
        pending = board_move_intent(order, source_column, destination_column, clock=self._clock)
        if pending is not None:
            self._pending[pending.proposal_id] = pending
        return pending

    def pending(self, code: str | None = None) -> tuple[PendingConfirmation, ...]:
        return tuple(
            p for p in self._pending.values()
            if code is None or p.order_code == code
        )

    def cancel(self, proposal_id: UUID) -> PendingConfirmation:
        """Discard a staged proposal.  The store is not touched."""
        pending = self._pending.pop(proposal_id, None)
        if pending is None:
            raise ProposalNotFoundError(proposal_id)
        logger.info(
            "status_intent_cancelled",
            extra={"proposal_id": str(proposal_id), "order_code": pending.order_code},
        )
        return pending

    def confirm(
        self,
        proposal_id: UUID,
        extra: ConfirmationFields | None = None,
    ) -> TransitionDecision:
        """Re-validate a staged proposal and persist it when accepted.

        A rejected decision discards the proposal.  A StoreError keeps it
        staged so the caller may confirm again.
        """
        pending = self._pending.get(proposal_id)
        if pending is None:
            raise ProposalNotFoundError(proposal_id)

        with LogContext.bind(order_code=pending.order_code, proposal_id=proposal_id):
            current = self.snapshot(pending.order_code)
            decision = confirm_intent(
                pending,
                current,
                extra,
                clock=self._clock,
                directory=self._directory,
                executor=self._executor,
                bounds=self._settings.bounds,
            )
            if not decision.accepted:
                del self._pending[proposal_id]
                logger.info(
                    "status_intent_rejected",
                    extra={
                        "to_status": pending.proposed_status.value,
                        "reason": decision.reason,
                        "failure_kind": decision.failure.kind.value,
                    },
                )
                return decision

            try:
                self._store.patch(self.path(pending.order_code), decision.patch.to_document())
            except StoreError:
                logger.error(
                    "status_patch_failed",
                    extra={"to_status": pending.proposed_status.value},
                    exc_info=True,
                )
                raise

            del self._pending[proposal_id]
            logger.info(
                "status_intent_confirmed",
                extra={
                    "from_status": decision.from_status.value,
                    "to_status": decision.to_status.value,
                },
            )
            return decision

    # ------------------------------------------------------------------
    # Content edits
    # ------------------------------------------------------------------

    def apply_edit(self, code: str, edit: Callable[[Order], Order]) -> Order:
        """Apply a pure edit to the latest snapshot and write the result.

        ``edit`` is one of the production helpers (it enforces the
        mutability rule itself).  Cached totals are refreshed and the
        document is written whole.
        """
        current = self.snapshot(code)
        ensure_not_terminal(current, "editing")
        edited = edit(current)
        if edited is current:
            return current
        if edited.code != current.code:
            raise ValueError(f"Edit changed order code {current.code} to {edited.code}")
        updated = refresh_cached_totals(
            replace(edited, updated_at=self._clock.now()),
            self._settings.bounds,
        )
        self._store.write(self.path(code), order_to_document(updated))
        logger.info("order_edited", extra={"order_code": code})
        return updated
