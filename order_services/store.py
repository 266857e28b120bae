"""
order_services.store -- Document store collaborators.

Responsibility:
    Defines the narrow store interface the lifecycle services depend on
    (read, subscribe, patch, write on path-addressed JSON documents) and
    two implementations: an in-memory store for tests and demos, and a
    SQLAlchemy-backed store keeping one JSON row per path.

Architecture position:
    Services layer.  May import from order_kernel (db, exceptions,
    logging).  The engines never see a store.

Invariants enforced:
    - Writes to one path are atomic: a document is replaced or patched
      whole, never partially.
    - Subscribers are notified synchronously after the write commits, in
      write order, with a private copy of the new document.
    - ``subscribe`` delivers the current value immediately.

Failure modes:
    - DocumentNotFoundError when patching a path with no document.
    - StoreError wrapping any database failure (SqlDocumentStore).  No
      retries are attempted.
"""

from __future__ import annotations

import copy
from collections import defaultdict
from typing import Any, Callable, Protocol, runtime_checkable

from sqlalchemy.exc import SQLAlchemyError

from order_config.schema import EngineSettings
from order_kernel.db.engine import create_tables, init_engine_from_url, session_scope
from order_kernel.db.models import OrderDocumentRow
from order_kernel.domain.clock import Clock, SystemClock
from order_kernel.exceptions import DocumentNotFoundError, StoreError
from order_kernel.logging_config import get_logger

logger = get_logger("services.store")

Document = dict[str, Any]
ChangeCallback = Callable[[Document | None], None]
Unsubscribe = Callable[[], None]


def order_path(orders_path: str, code: str) -> str:
    """Store path of one order document, e.g. ``orders/ORD123456ABC``."""
    return f"{orders_path.strip('/')}/{code}"


@runtime_checkable
class DocumentStore(Protocol):
    """Realtime document store: path-addressed JSON with change notification."""

    def read(self, path: str) -> Document | None: ...

    def subscribe(self, path: str, on_change: ChangeCallback) -> Unsubscribe: ...

    def patch(self, path: str, partial: Document) -> None: ...

    def write(self, path: str, document: Document) -> None: ...


class _SubscriberRegistry:
    """Per-path callback lists shared by the store implementations."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[ChangeCallback]] = defaultdict(list)

    def add(self, path: str, on_change: ChangeCallback) -> Unsubscribe:
        self._subscribers[path].append(on_change)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(path, [])
            if on_change in callbacks:
                callbacks.remove(on_change)

        return unsubscribe

    def notify(self, path: str, document: Document | None) -> None:
        for callback in list(self._subscribers.get(path, ())):
            callback(copy.deepcopy(document))

    def count(self, path: str) -> int:
        return len(self._subscribers.get(path, ()))


class InMemoryDocumentStore:
    """Dict-backed store.  Every read and notification hands out a copy."""

    def __init__(self, documents: dict[str, Document] | None = None) -> None:
        self._documents: dict[str, Document] = copy.deepcopy(documents or {})
        self._subscribers = _SubscriberRegistry()

    def read(self, path: str) -> Document | None:
        doc = self._documents.get(path)
        return copy.deepcopy(doc) if doc is not None else None

    def subscribe(self, path: str, on_change: ChangeCallback) -> Unsubscribe:
        unsubscribe = self._subscribers.add(path, on_change)
        on_change(self.read(path))
        return unsubscribe

    def patch(self, path: str, partial: Document) -> None:
        current = self._documents.get(path)
        if current is None:
            raise DocumentNotFoundError(path)
        updated = {**current, **copy.deepcopy(partial)}
        self._documents[path] = updated
        logger.debug("document_patched", extra={"path": path, "fields": sorted(partial)})
        self._subscribers.notify(path, updated)

    def write(self, path: str, document: Document) -> None:
        self._documents[path] = copy.deepcopy(document)
        logger.debug("document_written", extra={"path": path})
        self._subscribers.notify(path, self._documents[path])

    def subscriber_count(self, path: str) -> int:
        return self._subscribers.count(path)


class SqlDocumentStore:
    """SQLAlchemy-backed store: one ``OrderDocumentRow`` per path.

    Requires ``order_kernel.db.init_engine_from_url`` and
    ``create_tables`` to have run.  Notifications are delivered in-process
    after each committed transaction.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._subscribers = _SubscriberRegistry()

    def read(self, path: str) -> Document | None:
        try:
            with session_scope() as session:
                row = session.get(OrderDocumentRow, path)
                return copy.deepcopy(row.body) if row is not None else None
        except SQLAlchemyError as e:
            raise StoreError(path, "read", str(e)) from e

    def subscribe(self, path: str, on_change: ChangeCallback) -> Unsubscribe:
        unsubscribe = self._subscribers.add(path, on_change)
        on_change(self.read(path))
        return unsubscribe

    def patch(self, path: str, partial: Document) -> None:
        try:
            with session_scope() as session:
                row = session.get(OrderDocumentRow, path, with_for_update=True)
                if row is None:
                    raise DocumentNotFoundError(path)
                body = {**row.body, **copy.deepcopy(partial)}
                row.body = body
                row.version += 1
                row.updated_at = self._clock.now()
                version = row.version
        except SQLAlchemyError as e:
            raise StoreError(path, "patch", str(e)) from e
        logger.debug(
            "document_patched",
            extra={"path": path, "fields": sorted(partial), "version": version},
        )
        self._subscribers.notify(path, body)

    def write(self, path: str, document: Document) -> None:
        body = copy.deepcopy(document)
        try:
            with session_scope() as session:
                row = session.get(OrderDocumentRow, path, with_for_update=True)
                if row is None:
                    row = OrderDocumentRow(
                        path=path, body=body, version=1, updated_at=self._clock.now(),
                    )
                    session.add(row)
                else:
                    row.body = body
                    row.version += 1
                    row.updated_at = self._clock.now()
                version = row.version
        except SQLAlchemyError as e:
            raise StoreError(path, "write", str(e)) from e
        logger.debug("document_written", extra={"path": path, "version": version})
        self._subscribers.notify(path, body)

    def version(self, path: str) -> int | None:
        with session_scope() as session:
            row = session.get(OrderDocumentRow, path)
            return row.version if row is not None else None


def init_store_from_settings(
    settings: EngineSettings, clock: Clock | None = None,
) -> SqlDocumentStore:
    """Open ``settings.store.database_url``, create the table and return a store."""
    init_engine_from_url(settings.store.database_url)
    create_tables()
    return SqlDocumentStore(clock=clock)
