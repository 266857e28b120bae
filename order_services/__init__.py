"""
order_services -- Store-bound coordinators for the order engines.

Services hold the only I/O in the system: the DocumentStore
collaborators, the lifecycle coordinator and the draft submission
service.  Every decision is delegated to ``order_engines``.
"""

from order_services.draft_service import OrderDraftService
from order_services.lifecycle_service import OrderLifecycleService
from order_services.store import (
    DocumentStore,
    InMemoryDocumentStore,
    SqlDocumentStore,
    init_store_from_settings,
    order_path,
)

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "SqlDocumentStore",
    "init_store_from_settings",
    "order_path",
    "OrderLifecycleService",
    "OrderDraftService",
]
