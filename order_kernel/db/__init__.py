"""Database layer - engine, declarative base, and the order document table."""

from order_kernel.db.base import Base
from order_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from order_kernel.db.models import OrderDocumentRow

__all__ = [
    "Base",
    "OrderDocumentRow",
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "drop_tables",
    "reset_engine",
]
