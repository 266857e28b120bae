"""
Module: order_kernel.db.models
Responsibility: ORM row for one persisted order document.

A row holds the complete document at a store path (``orders/<code>``).
``version`` increments on every write or patch so concurrent readers can
tell snapshots apart.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from order_kernel.db.base import Base


class OrderDocumentRow(Base):
    __tablename__ = "order_documents"

    path: Mapped[str] = mapped_column(String(255), primary_key=True)
    body: Mapped[dict[str, Any]] = mapped_column(nullable=False)
    version: Mapped[int] = mapped_column(nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<OrderDocumentRow {self.path} v{self.version}>"
