"""
Declarative base for the relational document store.

Order documents are persisted whole as JSON so the SQL backend holds the
same shape the realtime store does; only the bookkeeping columns (path,
version, updated_at) are relational.  Lowest import target inside
``order_kernel.db``: nothing here may import domain code.
"""

from datetime import datetime
from typing import Any, ClassVar

from sqlalchemy import JSON, BigInteger, DateTime
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    # Timestamps are stored aware; version counters are 64-bit.
    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        int: BigInteger,
        dict[str, Any]: JSON,
    }
