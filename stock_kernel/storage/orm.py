"""
ORM model for the SQL key-value backend.

Contract:
    One row per namespaced key; the key is the primary key, so two writers
    racing to create the same key collide with an IntegrityError.
    ``version`` starts at 1 and increases by one on every write; the SQL
    backend's compare-and-set is a conditional UPDATE on ``(key, version)``.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base


class KeyValueEntry(Base):
    """Persistent key-value row."""

    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)
