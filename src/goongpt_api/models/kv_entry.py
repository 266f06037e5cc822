# src/goongpt_api/models/kv_entry.py
"""SQLAlchemy model backing the hosted key-value store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from goongpt_api.db.session import Base
from goongpt_api.db.time import utcnow


class KeyValueEntry(Base):
    """One JSON document addressed by `(namespace, key)`.

    The composite primary key doubles as the uniqueness constraint that makes
    insert-if-absent claims (wallet and username indexes) atomic.
    """

    __tablename__ = "kv_entry"

    namespace: Mapped[str] = mapped_column(String(32), primary_key=True)
    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
