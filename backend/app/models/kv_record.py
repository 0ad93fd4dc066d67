"""KeyValueRecord ORM — one row per logical key holding a JSON value.

Invariants:
    - key is the primary key (one value per key, put overwrites)
    - value is stored as-is (JSON), never partially updated
    - updated_at is refreshed on every put

Design Decisions:
    - JSON column for the whole carnet collection: the collection is the sole aggregate
      root and is always read and written in one piece
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class KeyValueRecord(Base):
    __tablename__ = "kv_records"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
