"""
Terminal-local offline queue model.

Lives in its own SQLite database (settings.offline_queue_url) with its own
declarative base, so it never shares metadata with the backing store.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from shared.config.constants import QueueStatus


class LocalBase(DeclarativeBase):
    """Base class for terminal-local models."""

    pass


class QueuedOrder(LocalBase):
    """
    An order captured while the backing store was unreachable.

    The autoincrement id gives FIFO replay order.
    """

    __tablename__ = "offline_order"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=QueueStatus.PENDING, nullable=False
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_offline_order_status_id", "status", "id"),
    )

    def __repr__(self) -> str:
        return f"<QueuedOrder(id={self.id}, order_id={self.order_id}, status='{self.status}')>"
