"""
Inventory Models: InventoryItem, InventoryMovement.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Float, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, BigIntPK, TimestampMixin


class InventoryItem(TimestampMixin, Base):
    """
    A stock item. Quantity may go negative: overselling alerts, it is not blocked.
    """

    __tablename__ = "inventory_item"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    category: Mapped[Optional[str]] = mapped_column(Text)
    quantity: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    threshold: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="unit", nullable=False)
    cost_cents: Mapped[Optional[int]] = mapped_column(Integer)

    @property
    def is_low(self) -> bool:
        return self.quantity <= self.threshold

    def __repr__(self) -> str:
        return f"<InventoryItem(id={self.id}, name='{self.name}', quantity={self.quantity})>"


class InventoryMovement(Base):
    """
    One quantity change caused by an order.

    Reversal replays the negated DEPLETION rows of the order, so it undoes
    exactly what depletion did regardless of the strategy used.
    """

    __tablename__ = "inventory_movement"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("pos_order.id"), nullable=False, index=True
    )
    inventory_item_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("inventory_item.id"), nullable=False
    )
    delta: Mapped[float] = mapped_column(Float, nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)  # DEPLETION, REVERSAL
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_inventory_movement_order_kind", "order_id", "kind"),
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryMovement(order_id={self.order_id}, item={self.inventory_item_id}, "
            f"delta={self.delta}, kind={self.kind})>"
        )
