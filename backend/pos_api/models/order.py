"""
Order Models: Order, OrderItem.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import OrderStatus, OrderType
from .base import Base, BigIntPK

if TYPE_CHECKING:
    from .billing import Payment


class Order(Base):
    """
    A customer order.

    Ids are UUID strings generated by the terminal so an order captured
    offline keeps its identity when replayed. Orders are never deleted;
    terminal statuses are retained for audit.
    """

    __tablename__ = "pos_order"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    status: Mapped[str] = mapped_column(
        String(20), default=OrderStatus.PENDING, nullable=False, index=True
    )
    order_type: Mapped[str] = mapped_column(
        String(20), default=OrderType.DINE_IN, nullable=False
    )

    # Money (cents)
    subtotal_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    tax_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    tip_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    service_charge_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    food_sales_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    drink_sales_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    payment_method: Mapped[Optional[str]] = mapped_column(String(20))

    table_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("restaurant_table.id"), index=True
    )
    employee_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("employee.id"), index=True
    )
    guest_count: Mapped[Optional[int]] = mapped_column(Integer)

    # Delivery metadata
    customer_name: Mapped[Optional[str]] = mapped_column(Text)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(40))
    delivery_address: Mapped[Optional[str]] = mapped_column(Text)

    # Set once inventory has been depleted; reversal only runs when True
    was_depleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Incremented on every status transition
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    payments: Mapped[list["Payment"]] = relationship(
        back_populates="order",
        order_by="Payment.id",
    )

    __table_args__ = (
        CheckConstraint("total_cents >= 0", name="chk_order_total_non_negative"),
        CheckConstraint("tip_cents >= 0", name="chk_order_tip_non_negative"),
        Index("ix_pos_order_table_status", "table_id", "status"),
        Index("ix_pos_order_employee_created", "employee_id", "created_at"),
    )

    @property
    def paid_cents(self) -> int:
        return sum(p.amount_cents for p in self.payments)

    @property
    def is_terminal(self) -> bool:
        return self.status in OrderStatus.TERMINAL

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, status='{self.status}', total_cents={self.total_cents})>"


class OrderItem(Base):
    """
    A persisted order line.

    `cart_id` is the line identity carried over from the terminal cart; the
    same dish with different modifiers is a separate line.
    """

    __tablename__ = "order_item"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("pos_order.id"), nullable=False, index=True
    )
    cart_id: Mapped[str] = mapped_column(String(36), nullable=False)
    menu_item_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("menu_item.id"), index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(Text, default="", nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    modifiers_json: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    seat: Mapped[Optional[int]] = mapped_column(Integer)

    order: Mapped["Order"] = relationship(back_populates="items")

    __table_args__ = (
        UniqueConstraint("order_id", "cart_id", name="uq_order_item_cart_line"),
        CheckConstraint("quantity > 0", name="chk_order_item_quantity_positive"),
    )

    @property
    def modifiers(self) -> list[dict[str, Any]]:
        if not self.modifiers_json:
            return []
        return json.loads(self.modifiers_json)

    @modifiers.setter
    def modifiers(self, value: list[dict[str, Any]] | None) -> None:
        self.modifiers_json = json.dumps(value) if value else None

    @property
    def line_total_cents(self) -> int:
        modifier_cents = sum(m.get("price_cents", 0) for m in self.modifiers)
        return (self.unit_price_cents + modifier_cents) * self.quantity

    def __repr__(self) -> str:
        return f"<OrderItem(order_id={self.order_id}, name='{self.name}', quantity={self.quantity})>"
