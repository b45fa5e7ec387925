"""
Catalog Models: MenuCategory, MenuItem.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from sqlalchemy import BigInteger, Boolean, CheckConstraint, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntPK, TimestampMixin


class MenuCategory(TimestampMixin, Base):
    """Menu category; its name drives kitchen/bar routing."""

    __tablename__ = "menu_category"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    items: Mapped[list["MenuItem"]] = relationship(back_populates="category")

    def __repr__(self) -> str:
        return f"<MenuCategory(id={self.id}, name='{self.name}')>"


class MenuItem(TimestampMixin, Base):
    """
    A sellable menu item.

    `recipe` is a JSON list of {"inventory_item_id": int, "quantity": float};
    an empty recipe means inventory is depleted by name match instead.
    """

    __tablename__ = "menu_item"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    category_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("menu_category.id"), index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    recipe_json: Mapped[Optional[str]] = mapped_column(Text)
    # 86'd items are flagged unavailable when an ingredient runs out
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    category: Mapped[Optional["MenuCategory"]] = relationship(back_populates="items")

    __table_args__ = (
        CheckConstraint("price_cents >= 0", name="chk_menu_item_price_non_negative"),
        Index("ix_menu_item_category_available", "category_id", "is_available"),
    )

    @property
    def category_name(self) -> str:
        return self.category.name if self.category else ""

    @property
    def recipe(self) -> list[dict[str, Any]]:
        if not self.recipe_json:
            return []
        return json.loads(self.recipe_json)

    @recipe.setter
    def recipe(self, value: list[dict[str, Any]] | None) -> None:
        self.recipe_json = json.dumps(value) if value else None

    def __repr__(self) -> str:
        return f"<MenuItem(id={self.id}, name='{self.name}', price_cents={self.price_cents})>"
