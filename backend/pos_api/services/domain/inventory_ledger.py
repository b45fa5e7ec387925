"""
Inventory Ledger.

Depletes stock when an order completes and reverses it on void/refund.

Strategy per order line:
- the menu item has a recipe: decrement each ingredient by
  `quantity_per_unit * line quantity`;
- otherwise: degraded-mode name match (case-insensitive substring of the
  line name in the inventory item name, lowest id wins) decremented by the
  line quantity.

Every change is recorded as an InventoryMovement, and reversal replays the
negated DEPLETION rows, so deplete-then-reverse restores quantities exactly
whichever strategy was used. Nothing here commits: callers run depletion
inside the completion transaction so it is all-or-nothing per order.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_api.models import InventoryItem, InventoryMovement, MenuItem, Order, OrderItem
from shared.config.constants import MovementKind
from shared.config.logging import inventory_logger as logger
from shared.utils.exceptions import ConflictError, NotFoundError
from shared.utils.validators import escape_like_pattern


def _exact(value: float | int) -> Decimal:
    """Decimal from the shortest repr, so 0.1 stays 0.1 rather than its binary expansion."""
    return Decimal(repr(float(value)))


def low_stock_alert(item: InventoryItem) -> str:
    return f"LOW STOCK: {item.name} ({item.quantity:.1f} {item.unit} left)"


def out_of_stock_alert(item: InventoryItem) -> str:
    return f"86'd: {item.name}"


class InventoryLedger:
    """
    Domain service for inventory depletion and reversal.
    """

    def __init__(self, db: Session):
        self._db = db

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def _lock_item(self, inventory_item_id: int) -> InventoryItem | None:
        return self._db.scalar(
            select(InventoryItem)
            .where(InventoryItem.id == inventory_item_id)
            .with_for_update()
        )

    def match_by_name(self, name: str, lock: bool = True) -> InventoryItem | None:
        """First inventory item whose name contains `name` (case-insensitive)."""
        query = (
            select(InventoryItem)
            .where(InventoryItem.name.ilike(f"%{escape_like_pattern(name)}%", escape="\\"))
            .order_by(InventoryItem.id)
            .limit(1)
        )
        if lock:
            query = query.with_for_update()
        return self._db.scalar(query)

    def list_low_stock(self) -> list[InventoryItem]:
        return list(self._db.scalars(
            select(InventoryItem)
            .where(InventoryItem.quantity <= InventoryItem.threshold)
            .order_by(InventoryItem.name)
        ).all())

    # -------------------------------------------------------------------------
    # Adjustments
    # -------------------------------------------------------------------------

    def _apply(
        self,
        order_id: str,
        item: InventoryItem,
        delta: Decimal,
        kind: str,
    ) -> None:
        """Apply one quantity change and record it.

        The sum is taken in decimal so that adding a delta and later its
        negation returns the stored quantity unchanged, however many places
        the stock or the recipe carries.
        """
        item.quantity = float(_exact(item.quantity) + delta)
        self._db.add(
            InventoryMovement(
                order_id=order_id,
                inventory_item_id=item.id,
                delta=float(delta),
                kind=kind,
            )
        )
        self._db.flush()

    def _check_thresholds(self, item: InventoryItem, alerts: list[str]) -> bool:
        """Append alerts for `item`; returns True when it ran out."""
        if item.quantity <= item.threshold:
            alerts.append(low_stock_alert(item))
        if item.quantity <= 0:
            alerts.append(out_of_stock_alert(item))
            return True
        return False

    def _mark_unavailable(self, inventory_item_id: int, fallback_menu_item: MenuItem | None) -> None:
        """86 every menu item whose recipe uses the exhausted ingredient."""
        menu_items = self._db.scalars(
            select(MenuItem).where(MenuItem.recipe_json.is_not(None), MenuItem.is_available.is_(True))
        ).all()
        flagged = [
            m for m in menu_items
            if any(int(ing["inventory_item_id"]) == inventory_item_id for ing in m.recipe)
        ]
        if fallback_menu_item is not None and fallback_menu_item.is_available:
            flagged.append(fallback_menu_item)

        for menu_item in flagged:
            menu_item.is_available = False
            logger.warning(
                "Menu item 86'd",
                menu_item_id=menu_item.id,
                menu_item=menu_item.name,
                inventory_item_id=inventory_item_id,
            )

    def _deplete_line(self, order: Order, line: OrderItem, alerts: list[str]) -> None:
        menu_item = self._db.get(MenuItem, line.menu_item_id) if line.menu_item_id else None
        recipe = menu_item.recipe if menu_item else []

        if recipe:
            for ingredient in recipe:
                inventory_item_id = int(ingredient["inventory_item_id"])
                item = self._lock_item(inventory_item_id)
                if item is None:
                    raise NotFoundError(
                        "Inventory item", inventory_item_id, order_id=order.id, menu_item_id=menu_item.id
                    )
                self._apply(
                    order.id, item, -_exact(ingredient["quantity"]) * line.quantity, MovementKind.DEPLETION
                )
                if self._check_thresholds(item, alerts):
                    self._mark_unavailable(item.id, None)
            return

        item = self.match_by_name(line.name)
        if item is None:
            logger.debug("No inventory match for line", order_id=order.id, line=line.name)
            return
        self._apply(order.id, item, -Decimal(line.quantity), MovementKind.DEPLETION)
        if self._check_thresholds(item, alerts):
            self._mark_unavailable(item.id, menu_item)

    def deplete(self, order: Order) -> list[str]:
        """
        Deplete inventory for every line of `order`.

        Returns the low-stock / out-of-stock alerts raised. Raises
        ConflictError if the order was already depleted.
        """
        if order.was_depleted:
            raise ConflictError(
                f"Inventory for order {order.id} was already depleted", order_id=order.id
            )

        alerts: list[str] = []
        for line in order.items:
            self._deplete_line(order, line, alerts)
        order.was_depleted = True
        self._db.flush()

        logger.info(
            "Inventory depleted",
            order_id=order.id,
            lines=len(order.items),
            alerts=len(alerts),
        )
        return list(dict.fromkeys(alerts))

    def reverse(self, order: Order) -> int:
        """
        Undo the depletion of `order`.

        A no-op for orders that were never depleted. Returns the number of
        inventory items restored.
        """
        if not order.was_depleted:
            logger.info("Reversal skipped, order was never depleted", order_id=order.id)
            return 0

        history = self._db.scalars(
            select(InventoryMovement)
            .where(InventoryMovement.order_id == order.id)
            .order_by(InventoryMovement.id)
        ).all()
        # Only the depletion run since the last reversal is outstanding
        movements: list[InventoryMovement] = []
        for movement in history:
            if movement.kind == MovementKind.REVERSAL:
                movements = []
            else:
                movements.append(movement)

        restored: set[int] = set()
        for movement in movements:
            item = self._lock_item(movement.inventory_item_id)
            if item is None:
                raise NotFoundError(
                    "Inventory item", movement.inventory_item_id, order_id=order.id
                )
            self._apply(order.id, item, -_exact(movement.delta), MovementKind.REVERSAL)
            restored.add(item.id)

        order.was_depleted = False
        self._db.flush()

        logger.info("Inventory reversed", order_id=order.id, items=len(restored))
        return len(restored)
