"""
Order State Machine.

Legal transitions (see ORDER_TRANSITIONS):
    pending   -> preparing | ready | completed | cancelled | voided
    preparing -> ready | completed | cancelled | voided
    ready     -> completed | cancelled | voided
    completed -> refunded

Every transition is a compare-and-swap on the status column
(`UPDATE ... WHERE id = :id AND status = :expected`), so of two writers
racing on the same order exactly one wins and the other gets a
ConflictError. Within a process the per-order lock registry serialises
callers before they reach the database.

Completion is the only forward transition with side effects: inventory
depletion (once), the food/drink revenue split, the bound table moving to
`cleaning`, and the ORDER_COMPLETED / SALES_SYNC_REQUESTED outbox events,
all in one transaction. Cancel, void and refund reverse inventory, but
only for orders that were actually depleted.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import TypeVar

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_api.models import Order, RestaurantTable
from pos_api.repositories import OrderFilters, OrderRepository
from pos_api.services.domain.billing import split_revenue
from pos_api.services.domain.inventory_ledger import InventoryLedger
from pos_api.services.domain.manager_auth import ManagerAuthorizer
from pos_api.services.domain.order_locks import OrderLockRegistry, get_order_lock_registry
from pos_api.services.events.outbox_service import (
    write_order_event,
    write_outbox_event,
    write_table_event,
)
from shared.config.constants import ORDER_TRANSITIONS, OrderStatus, TableStatus
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.infrastructure.events import (
    INVENTORY_ALERT,
    ORDER_CANCELLED,
    ORDER_COMPLETED,
    ORDER_CREATED,
    ORDER_ITEMS_ADDED,
    ORDER_REFUNDED,
    ORDER_STATUS_CHANGED,
    ORDER_VOIDED,
    SALES_SYNC_REQUESTED,
    TABLE_STATUS_CHANGED,
)
from shared.utils.exceptions import (
    AlreadyCompletedError,
    ConflictError,
    InvalidTransitionError,
    InventoryDepletionError,
    NotFoundError,
    OrderNotFoundError,
    ValidationError,
)
from shared.utils.schemas import CartItem, OrderPayload

logger = get_logger(__name__)

T = TypeVar("T")

_REVERSAL_EVENTS = {
    OrderStatus.CANCELLED: ORDER_CANCELLED,
    OrderStatus.VOIDED: ORDER_VOIDED,
    OrderStatus.REFUNDED: ORDER_REFUNDED,
}


class OrderStateMachine:
    """
    Domain service governing order status transitions.
    """

    def __init__(
        self,
        db: Session,
        *,
        ledger: InventoryLedger | None = None,
        authorizer: ManagerAuthorizer | None = None,
        locks: OrderLockRegistry | None = None,
    ):
        self._db = db
        self._orders = OrderRepository(db)
        self._ledger = ledger or InventoryLedger(db)
        self._authorizer = authorizer or ManagerAuthorizer(db)
        self._locks = locks or get_order_lock_registry()

    @property
    def locks(self) -> OrderLockRegistry:
        return self._locks

    # =========================================================================
    # Reads
    # =========================================================================

    def get_order(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def list_orders(self, filters: OrderFilters | None = None) -> Sequence[Order]:
        return self._orders.list_recent(filters)

    # =========================================================================
    # Transaction plumbing
    # =========================================================================

    def _locked(self, order_id: str, action: Callable[[], T]) -> T:
        """Run `action` under the order lock in one committed transaction."""
        with self._locks.hold(order_id):
            try:
                result = action()
                safe_commit(self._db)
            except Exception:
                self._db.rollback()
                raise
        return result

    def _load_for_update(self, order_id: str) -> Order:
        order = self._orders.get_for_update(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def _compare_and_set(self, order: Order, target: str) -> None:
        """Move `order` to `target` if legal and nobody changed it underneath us."""
        current = order.status
        if target not in ORDER_TRANSITIONS.get(current, frozenset()):
            if current in OrderStatus.TERMINAL:
                raise AlreadyCompletedError(order.id, current, target_status=target)
            raise InvalidTransitionError("order", current, target, order_id=order.id)

        values = {"status": target, "version": Order.version + 1}
        if target == OrderStatus.COMPLETED:
            values["completed_at"] = datetime.now(timezone.utc)

        result = self._db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == current)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(
                f"Order {order.id} was modified concurrently",
                order_id=order.id,
                expected_status=current,
                target_status=target,
            )
        self._db.refresh(order, attribute_names=["status", "version", "completed_at"])

    def _set_table_status(self, table_id: int | None, status: str) -> None:
        if table_id is None:
            return
        table = self._db.get(RestaurantTable, table_id)
        if table is None or table.status == status:
            return
        table.status = status
        if status == TableStatus.OCCUPIED:
            table.seated_at = datetime.now(timezone.utc)
        elif status == TableStatus.AVAILABLE:
            table.seated_at = None
        write_table_event(self._db, TABLE_STATUS_CHANGED, table.id, status)

    def _occupy_table(self, order: Order) -> None:
        if order.table_id is None:
            return
        table = self._db.get(RestaurantTable, order.table_id)
        if table is not None and table.status == TableStatus.AVAILABLE:
            self._set_table_status(table.id, TableStatus.OCCUPIED)

    def _release_table_if_idle(self, order: Order) -> None:
        """Free a table whose only open order was just cancelled or voided."""
        if order.table_id is None:
            return
        other_open = [
            o for o in self._orders.list_recent(OrderFilters(table_id=order.table_id))
            if o.id != order.id and o.status in OrderStatus.OPEN
        ]
        table = self._db.get(RestaurantTable, order.table_id)
        if not other_open and table is not None and table.status in TableStatus.IN_USE:
            self._set_table_status(table.id, TableStatus.AVAILABLE)

    # =========================================================================
    # Creation
    # =========================================================================

    def create_pending_order(self, payload: OrderPayload) -> Order:
        """
        Persist a new pending order (first kitchen send or walk-in checkout).

        Idempotent by order id: re-submitting an existing id returns the
        stored order without duplicating it.
        """
        def action() -> Order:
            order, created = self._orders.upsert(payload)
            if created:
                self._occupy_table(order)
                write_order_event(self._db, ORDER_CREATED, order, {"lines": len(order.items)})
            return order

        order = self._locked(payload.id, action)
        logger.info(
            "Pending order saved",
            order_id=order.id,
            table_id=order.table_id,
            total_cents=order.total_cents,
        )
        return order

    def append_items(self, order_id: str, items: Sequence[CartItem]) -> Order:
        """Add lines to a pending order (additional kitchen send on a tab)."""
        def action() -> Order:
            order = self._load_for_update(order_id)
            if order.status != OrderStatus.PENDING:
                raise ConflictError(
                    f"Cannot add items to order {order_id} in status '{order.status}'",
                    order_id=order_id,
                )
            added = self._orders.add_lines(order, items)
            if added:
                self._orders.recalculate_totals(order)
                write_order_event(self._db, ORDER_ITEMS_ADDED, order, {"lines": len(added)})
            return order

        order = self._locked(order_id, action)
        logger.info("Items appended to order", order_id=order_id, total_cents=order.total_cents)
        return order

    # =========================================================================
    # Forward transitions
    # =========================================================================

    def _forward(self, order_id: str, target: str) -> Order:
        def action() -> Order:
            order = self._load_for_update(order_id)
            self._compare_and_set(order, target)
            write_order_event(self._db, ORDER_STATUS_CHANGED, order)
            return order

        order = self._locked(order_id, action)
        logger.info("Order status changed", order_id=order_id, status=target)
        return order

    def start_preparing(self, order_id: str) -> Order:
        return self._forward(order_id, OrderStatus.PREPARING)

    def mark_ready(self, order_id: str) -> Order:
        return self._forward(order_id, OrderStatus.READY)

    def apply_completion(self, order: Order, payment_method: str | None = None) -> list[str]:
        """
        Complete `order` inside the caller's transaction (no commit).

        The caller must hold the order lock. Raises InventoryDepletionError
        when depletion fails; the caller then rolls back so the order is
        never left completed with partial depletion.
        """
        self._compare_and_set(order, OrderStatus.COMPLETED)

        try:
            alerts = self._ledger.deplete(order)
        except (SQLAlchemyError, NotFoundError) as e:
            raise InventoryDepletionError(order.id, error=str(e)) from e

        order.food_sales_cents, order.drink_sales_cents = split_revenue(order.items)
        if payment_method:
            order.payment_method = payment_method
        self._set_table_status(order.table_id, TableStatus.CLEANING)

        write_order_event(self._db, ORDER_COMPLETED, order, {"alerts": alerts})
        write_outbox_event(
            self._db,
            SALES_SYNC_REQUESTED,
            aggregate_type="order",
            aggregate_id=order.id,
            payload=self._sales_summary(order),
        )
        if alerts:
            write_outbox_event(
                self._db,
                INVENTORY_ALERT,
                aggregate_type="order",
                aggregate_id=order.id,
                payload={"order_id": order.id, "alerts": alerts},
            )
        return alerts

    def complete(self, order_id: str, payment_method: str | None = None) -> list[str]:
        """Complete an order outside the payment path; returns inventory alerts."""
        def action() -> list[str]:
            order = self._load_for_update(order_id)
            return self.apply_completion(order, payment_method)

        alerts = self._locked(order_id, action)
        logger.info("Order completed", order_id=order_id, alerts=len(alerts))
        return alerts

    @staticmethod
    def _sales_summary(order: Order) -> dict:
        return {
            "order_id": order.id,
            "total_cents": order.total_cents,
            "tax_cents": order.tax_cents,
            "tip_cents": order.tip_cents,
            "payment_method": order.payment_method,
            "completed_at": order.completed_at.isoformat() if order.completed_at else None,
            "items": [
                {
                    "name": line.name,
                    "quantity": line.quantity,
                    "unit_price_cents": line.unit_price_cents,
                }
                for line in order.items
            ],
        }

    # =========================================================================
    # Reversing transitions
    # =========================================================================

    def _reverse_to(self, order: Order, target: str, reason: str | None) -> int:
        self._compare_and_set(order, target)
        restored = self._ledger.reverse(order)
        if target != OrderStatus.REFUNDED:
            self._release_table_if_idle(order)
        write_order_event(
            self._db,
            _REVERSAL_EVENTS[target],
            order,
            {"reason": reason, "inventory_restored": restored},
        )
        return restored

    def cancel(self, order_id: str, reason: str | None = None) -> Order:
        def action() -> Order:
            order = self._load_for_update(order_id)
            self._reverse_to(order, OrderStatus.CANCELLED, reason)
            return order

        order = self._locked(order_id, action)
        logger.info("Order cancelled", order_id=order_id, reason=reason)
        return order

    def void_order(self, order_id: str, pin: str, reason: str | None = None) -> Order:
        """
        Manager-authorized void of a non-terminal order.

        The PIN is checked before anything changes; a bad PIN leaves the
        order and inventory untouched.
        """
        def action() -> Order:
            order = self._load_for_update(order_id)
            manager = self._authorizer.require(pin, "VOID", order_id)
            self._reverse_to(order, OrderStatus.VOIDED, reason)
            logger.info("Order voided", order_id=order_id, manager_id=manager.id, reason=reason)
            return order

        return self._locked(order_id, action)

    def refund_order(self, order_id: str, pin: str, reason: str | None = None) -> Order:
        """Manager-authorized refund of a completed order."""
        def action() -> Order:
            order = self._load_for_update(order_id)
            manager = self._authorizer.require(pin, "REFUND", order_id)
            self._reverse_to(order, OrderStatus.REFUNDED, reason)
            logger.info("Order refunded", order_id=order_id, manager_id=manager.id, reason=reason)
            return order

        return self._locked(order_id, action)

    # =========================================================================
    # Save path (checkout / offline replay)
    # =========================================================================

    def save_order(self, payload: OrderPayload) -> tuple[Order, list[str]]:
        """
        Idempotent save of a terminal-captured order.

        Upserts by id, then moves the stored order to the payload's status.
        A completed payload triggers completion only if the stored order
        has not been depleted yet, so replays never deplete twice. Orders
        already in a terminal state are left as they are.
        """
        if payload.status in (OrderStatus.VOIDED, OrderStatus.REFUNDED):
            raise ValidationError(
                f"Orders cannot be saved as '{payload.status}' without manager authorization",
                order_id=payload.id,
            )

        def action() -> tuple[Order, list[str]]:
            order, created = self._orders.upsert(payload)
            if created:
                self._occupy_table(order)
                write_order_event(self._db, ORDER_CREATED, order, {"lines": len(order.items)})
            return order, self._reconcile_status(order, payload.status)

        order, alerts = self._locked(payload.id, action)
        logger.info("Order saved", order_id=order.id, status=order.status, alerts=len(alerts))
        return order, alerts

    def _reconcile_status(self, order: Order, target: str) -> list[str]:
        if target == order.status:
            return []
        if order.status in OrderStatus.TERMINAL:
            logger.info(
                "Replay ignored for terminal order",
                order_id=order.id,
                status=order.status,
                payload_status=target,
            )
            return []
        if target == OrderStatus.COMPLETED:
            if order.was_depleted:
                return []
            return self.apply_completion(order, order.payment_method)
        if target == OrderStatus.CANCELLED:
            self._reverse_to(order, OrderStatus.CANCELLED, "cancelled offline")
            return []
        if target in ORDER_TRANSITIONS[order.status]:
            self._compare_and_set(order, target)
            write_order_event(self._db, ORDER_STATUS_CHANGED, order)
        else:
            logger.info(
                "Stale status in replay ignored",
                order_id=order.id,
                status=order.status,
                payload_status=target,
            )
        return []
