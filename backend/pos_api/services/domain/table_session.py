"""
Terminal sessions and table management.

A TerminalSession is the explicit aggregate a POS terminal works on: its
active cart, the selected table, carts parked per table, the open order
per table and the queue of tickets waiting to print. Nothing here is a
module global; sessions live in the TerminalRegistry keyed by terminal id
and are handed to TableSessionManager per request.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_api.models import MenuItem, RestaurantTable
from pos_api.repositories import OrderRepository
from pos_api.services.domain.billing import compute_totals
from pos_api.services.domain.order_state_machine import OrderStateMachine
from pos_api.services.domain.ticket_router import route_tickets
from pos_api.services.events.outbox_service import write_table_event
from shared.config.constants import OrderStatus, OrderType, TableStatus
from shared.config.logging import kitchen_logger, get_logger
from shared.infrastructure.db import safe_commit
from shared.infrastructure.events import TABLE_STATUS_CHANGED
from shared.utils.exceptions import (
    ConflictError,
    NotFoundError,
    TableNotFoundError,
    ValidationError,
)
from shared.utils.schemas import (
    CartItem,
    HeldOrder,
    Modifier,
    OrderPayload,
    SendToKitchenResult,
    TicketJob,
    Totals,
)
from shared.utils.validators import sanitize_text

logger = get_logger(__name__)

NOTHING_TO_SEND = "No new items to send to the kitchen"


def cart_item_from_menu(
    menu_item: MenuItem,
    quantity: int = 1,
    modifiers: list[Modifier] | None = None,
    notes: str | None = None,
    seat: int | None = None,
) -> CartItem:
    """Build a fresh cart line (new cart_id) for a catalog item."""
    if not menu_item.is_available:
        raise ConflictError(
            f"Menu item '{menu_item.name}' is unavailable (86'd)", menu_item_id=menu_item.id
        )
    return CartItem(
        menu_item_id=menu_item.id,
        name=menu_item.name,
        category=menu_item.category_name,
        unit_price_cents=menu_item.price_cents,
        quantity=quantity,
        modifiers=modifiers or [],
        notes=sanitize_text(notes),
        seat=seat,
    )


# =============================================================================
# Session aggregate
# =============================================================================


@dataclass
class TerminalSession:
    """State owned by one POS terminal."""

    terminal_id: str
    active_cart: list[CartItem] = field(default_factory=list)
    active_table_id: int | None = None
    held_orders: dict[int, HeldOrder] = field(default_factory=dict)
    open_orders: dict[int, str] = field(default_factory=dict)
    print_queue: list[TicketJob] = field(default_factory=list)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    # -------------------------------------------------------------------------
    # Cart mutations
    # -------------------------------------------------------------------------

    def add_item(self, item: CartItem) -> CartItem:
        """Append a line. Never merges with an existing line."""
        self.active_cart.append(item)
        return item

    def _find_line(self, cart_id: str) -> CartItem:
        for item in self.active_cart:
            if item.cart_id == cart_id:
                return item
        raise NotFoundError("Cart line", cart_id, terminal_id=self.terminal_id)

    def update_quantity(self, cart_id: str, quantity: int) -> CartItem | None:
        """Change a line's quantity; 0 removes it. Sent lines are read-only."""
        item = self._find_line(cart_id)
        if item.sent_to_kitchen:
            raise ConflictError("Line was already sent to the kitchen", cart_id=cart_id)
        if quantity <= 0:
            self.active_cart.remove(item)
            return None
        item.quantity = quantity
        return item

    def remove_line(self, cart_id: str) -> None:
        self.update_quantity(cart_id, 0)

    def clear_cart(self) -> None:
        self.active_cart = []

    def cart_totals(self) -> Totals:
        return compute_totals(self.active_cart)

    def unsent_items(self) -> list[CartItem]:
        return [item for item in self.active_cart if not item.sent_to_kitchen]

    def snapshot(self) -> list[CartItem]:
        return [item.model_copy(deep=True) for item in self.active_cart]

    def forget_table(self, table_id: int) -> None:
        self.held_orders.pop(table_id, None)
        self.open_orders.pop(table_id, None)
        if self.active_table_id == table_id:
            self.active_table_id = None
            self.clear_cart()

    def drain_print_queue(self) -> list[TicketJob]:
        jobs, self.print_queue = self.print_queue, []
        return jobs


class TerminalRegistry:
    """Process-local registry of terminal sessions."""

    def __init__(self):
        self._sessions: dict[str, TerminalSession] = {}
        self._lock = threading.Lock()

    def get(self, terminal_id: str) -> TerminalSession:
        with self._lock:
            session = self._sessions.get(terminal_id)
            if session is None:
                session = TerminalSession(terminal_id=terminal_id)
                self._sessions[terminal_id] = session
            return session

    def forget_table(self, table_id: int) -> None:
        """Drop parked carts and tab bindings for a table on every terminal."""
        with self._lock:
            sessions = list(self._sessions.values())
        for session in sessions:
            with session.lock:
                session.forget_table(table_id)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


_registry = TerminalRegistry()


def get_terminal_registry() -> TerminalRegistry:
    return _registry


# =============================================================================
# Table service (floor status)
# =============================================================================


class TableService:
    """
    Domain service for table status changes outside of order transitions.
    """

    def __init__(self, db: Session):
        self._db = db

    def get_table(self, table_id: int) -> RestaurantTable:
        table = self._db.get(RestaurantTable, table_id)
        if table is None:
            raise TableNotFoundError(table_id)
        return table

    def list_tables(self) -> list[RestaurantTable]:
        return list(self._db.scalars(select(RestaurantTable).order_by(RestaurantTable.code)).all())

    def _transition(self, table_id: int, expected: str, target: str) -> RestaurantTable:
        table = self.get_table(table_id)
        if table.status != expected:
            raise ConflictError(
                f"Table {table.code} is '{table.status}', expected '{expected}'",
                table_id=table_id,
                target_status=target,
            )
        table.status = target
        if target == TableStatus.AVAILABLE:
            table.seated_at = None
        write_table_event(self._db, TABLE_STATUS_CHANGED, table.id, target)
        safe_commit(self._db)
        self._db.refresh(table)
        logger.info("Table status changed", table_id=table_id, status=target)
        return table

    def request_bill(self, table_id: int) -> RestaurantTable:
        """occupied -> billed"""
        return self._transition(table_id, TableStatus.OCCUPIED, TableStatus.BILLED)

    def mark_clean(self, table_id: int) -> RestaurantTable:
        """cleaning -> available"""
        return self._transition(table_id, TableStatus.CLEANING, TableStatus.AVAILABLE)


# =============================================================================
# Table session manager
# =============================================================================


class TableSessionManager:
    """
    Binds a terminal's cart to tables and turns kitchen sends into orders.
    """

    def __init__(
        self,
        db: Session,
        session: TerminalSession,
        *,
        state_machine: OrderStateMachine | None = None,
    ):
        self._db = db
        self._session = session
        self._tables = TableService(db)
        self._orders = OrderRepository(db)
        self._state_machine = state_machine or OrderStateMachine(db)

    @property
    def session(self) -> TerminalSession:
        return self._session

    def add_menu_item(
        self,
        menu_item_id: int,
        quantity: int = 1,
        modifiers: list[Modifier] | None = None,
        notes: str | None = None,
        seat: int | None = None,
    ) -> CartItem:
        menu_item = self._db.get(MenuItem, menu_item_id)
        if menu_item is None:
            raise NotFoundError("Menu item", menu_item_id)
        item = cart_item_from_menu(menu_item, quantity, modifiers, notes, seat)
        with self._session.lock:
            return self._session.add_item(item)

    def select_table(self, table_id: int) -> list[CartItem]:
        """
        Make `table_id` the active table.

        Restores the table's parked cart if there is one; otherwise the
        active cart is cleared, so nothing leaks from the previous table.
        """
        self._tables.get_table(table_id)
        with self._session.lock:
            held = self._session.held_orders.get(table_id)
            if held is not None:
                self._session.active_cart = [item.model_copy(deep=True) for item in held.items]
            else:
                self._session.clear_cart()
            self._session.active_table_id = table_id
            logger.debug(
                "Table selected",
                terminal_id=self._session.terminal_id,
                table_id=table_id,
                restored=held is not None,
            )
            return self._session.active_cart

    def park_order(self) -> HeldOrder:
        """Park the active cart against the active table and free the terminal."""
        with self._session.lock:
            if not self._session.active_cart:
                raise ValidationError("Cannot park an empty cart")
            table_id = self._session.active_table_id
            if table_id is None:
                raise ValidationError("Select a table before parking an order")

            held = HeldOrder(
                table_id=table_id,
                items=self._session.snapshot(),
                parked_at=datetime.now(timezone.utc),
            )
            self._session.held_orders[table_id] = held
            self._session.clear_cart()
            self._session.active_table_id = None

        logger.info("Order parked", terminal_id=self._session.terminal_id, table_id=table_id)
        return held

    def _open_order_id(self, table_id: int) -> str | None:
        order_id = self._session.open_orders.get(table_id)
        if order_id is not None:
            order = self._orders.get(order_id)
            if order is not None and order.status == OrderStatus.PENDING:
                return order_id
        order = self._orders.find_open_for_table(table_id)
        return order.id if order else None

    def send_to_kitchen(self, employee_id: int | None = None) -> SendToKitchenResult:
        """
        Send the unsent lines of the active cart to the kitchen.

        The first send for a table creates its pending order; later sends
        append to it. On success every line is marked sent, the cart is
        parked as the table's held order and the terminal is freed.
        """
        with self._session.lock:
            unsent = self._session.unsent_items()
            if not unsent:
                return SendToKitchenResult(notice=NOTHING_TO_SEND)

            table_id = self._session.active_table_id
            if table_id is None:
                raise ValidationError("Select a table before sending to the kitchen")
            table = self._tables.get_table(table_id)

            order_id = self._open_order_id(table_id)
            if order_id is None:
                order = self._state_machine.create_pending_order(
                    OrderPayload(
                        items=unsent,
                        table_id=table_id,
                        employee_id=employee_id,
                        order_type=OrderType.DINE_IN,
                    )
                )
                order_id = order.id
            else:
                self._state_machine.append_items(order_id, unsent)

            jobs = route_tickets(unsent, order_id, table_label=table.code)

            for item in self._session.active_cart:
                item.sent_to_kitchen = True
            self._session.held_orders[table_id] = HeldOrder(
                table_id=table_id,
                items=self._session.snapshot(),
                parked_at=datetime.now(timezone.utc),
            )
            self._session.open_orders[table_id] = order_id
            self._session.print_queue.extend(jobs)
            self._session.clear_cart()
            self._session.active_table_id = None

        kitchen_logger.info(
            "Sent to kitchen",
            order_id=order_id,
            table_id=table_id,
            lines=len(unsent),
            jobs=[job.department for job in jobs],
        )
        return SendToKitchenResult(order_id=order_id, jobs=jobs)

    def checkout(
        self,
        order_type: str = OrderType.TAKEAWAY,
        employee_id: int | None = None,
        customer_name: str | None = None,
        customer_phone: str | None = None,
        delivery_address: str | None = None,
        guest_count: int | None = None,
    ) -> tuple[str, list[TicketJob]]:
        """
        Persist the walk-in (no table) cart as a pending order.

        Unsent lines are routed to the print queue; the cart is cleared.
        """
        with self._session.lock:
            if self._session.active_table_id is not None:
                raise ValidationError("Checkout is for walk-in orders; use send-to-kitchen for tables")
            if not self._session.active_cart:
                raise ValidationError("Cart is empty")

            unsent = self._session.unsent_items()
            order = self._state_machine.create_pending_order(
                OrderPayload(
                    items=self._session.snapshot(),
                    order_type=order_type,
                    employee_id=employee_id,
                    customer_name=customer_name,
                    customer_phone=customer_phone,
                    delivery_address=sanitize_text(delivery_address),
                    guest_count=guest_count,
                )
            )
            jobs = route_tickets(unsent, order.id)
            self._session.print_queue.extend(jobs)
            self._session.clear_cart()

        logger.info("Walk-in checkout", order_id=order.id, order_type=order_type)
        return order.id, jobs

    def request_bill(self, table_id: int) -> RestaurantTable:
        return self._tables.request_bill(table_id)

    def mark_table_clean(self, table_id: int) -> RestaurantTable:
        table = self._tables.mark_clean(table_id)
        with self._session.lock:
            self._session.forget_table(table_id)
        return table
