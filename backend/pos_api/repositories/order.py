"""
Order Repository - data access for orders, lines and payments.

`upsert` is the idempotent save path used by walk-in checkout, kitchen
sends and offline replay: an order id that already exists is never
duplicated, and a line is identified by its cart_id.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import Select, select
from sqlalchemy.orm import Session, selectinload

from pos_api.models import Order, OrderItem, Payment
from pos_api.services.domain.billing import compute_totals
from shared.config.constants import Limits, OrderStatus
from shared.utils.schemas import CartItem, OrderPayload


@dataclass
class OrderFilters:
    """Filters for order listings."""

    limit: int = Limits.RECENT_ORDERS_LIMIT
    status: str | None = None
    table_id: int | None = None
    employee_id: int | None = None

    def __post_init__(self):
        self.limit = min(max(1, self.limit), Limits.RECENT_ORDERS_LIMIT)


class OrderRepository:
    """
    Repository for Order entities.

    Guarantees eager loading of items and payments.
    """

    def __init__(self, db: Session):
        self._db = db

    def _base_query(self) -> Select:
        return select(Order).options(
            selectinload(Order.items),
            selectinload(Order.payments),
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, order_id: str) -> Order | None:
        return self._db.scalar(self._base_query().where(Order.id == order_id))

    def get_for_update(self, order_id: str) -> Order | None:
        """Load an order with a row lock held until the transaction ends."""
        return self._db.scalar(
            self._base_query().where(Order.id == order_id).with_for_update()
        )

    def find_open_for_table(self, table_id: int) -> Order | None:
        """The table's running tab: its newest pending order."""
        return self._db.scalar(
            self._base_query()
            .where(Order.table_id == table_id, Order.status == OrderStatus.PENDING)
            .order_by(Order.created_at.desc())
            .limit(1)
        )

    def list_recent(self, filters: OrderFilters | None = None) -> Sequence[Order]:
        """Order history, newest first."""
        filters = filters or OrderFilters()
        query = self._base_query()
        if filters.status:
            query = query.where(Order.status == filters.status)
        if filters.table_id is not None:
            query = query.where(Order.table_id == filters.table_id)
        if filters.employee_id is not None:
            query = query.where(Order.employee_id == filters.employee_id)
        query = query.order_by(Order.created_at.desc(), Order.id).limit(filters.limit)
        return self._db.scalars(query).all()

    # -------------------------------------------------------------------------
    # Writes (no commit; the calling service owns the transaction)
    # -------------------------------------------------------------------------

    def add_lines(self, order: Order, items: Sequence[CartItem]) -> list[OrderItem]:
        """Append lines whose cart_id is not on the order yet."""
        known = {line.cart_id for line in order.items}
        added = []
        for item in items:
            if item.cart_id in known:
                continue
            line = OrderItem(
                cart_id=item.cart_id,
                menu_item_id=item.menu_item_id,
                name=item.name,
                category=item.category,
                quantity=item.quantity,
                unit_price_cents=item.unit_price_cents,
                notes=item.notes,
                seat=item.seat,
            )
            line.modifiers = [m.model_dump() for m in item.modifiers]
            order.items.append(line)
            known.add(item.cart_id)
            added.append(line)
        return added

    def recalculate_totals(self, order: Order, tax_cents: int | None = None) -> None:
        totals = compute_totals(
            order.items,
            tax_cents=tax_cents,
            service_charge_cents=order.service_charge_cents,
        )
        order.subtotal_cents = totals.subtotal_cents
        order.tax_cents = totals.tax_cents
        order.total_cents = totals.total_cents

    def upsert(self, payload: OrderPayload) -> tuple[Order, bool]:
        """
        Insert the order or merge new lines into the existing one.

        New orders always start `pending` with the payload's payments
        attached; status changes go through the state machine. For an
        existing order only unseen lines are merged, and only while it is
        still pending. Returns (order, created).
        """
        order = self.get_for_update(payload.id)
        if order is not None:
            if order.status == OrderStatus.PENDING and self.add_lines(order, payload.items):
                self.recalculate_totals(order, payload.tax_cents)
            self._db.flush()
            return order, False

        order = Order(
            id=payload.id,
            status=OrderStatus.PENDING,
            order_type=payload.order_type,
            tip_cents=payload.tip_cents,
            service_charge_cents=payload.service_charge_cents,
            payment_method=payload.payment_method,
            table_id=payload.table_id,
            employee_id=payload.employee_id,
            guest_count=payload.guest_count,
            customer_name=payload.customer_name,
            customer_phone=payload.customer_phone,
            delivery_address=payload.delivery_address,
            created_at=payload.created_at or datetime.now(timezone.utc),
        )
        self._db.add(order)
        self.add_lines(order, payload.items)
        self.recalculate_totals(order, payload.tax_cents)
        for payment in payload.payments:
            order.payments.append(
                Payment(
                    amount_cents=payment.amount_cents,
                    tip_cents=payment.tip_cents,
                    method=payment.method,
                    created_at=payment.created_at or datetime.now(timezone.utc),
                )
            )
        self._db.flush()
        return order, True
