"""
Shared Pydantic schemas used across the application.

Cart lines and order payloads are plain Pydantic models so the same
shape travels through the terminal session, the offline queue and the
REST surface.
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from shared.config.constants import Limits, OrderStatus, OrderType


# =============================================================================
# Common Types
# =============================================================================

PaymentStatusLabel = Literal["pending", "completed"]
ForwardStatus = Literal["preparing", "ready"]
DepartmentLabel = Literal["KITCHEN", "BAR"]


def new_id() -> str:
    """Client-side identity for orders and cart lines."""
    return str(uuid.uuid4())


class ErrorResponse(BaseModel):
    """Error body rendered for AppException subclasses."""

    detail: str


# OpenAPI documentation of the domain errors routers can raise
ERROR_RESPONSES: dict[int | str, dict] = {
    400: {"model": ErrorResponse, "description": "Validation error"},
    403: {"model": ErrorResponse, "description": "Manager authorization failed"},
    404: {"model": ErrorResponse, "description": "Not found"},
    409: {"model": ErrorResponse, "description": "Conflicting state"},
    502: {"model": ErrorResponse, "description": "Downstream failure"},
}


# =============================================================================
# Cart Schemas
# =============================================================================


class Modifier(BaseModel):
    """A selected modifier; priced per unit of the line."""

    name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    price_cents: int = Field(default=0, ge=0)


class CartItem(BaseModel):
    """
    One cart line.

    `cart_id` is the line identity: adding the same dish twice (or with
    different modifiers) creates two lines, never a merged one.
    """

    cart_id: str = Field(default_factory=new_id)
    menu_item_id: int | None = None
    name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    category: str = ""
    unit_price_cents: int = Field(ge=Limits.MIN_PRICE_CENTS, le=Limits.MAX_PRICE_CENTS)
    quantity: int = Field(default=1, ge=Limits.MIN_QUANTITY, le=Limits.MAX_QUANTITY)
    modifiers: list[Modifier] = Field(default_factory=list)
    notes: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)
    seat: int | None = Field(default=None, ge=1)
    sent_to_kitchen: bool = False

    @property
    def unit_total_cents(self) -> int:
        return self.unit_price_cents + sum(m.price_cents for m in self.modifiers)

    @property
    def line_total_cents(self) -> int:
        return self.unit_total_cents * self.quantity


class Totals(BaseModel):
    """Result of the central billing calculation."""

    subtotal_cents: int
    tax_cents: int
    total_cents: int


class HeldOrder(BaseModel):
    """Snapshot of a cart parked against a table."""

    table_id: int
    items: list[CartItem]
    parked_at: datetime


class TicketJob(BaseModel):
    """A kitchen order ticket (KOT) for one preparation station."""

    job_id: str = Field(default_factory=new_id)
    order_id: str
    department: DepartmentLabel
    items: list[CartItem]
    timestamp: datetime
    table_label: str | None = None


class AddCartItemRequest(BaseModel):
    """Add a menu item to a terminal cart."""

    menu_item_id: int
    quantity: int = Field(default=1, ge=Limits.MIN_QUANTITY, le=Limits.MAX_QUANTITY)
    modifiers: list[Modifier] = Field(default_factory=list)
    notes: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)
    seat: int | None = Field(default=None, ge=1)


class UpdateQuantityRequest(BaseModel):
    quantity: int = Field(ge=0, le=Limits.MAX_QUANTITY)  # 0 removes the line


class CartOutput(BaseModel):
    """Active cart of a terminal."""

    terminal_id: str
    active_table_id: int | None
    items: list[CartItem]
    totals: Totals
    held_table_ids: list[int]


class SendToKitchenResult(BaseModel):
    """Outcome of a kitchen send; `notice` is set when nothing was sent."""

    order_id: str | None = None
    jobs: list[TicketJob] = Field(default_factory=list)
    notice: str | None = None


class SendToKitchenRequest(BaseModel):
    employee_id: int | None = None


class WalkInCheckoutRequest(BaseModel):
    """Checkout of a terminal cart with no table (takeaway or delivery)."""

    order_type: str = OrderType.TAKEAWAY
    employee_id: int | None = None
    guest_count: int | None = Field(default=None, ge=1)
    customer_name: str | None = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    customer_phone: str | None = Field(default=None, max_length=40)
    delivery_address: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)

    @field_validator("order_type")
    @classmethod
    def _known_order_type(cls, value: str) -> str:
        if value not in OrderType.ALL:
            raise ValueError(f"Unknown order type: {value}")
        return value


class WalkInCheckoutResult(BaseModel):
    order_id: str
    jobs: list[TicketJob]


# =============================================================================
# Order Schemas
# =============================================================================


class PaymentInput(BaseModel):
    """A payment carried inside an order payload (offline replay)."""

    amount_cents: int = Field(gt=0)
    tip_cents: int = Field(default=0, ge=0)
    method: str = Field(min_length=1, max_length=20)
    created_at: datetime | None = None


class OrderPayload(BaseModel):
    """
    Full order as captured by a terminal.

    Used for the walk-in checkout path, the offline queue and the
    idempotent upsert; `id` is client-generated so replays are safe.
    """

    id: str = Field(default_factory=new_id)
    status: str = OrderStatus.PENDING
    order_type: str = OrderType.DINE_IN
    items: list[CartItem] = Field(min_length=1)
    tax_cents: int | None = Field(default=None, ge=0)
    tip_cents: int = Field(default=0, ge=0)
    service_charge_cents: int = Field(default=0, ge=0)
    payment_method: str | None = None
    table_id: int | None = None
    employee_id: int | None = None
    guest_count: int | None = Field(default=None, ge=1)
    customer_name: str | None = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    customer_phone: str | None = Field(default=None, max_length=40)
    delivery_address: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)
    payments: list[PaymentInput] = Field(default_factory=list)
    created_at: datetime | None = None

    @field_validator("status")
    @classmethod
    def _known_status(cls, value: str) -> str:
        if value not in OrderStatus.ALL:
            raise ValueError(f"Unknown order status: {value}")
        return value

    @field_validator("order_type")
    @classmethod
    def _known_order_type(cls, value: str) -> str:
        if value not in OrderType.ALL:
            raise ValueError(f"Unknown order type: {value}")
        return value


class CheckoutItemInput(BaseModel):
    """A line of a walk-in checkout, resolved against the catalog."""

    menu_item_id: int
    quantity: int = Field(default=1, ge=Limits.MIN_QUANTITY, le=Limits.MAX_QUANTITY)
    modifiers: list[Modifier] = Field(default_factory=list)
    notes: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)
    seat: int | None = Field(default=None, ge=1)


class CheckoutRequest(WalkInCheckoutRequest):
    """Walk-in (no table) checkout with the lines in the body."""

    id: str | None = Field(default=None, max_length=36)
    items: list[CheckoutItemInput] = Field(min_length=1)


class OrderItemOutput(BaseModel):
    model_config = {"from_attributes": True}

    cart_id: str
    menu_item_id: int | None
    name: str
    category: str
    quantity: int
    unit_price_cents: int
    modifiers: list[Modifier]
    notes: str | None
    seat: int | None


class PaymentOutput(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    amount_cents: int
    tip_cents: int
    method: str
    created_at: datetime


class OrderOutput(BaseModel):
    """Order with its lines and payments."""

    model_config = {"from_attributes": True}

    id: str
    status: str
    order_type: str
    subtotal_cents: int
    tax_cents: int
    total_cents: int
    tip_cents: int
    service_charge_cents: int
    food_sales_cents: int
    drink_sales_cents: int
    paid_cents: int
    payment_method: str | None
    table_id: int | None
    employee_id: int | None
    guest_count: int | None
    customer_name: str | None
    customer_phone: str | None
    delivery_address: str | None
    was_depleted: bool
    created_at: datetime
    completed_at: datetime | None
    items: list[OrderItemOutput]
    payments: list[PaymentOutput]


class StatusUpdateRequest(BaseModel):
    status: ForwardStatus


class ManagerOverrideRequest(BaseModel):
    """Manager PIN for void/refund."""

    pin: str = Field(min_length=1, max_length=12)
    reason: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)


class CancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)


class TransitionResult(BaseModel):
    """Outcome of a status transition."""

    order_id: str
    status: str
    alerts: list[str] = Field(default_factory=list)


# =============================================================================
# Payment Schemas
# =============================================================================


class PaymentRequest(BaseModel):
    """Partial payment; amount is validated by the ledger."""

    amount_cents: int
    method: str = Field(min_length=1, max_length=20)
    tip_cents: int = Field(default=0, ge=0)


class FullPaymentRequest(BaseModel):
    method: str = Field(min_length=1, max_length=20)
    tip_cents: int = Field(default=0, ge=0)


class PaymentResult(BaseModel):
    """Ledger response: remaining balance plus alerts raised by completion."""

    order_id: str
    status: PaymentStatusLabel
    paid_cents: int
    remaining_cents: int
    alerts: list[str] = Field(default_factory=list)
    payment_id: int | None = None


# =============================================================================
# Inventory / Floor Schemas
# =============================================================================


class InventoryItemOutput(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    name: str
    category: str | None
    quantity: float
    threshold: float
    unit: str
    cost_cents: int | None
    is_low: bool


class TableOutput(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    code: str
    capacity: int
    status: str
    seated_at: datetime | None


# =============================================================================
# Offline Sync Schemas
# =============================================================================


class EnqueueResult(BaseModel):
    """`queued` is True when the order was buffered locally."""

    order: OrderPayload
    queued: bool


class SyncResult(BaseModel):
    synced: int
    pending: int


class QueuedOrderOutput(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    order_id: str
    status: str
    attempts: int
    last_error: str | None
    created_at: datetime


# =============================================================================
# Shift Schemas
# =============================================================================


class TipOutBreakdown(BaseModel):
    busser_cents: int
    bar_cents: int
    runner_cents: int

    @property
    def total_cents(self) -> int:
        return self.busser_cents + self.bar_cents + self.runner_cents


class ShiftStats(BaseModel):
    """Server checkout figures for one shift."""

    employee_id: int
    shift_start: datetime
    order_count: int
    gross_sales_cents: int
    food_sales_cents: int
    beverage_sales_cents: int
    cash_sales_cents: int
    card_sales_cents: int
    tips_cents: int
    tip_outs: TipOutBreakdown
    total_tip_out_cents: int
    net_tips_cents: int
    expected_cash_cents: int


class CloseShiftRequest(BaseModel):
    """Blind drop: the server declares cash without seeing the expected figure."""

    cash_drop_cents: int = Field(ge=0)
    declared_tips_cents: int = Field(default=0, ge=0)


class CloseShiftResult(BaseModel):
    timesheet_id: int
    employee_id: int
    clock_in: datetime
    clock_out: datetime
    expected_cash_cents: int
    cash_drop_cents: int
    over_short_cents: int  # positive = over, negative = short
    declared_tips_cents: int


class TimesheetOutput(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    employee_id: int
    clock_in: datetime
    clock_out: datetime | None
