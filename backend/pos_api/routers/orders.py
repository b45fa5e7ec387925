"""
Orders router: walk-in checkout, history, status transitions, payments.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from pos_api.models import MenuItem
from pos_api.repositories import OrderFilters
from pos_api.services.domain.order_state_machine import OrderStateMachine
from pos_api.services.domain.payment_ledger import PaymentLedger
from pos_api.services.domain.table_session import cart_item_from_menu
from shared.config.constants import Limits, OrderStatus
from shared.infrastructure.db import get_db
from shared.utils.exceptions import NotFoundError
from shared.utils.schemas import (
    ERROR_RESPONSES,
    CancelRequest,
    CheckoutRequest,
    FullPaymentRequest,
    ManagerOverrideRequest,
    OrderOutput,
    OrderPayload,
    PaymentRequest,
    PaymentResult,
    StatusUpdateRequest,
    TransitionResult,
    new_id,
)

router = APIRouter(prefix="/api/orders", tags=["orders"], responses=ERROR_RESPONSES)


def _get_service(db: Session) -> OrderStateMachine:
    return OrderStateMachine(db)


def _output(db: Session, order_id: str) -> OrderOutput:
    return OrderOutput.model_validate(_get_service(db).get_order(order_id))


@router.post("", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
def checkout(body: CheckoutRequest, db: Session = Depends(get_db)) -> OrderOutput:
    """
    Walk-in checkout: persist a cart with no table as a pending order.

    Re-posting the same `id` returns the stored order unchanged.
    """
    items = []
    for line in body.items:
        menu_item = db.get(MenuItem, line.menu_item_id)
        if menu_item is None:
            raise NotFoundError("Menu item", line.menu_item_id)
        items.append(
            cart_item_from_menu(menu_item, line.quantity, line.modifiers, line.notes, line.seat)
        )

    payload = OrderPayload(
        id=body.id or new_id(),
        order_type=body.order_type,
        items=items,
        employee_id=body.employee_id,
        guest_count=body.guest_count,
        customer_name=body.customer_name,
        customer_phone=body.customer_phone,
        delivery_address=body.delivery_address,
    )
    order = _get_service(db).create_pending_order(payload)
    return OrderOutput.model_validate(order)


@router.get("", response_model=list[OrderOutput])
def list_orders(
    limit: int = Query(default=Limits.RECENT_ORDERS_LIMIT, ge=1, le=Limits.RECENT_ORDERS_LIMIT),
    status_filter: str | None = Query(default=None, alias="status"),
    table_id: int | None = None,
    employee_id: int | None = None,
    db: Session = Depends(get_db),
) -> list[OrderOutput]:
    """Order history, newest first."""
    filters = OrderFilters(
        limit=limit,
        status=status_filter,
        table_id=table_id,
        employee_id=employee_id,
    )
    orders = _get_service(db).list_orders(filters)
    return [OrderOutput.model_validate(o) for o in orders]


@router.get("/{order_id}", response_model=OrderOutput)
def get_order(order_id: str, db: Session = Depends(get_db)) -> OrderOutput:
    return _output(db, order_id)


@router.post("/{order_id}/status", response_model=TransitionResult)
def update_status(
    order_id: str,
    body: StatusUpdateRequest,
    db: Session = Depends(get_db),
) -> TransitionResult:
    """Kitchen progress: pending -> preparing -> ready."""
    service = _get_service(db)
    if body.status == OrderStatus.PREPARING:
        order = service.start_preparing(order_id)
    else:
        order = service.mark_ready(order_id)
    return TransitionResult(order_id=order.id, status=order.status)


@router.post("/{order_id}/cancel", response_model=TransitionResult)
def cancel_order(
    order_id: str,
    body: CancelRequest | None = None,
    db: Session = Depends(get_db),
) -> TransitionResult:
    order = _get_service(db).cancel(order_id, body.reason if body else None)
    return TransitionResult(order_id=order.id, status=order.status)


@router.post("/{order_id}/void", response_model=TransitionResult)
def void_order(
    order_id: str,
    body: ManagerOverrideRequest,
    db: Session = Depends(get_db),
) -> TransitionResult:
    """Void an open order. Requires a manager PIN."""
    order = _get_service(db).void_order(order_id, body.pin, body.reason)
    return TransitionResult(order_id=order.id, status=order.status)


@router.post("/{order_id}/refund", response_model=TransitionResult)
def refund_order(
    order_id: str,
    body: ManagerOverrideRequest,
    db: Session = Depends(get_db),
) -> TransitionResult:
    """Refund a completed order. Requires a manager PIN."""
    order = _get_service(db).refund_order(order_id, body.pin, body.reason)
    return TransitionResult(order_id=order.id, status=order.status)


# =============================================================================
# Payments
# =============================================================================


@router.post("/{order_id}/payments", response_model=PaymentResult)
def record_payment(
    order_id: str,
    body: PaymentRequest,
    db: Session = Depends(get_db),
) -> PaymentResult:
    """Record a (partial) payment; the order completes once it is covered."""
    return PaymentLedger(db).record_payment(
        order_id, body.amount_cents, body.method, body.tip_cents
    )


@router.post("/{order_id}/payments/full", response_model=PaymentResult)
def pay_in_full(
    order_id: str,
    body: FullPaymentRequest,
    db: Session = Depends(get_db),
) -> PaymentResult:
    return PaymentLedger(db).pay_in_full(order_id, body.method, body.tip_cents)
