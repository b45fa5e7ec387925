"""
Terminal router: cart, table selection, parking and kitchen sends.

Each terminal id owns one TerminalSession in the registry.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pos_api.core.dependencies import terminal_registry
from pos_api.services.domain.table_session import (
    TableSessionManager,
    TerminalRegistry,
    TerminalSession,
)
from shared.infrastructure.db import get_db
from shared.utils.schemas import (
    ERROR_RESPONSES,
    AddCartItemRequest,
    CartItem,
    CartOutput,
    HeldOrder,
    SendToKitchenRequest,
    SendToKitchenResult,
    TicketJob,
    UpdateQuantityRequest,
    WalkInCheckoutRequest,
    WalkInCheckoutResult,
)

router = APIRouter(prefix="/api/terminals", tags=["terminals"], responses=ERROR_RESPONSES)


def _cart(session: TerminalSession) -> CartOutput:
    with session.lock:
        return CartOutput(
            terminal_id=session.terminal_id,
            active_table_id=session.active_table_id,
            items=session.snapshot(),
            totals=session.cart_totals(),
            held_table_ids=sorted(session.held_orders),
        )


def _manager(db: Session, registry: TerminalRegistry, terminal_id: str) -> TableSessionManager:
    return TableSessionManager(db, registry.get(terminal_id))


@router.get("/{terminal_id}/cart", response_model=CartOutput)
def get_cart(
    terminal_id: str,
    registry: TerminalRegistry = Depends(terminal_registry),
) -> CartOutput:
    return _cart(registry.get(terminal_id))


@router.post("/{terminal_id}/cart/items", response_model=CartItem, status_code=status.HTTP_201_CREATED)
def add_cart_item(
    terminal_id: str,
    body: AddCartItemRequest,
    db: Session = Depends(get_db),
    registry: TerminalRegistry = Depends(terminal_registry),
) -> CartItem:
    """Always adds a new line, even for an item already in the cart."""
    return _manager(db, registry, terminal_id).add_menu_item(
        body.menu_item_id, body.quantity, body.modifiers, body.notes, body.seat
    )


@router.patch("/{terminal_id}/cart/items/{cart_id}", response_model=CartOutput)
def update_cart_item(
    terminal_id: str,
    cart_id: str,
    body: UpdateQuantityRequest,
    registry: TerminalRegistry = Depends(terminal_registry),
) -> CartOutput:
    session = registry.get(terminal_id)
    with session.lock:
        session.update_quantity(cart_id, body.quantity)
    return _cart(session)


@router.delete("/{terminal_id}/cart/items/{cart_id}", response_model=CartOutput)
def remove_cart_item(
    terminal_id: str,
    cart_id: str,
    registry: TerminalRegistry = Depends(terminal_registry),
) -> CartOutput:
    session = registry.get(terminal_id)
    with session.lock:
        session.remove_line(cart_id)
    return _cart(session)


@router.delete("/{terminal_id}/cart", response_model=CartOutput)
def clear_cart(
    terminal_id: str,
    registry: TerminalRegistry = Depends(terminal_registry),
) -> CartOutput:
    session = registry.get(terminal_id)
    with session.lock:
        session.clear_cart()
    return _cart(session)


@router.post("/{terminal_id}/select-table/{table_id}", response_model=CartOutput)
def select_table(
    terminal_id: str,
    table_id: int,
    db: Session = Depends(get_db),
    registry: TerminalRegistry = Depends(terminal_registry),
) -> CartOutput:
    manager = _manager(db, registry, terminal_id)
    manager.select_table(table_id)
    return _cart(manager.session)


@router.post("/{terminal_id}/park", response_model=HeldOrder)
def park_order(
    terminal_id: str,
    db: Session = Depends(get_db),
    registry: TerminalRegistry = Depends(terminal_registry),
) -> HeldOrder:
    return _manager(db, registry, terminal_id).park_order()


@router.post("/{terminal_id}/send-to-kitchen", response_model=SendToKitchenResult)
def send_to_kitchen(
    terminal_id: str,
    body: SendToKitchenRequest | None = None,
    db: Session = Depends(get_db),
    registry: TerminalRegistry = Depends(terminal_registry),
) -> SendToKitchenResult:
    employee_id = body.employee_id if body else None
    return _manager(db, registry, terminal_id).send_to_kitchen(employee_id)


@router.post("/{terminal_id}/checkout", response_model=WalkInCheckoutResult, status_code=status.HTTP_201_CREATED)
def checkout(
    terminal_id: str,
    body: WalkInCheckoutRequest,
    db: Session = Depends(get_db),
    registry: TerminalRegistry = Depends(terminal_registry),
) -> WalkInCheckoutResult:
    """Persist the walk-in cart (no table selected) as a pending order."""
    order_id, jobs = _manager(db, registry, terminal_id).checkout(
        order_type=body.order_type,
        employee_id=body.employee_id,
        customer_name=body.customer_name,
        customer_phone=body.customer_phone,
        delivery_address=body.delivery_address,
        guest_count=body.guest_count,
    )
    return WalkInCheckoutResult(order_id=order_id, jobs=jobs)


@router.get("/{terminal_id}/print-queue", response_model=list[TicketJob])
def get_print_queue(
    terminal_id: str,
    registry: TerminalRegistry = Depends(terminal_registry),
) -> list[TicketJob]:
    session = registry.get(terminal_id)
    with session.lock:
        return list(session.print_queue)


@router.post("/{terminal_id}/print-queue/drain", response_model=list[TicketJob])
def drain_print_queue(
    terminal_id: str,
    registry: TerminalRegistry = Depends(terminal_registry),
) -> list[TicketJob]:
    """Hand the queued tickets to the printer and empty the queue."""
    session = registry.get(terminal_id)
    with session.lock:
        return session.drain_print_queue()
