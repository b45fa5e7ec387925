"""
Centralized constants for the backend application.
Avoids magic strings and repeated constants.

Usage:
    from shared.config.constants import OrderStatus, TableStatus, Department

    if order.status in OrderStatus.TERMINAL:
        ...
"""

from typing import Final


# =============================================================================
# Staff Roles
# =============================================================================


class Roles:
    """Employee role constants (stored lowercase)."""

    OWNER: Final[str] = "owner"
    ADMIN: Final[str] = "admin"
    MANAGER: Final[str] = "manager"
    CASHIER: Final[str] = "cashier"
    WAITER: Final[str] = "waiter"
    CHEF: Final[str] = "chef"

    ALL: Final[list[str]] = [OWNER, ADMIN, MANAGER, CASHIER, WAITER, CHEF]


# =============================================================================
# Entity Status Constants
# =============================================================================


class OrderStatus:
    """Order lifecycle status constants."""

    PENDING: Final[str] = "pending"
    PREPARING: Final[str] = "preparing"
    READY: Final[str] = "ready"
    COMPLETED: Final[str] = "completed"
    CANCELLED: Final[str] = "cancelled"
    VOIDED: Final[str] = "voided"
    REFUNDED: Final[str] = "refunded"

    # Status groups
    OPEN: Final[frozenset[str]] = frozenset({PENDING, PREPARING, READY})
    TERMINAL: Final[frozenset[str]] = frozenset({COMPLETED, CANCELLED, VOIDED, REFUNDED})
    ALL: Final[frozenset[str]] = OPEN | TERMINAL


# Legal transitions. Completion is the only forward transition with
# mandatory side effects; cancel/void/refund reverse inventory.
ORDER_TRANSITIONS: Final[dict[str, frozenset[str]]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
        OrderStatus.VOIDED,
    }),
    OrderStatus.PREPARING: frozenset({
        OrderStatus.READY,
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
        OrderStatus.VOIDED,
    }),
    OrderStatus.READY: frozenset({
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
        OrderStatus.VOIDED,
    }),
    OrderStatus.COMPLETED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.VOIDED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}


class TableStatus:
    """Physical table status constants."""

    AVAILABLE: Final[str] = "available"
    OCCUPIED: Final[str] = "occupied"
    BILLED: Final[str] = "billed"
    CLEANING: Final[str] = "cleaning"

    ALL: Final[frozenset[str]] = frozenset({AVAILABLE, OCCUPIED, BILLED, CLEANING})
    IN_USE: Final[frozenset[str]] = frozenset({OCCUPIED, BILLED})


class PaymentMethod:
    """Payment method labels."""

    CASH: Final[str] = "cash"
    CARD: Final[str] = "card"
    SPLIT: Final[str] = "split"


class OrderType:
    """Order channel."""

    DINE_IN: Final[str] = "dine_in"
    TAKEAWAY: Final[str] = "takeaway"
    DELIVERY: Final[str] = "delivery"

    ALL: Final[frozenset[str]] = frozenset({DINE_IN, TAKEAWAY, DELIVERY})


class MovementKind:
    """Inventory movement kinds."""

    DEPLETION: Final[str] = "DEPLETION"
    REVERSAL: Final[str] = "REVERSAL"


class Department:
    """Ticket destinations."""

    KITCHEN: Final[str] = "KITCHEN"
    BAR: Final[str] = "BAR"


# Category keywords routed to the bar and counted as drink revenue
BAR_CATEGORY_KEYWORDS: Final[tuple[str, ...]] = (
    "drink",
    "beverage",
    "wine",
    "beer",
    "cocktail",
    "bar",
)


class QueueStatus:
    """Offline queue entry status."""

    PENDING: Final[str] = "PENDING"
    SYNCED: Final[str] = "SYNCED"
    FAILED: Final[str] = "FAILED"  # gave up after offline_max_attempts


# =============================================================================
# Validation Limits
# =============================================================================


class Limits:
    """Validation limits."""

    # Quantity limits
    MIN_QUANTITY: Final[int] = 1
    MAX_QUANTITY: Final[int] = 99

    # Price limits (in cents)
    MIN_PRICE_CENTS: Final[int] = 0
    MAX_PRICE_CENTS: Final[int] = 100_000_00

    # String lengths
    MAX_NAME_LENGTH: Final[int] = 200
    MAX_NOTES_LENGTH: Final[int] = 500

    # Order history
    RECENT_ORDERS_LIMIT: Final[int] = 100
