"""
SQLAlchemy ORM Models Package.

- base: Base class and TimestampMixin
- catalog: MenuCategory, MenuItem
- inventory: InventoryItem, InventoryMovement
- order: Order, OrderItem
- billing: Payment
- table: RestaurantTable
- employee: Employee, Timesheet
- outbox: OutboxEvent
- offline: LocalBase, QueuedOrder (terminal-local store)
"""

from .base import Base, TimestampMixin
from .catalog import MenuCategory, MenuItem
from .inventory import InventoryItem, InventoryMovement
from .order import Order, OrderItem
from .billing import Payment
from .table import RestaurantTable
from .employee import Employee, Timesheet
from .outbox import OutboxEvent, OutboxStatus
from .offline import LocalBase, QueuedOrder

__all__ = [
    "Base",
    "TimestampMixin",
    "MenuCategory",
    "MenuItem",
    "InventoryItem",
    "InventoryMovement",
    "Order",
    "OrderItem",
    "Payment",
    "RestaurantTable",
    "Employee",
    "Timesheet",
    "OutboxEvent",
    "OutboxStatus",
    "LocalBase",
    "QueuedOrder",
]
