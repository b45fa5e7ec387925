"""
Change notifications via Redis pub/sub.

- circuit_breaker.py: Circuit breaker shared by best-effort collaborators
- event_types.py: Event type constants
- event_schema.py: Event dataclass with validation
- channels.py: Channel naming
- redis_pool.py: Connection pool management
- publisher.py: publish_event with retry
"""

from .circuit_breaker import (
    CircuitState,
    CircuitBreaker,
    get_event_circuit_breaker,
    calculate_retry_delay_with_jitter,
)
from .event_types import (
    ORDER_CREATED,
    ORDER_ITEMS_ADDED,
    ORDER_STATUS_CHANGED,
    ORDER_COMPLETED,
    ORDER_CANCELLED,
    ORDER_VOIDED,
    ORDER_REFUNDED,
    PAYMENT_RECORDED,
    INVENTORY_ALERT,
    TABLE_STATUS_CHANGED,
    SALES_SYNC_REQUESTED,
    MAX_EVENT_SIZE,
)
from .event_schema import Event
from .channels import (
    CHANNEL_ORDERS,
    CHANNEL_INVENTORY,
    CHANNEL_TABLES,
)
from .redis_pool import get_redis_pool, check_redis_health, close_redis_pool
from .publisher import publish_event

__all__ = [
    "CircuitState",
    "CircuitBreaker",
    "get_event_circuit_breaker",
    "calculate_retry_delay_with_jitter",
    "ORDER_CREATED",
    "ORDER_ITEMS_ADDED",
    "ORDER_STATUS_CHANGED",
    "ORDER_COMPLETED",
    "ORDER_CANCELLED",
    "ORDER_VOIDED",
    "ORDER_REFUNDED",
    "PAYMENT_RECORDED",
    "INVENTORY_ALERT",
    "TABLE_STATUS_CHANGED",
    "SALES_SYNC_REQUESTED",
    "MAX_EVENT_SIZE",
    "Event",
    "CHANNEL_ORDERS",
    "CHANNEL_INVENTORY",
    "CHANNEL_TABLES",
    "get_redis_pool",
    "check_redis_health",
    "close_redis_pool",
    "publish_event",
]
