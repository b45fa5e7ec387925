"""
Event Type Constants.

Change notifications published to Redis so terminals and kitchen
displays can refresh without waiting for the next poll.
"""

from shared.config.settings import settings

# =============================================================================
# Order lifecycle events
# Flow: CREATED -> STATUS_CHANGED (preparing/ready) -> COMPLETED
# =============================================================================

ORDER_CREATED = "ORDER_CREATED"
ORDER_ITEMS_ADDED = "ORDER_ITEMS_ADDED"  # Additional kitchen send on an open tab
ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"
ORDER_COMPLETED = "ORDER_COMPLETED"
ORDER_CANCELLED = "ORDER_CANCELLED"
ORDER_VOIDED = "ORDER_VOIDED"
ORDER_REFUNDED = "ORDER_REFUNDED"

# =============================================================================
# Billing events
# =============================================================================

PAYMENT_RECORDED = "PAYMENT_RECORDED"

# =============================================================================
# Inventory events
# =============================================================================

INVENTORY_ALERT = "INVENTORY_ALERT"

# =============================================================================
# Table events
# =============================================================================

TABLE_STATUS_CHANGED = "TABLE_STATUS_CHANGED"

# =============================================================================
# Third-party reporting
# =============================================================================

SALES_SYNC_REQUESTED = "SALES_SYNC_REQUESTED"

# =============================================================================
# Size limits
# =============================================================================

MAX_EVENT_SIZE = settings.max_event_size
