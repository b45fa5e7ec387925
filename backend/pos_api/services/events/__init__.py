"""
Transactional outbox: writer and background processor.
"""

from .outbox_service import write_outbox_event, write_order_event, write_table_event
from .outbox_processor import (
    OutboxProcessor,
    get_outbox_processor,
    start_outbox_processor,
    stop_outbox_processor,
    process_pending_events_once,
)

__all__ = [
    "write_outbox_event",
    "write_order_event",
    "write_table_event",
    "OutboxProcessor",
    "get_outbox_processor",
    "start_outbox_processor",
    "stop_outbox_processor",
    "process_pending_events_once",
]
