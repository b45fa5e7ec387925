"""
Outbox service for transactional event publishing.

Usage in services:
    1. Perform business logic (complete order, record payment, ...)
    2. Call write_outbox_event() with the same db session
    3. Commit the transaction (business data and event are atomic)
"""

import json
from typing import Any

from sqlalchemy.orm import Session

from pos_api.models import Order, OutboxEvent, OutboxStatus
from shared.config.logging import get_logger

logger = get_logger(__name__)


def write_outbox_event(
    db: Session,
    event_type: str,
    aggregate_type: str,
    aggregate_id: str | int,
    payload: dict[str, Any],
) -> OutboxEvent:
    """
    Write an event to the outbox table.

    MUST be called within the same transaction as the business operation.
    Does not flush or commit; the caller controls the transaction.
    """
    outbox_event = OutboxEvent(
        event_type=event_type,
        aggregate_type=aggregate_type,
        aggregate_id=str(aggregate_id),
        payload=json.dumps(payload, default=str),
        status=OutboxStatus.PENDING,
        retry_count=0,
    )
    db.add(outbox_event)
    logger.debug(
        "Outbox event queued",
        event_type=event_type,
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
    )
    return outbox_event


def write_order_event(
    db: Session,
    event_type: str,
    order: Order,
    extra_data: dict[str, Any] | None = None,
) -> OutboxEvent:
    """Write an order lifecycle event with the order's headline figures."""
    payload = {
        "order_id": order.id,
        "status": order.status,
        "table_id": order.table_id,
        "employee_id": order.employee_id,
        "total_cents": order.total_cents,
    }
    if extra_data:
        payload.update(extra_data)

    return write_outbox_event(
        db=db,
        event_type=event_type,
        aggregate_type="order",
        aggregate_id=order.id,
        payload=payload,
    )


def write_table_event(
    db: Session,
    event_type: str,
    table_id: int,
    status: str,
) -> OutboxEvent:
    return write_outbox_event(
        db=db,
        event_type=event_type,
        aggregate_type="table",
        aggregate_id=table_id,
        payload={"table_id": table_id, "status": status},
    )
