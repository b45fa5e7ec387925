"""
Outbox processor for publishing events from the outbox table.

Reads PENDING events and delivers them after the business transaction
committed:
- change notifications go to Redis pub/sub channels
- SALES_SYNC_REQUESTED events go to the HQ sales sync client

Failed deliveries return to PENDING and are retried up to
settings.outbox_max_retries, then marked FAILED. Delivery never touches
the order that produced the event.

This processor can run:
1. As a FastAPI background task (lifespan startup)
2. As a one-shot job (`cli.py outbox-run-once`)
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import redis.asyncio as redis
from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from pos_api.models import OutboxEvent, OutboxStatus
from pos_api.services.integrations.sales_sync import SalesSyncClient, get_sales_sync_client
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.db import SessionLocal
from shared.infrastructure.events import (
    CHANNEL_INVENTORY,
    CHANNEL_ORDERS,
    CHANNEL_TABLES,
    INVENTORY_ALERT,
    SALES_SYNC_REQUESTED,
    Event,
    get_redis_pool,
    publish_event,
)
from shared.utils.exceptions import ExternalServiceError

logger = get_logger(__name__)

RedisGetter = Callable[[], Awaitable[redis.Redis]]


def channel_for(event: OutboxEvent) -> str:
    """Redis channel for a change notification."""
    if event.event_type == INVENTORY_ALERT:
        return CHANNEL_INVENTORY
    if event.aggregate_type == "table":
        return CHANNEL_TABLES
    return CHANNEL_ORDERS


def to_notification(event: OutboxEvent, payload: dict[str, Any]) -> Event:
    if event.aggregate_type == "table":
        return Event(type=event.event_type, table_id=payload.get("table_id"), entity=payload)
    return Event(
        type=event.event_type,
        order_id=payload.get("order_id", event.aggregate_id),
        table_id=payload.get("table_id"),
        entity=payload,
    )


class OutboxProcessor:
    """
    Processes outbox events: Redis notifications and HQ sales sync.

    The processor runs in a loop, polling for PENDING events. It handles:
    - Batch fetching (oldest first)
    - Status transitions (PENDING → PROCESSING → PUBLISHED/FAILED)
    - Retry up to the configured maximum
    - Graceful shutdown
    """

    def __init__(
        self,
        session_factory: sessionmaker | Callable[[], Session] = SessionLocal,
        redis_getter: RedisGetter = get_redis_pool,
        sales_sync: SalesSyncClient | None = None,
        batch_size: int | None = None,
        max_retries: int | None = None,
        poll_interval: float | None = None,
    ):
        self._session_factory = session_factory
        self._redis_getter = redis_getter
        self._sales_sync = sales_sync
        self._batch_size = batch_size or settings.outbox_batch_size
        self._max_retries = max_retries or settings.outbox_max_retries
        self._poll_interval = poll_interval or settings.outbox_poll_interval_seconds
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def sales_sync(self) -> SalesSyncClient:
        if self._sales_sync is None:
            self._sales_sync = get_sales_sync_client()
        return self._sales_sync

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the processor loop."""
        if self._running:
            logger.warning("Outbox processor already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Outbox processor started")

    async def stop(self) -> None:
        """Stop the processor gracefully."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Outbox processor stopped")

    async def _run_loop(self) -> None:
        while self._running:
            try:
                processed = await self.process_batch()
                if processed == 0:
                    await asyncio.sleep(self._poll_interval)
            except Exception as e:
                logger.error("Outbox processor error", error=str(e))
                await asyncio.sleep(self._poll_interval)

    async def process_batch(self) -> int:
        """
        Process a batch of PENDING events.

        Returns:
            Number of events delivered
        """
        db = self._session_factory()
        try:
            events = db.execute(
                select(OutboxEvent)
                .where(OutboxEvent.status == OutboxStatus.PENDING)
                .order_by(OutboxEvent.created_at.asc(), OutboxEvent.id.asc())
                .limit(self._batch_size)
                .with_for_update(skip_locked=True)
            ).scalars().all()

            if not events:
                return 0

            event_ids = [e.id for e in events]
            db.execute(
                update(OutboxEvent)
                .where(OutboxEvent.id.in_(event_ids))
                .values(status=OutboxStatus.PROCESSING)
            )
            db.commit()

            delivered = 0
            for event in events:
                if await self._deliver(event):
                    event.status = OutboxStatus.PUBLISHED
                    event.processed_at = datetime.now(timezone.utc)
                    event.last_error = None
                    delivered += 1
                else:
                    event.retry_count += 1
                    if event.retry_count >= self._max_retries:
                        event.status = OutboxStatus.FAILED
                        logger.error(
                            "Outbox event failed after max retries",
                            event_id=event.id,
                            event_type=event.event_type,
                        )
                    else:
                        event.status = OutboxStatus.PENDING

            db.commit()
            logger.info("Outbox batch processed", total=len(events), delivered=delivered)
            return delivered

        except Exception as e:
            db.rollback()
            logger.error("Outbox batch processing failed", error=str(e))
            return 0
        finally:
            db.close()

    async def _deliver(self, event: OutboxEvent) -> bool:
        """Deliver one event. Returns True on success."""
        try:
            payload = json.loads(event.payload)
            if event.event_type == SALES_SYNC_REQUESTED:
                await self.sales_sync.sync_transaction(payload)
            else:
                redis_client = await self._redis_getter()
                await publish_event(redis_client, channel_for(event), to_notification(event, payload))
            return True

        except (redis.RedisError, OSError, ValueError, KeyError, ExternalServiceError) as e:
            event.last_error = str(getattr(e, "detail", None) or e)
            logger.error(
                "Failed to deliver outbox event",
                event_id=event.id,
                event_type=event.event_type,
                error=event.last_error,
            )
            return False


# Singleton instance
_processor: OutboxProcessor | None = None


def get_outbox_processor() -> OutboxProcessor:
    """Get the singleton outbox processor instance."""
    global _processor
    if _processor is None:
        _processor = OutboxProcessor()
    return _processor


async def start_outbox_processor() -> None:
    """Start the outbox processor (call in FastAPI lifespan startup)."""
    await get_outbox_processor().start()


async def stop_outbox_processor() -> None:
    """Stop the outbox processor (call in FastAPI lifespan shutdown)."""
    await get_outbox_processor().stop()


async def process_pending_events_once() -> int:
    """Process pending outbox events once (manual triggering)."""
    return await get_outbox_processor().process_batch()
