"""
Offline Queue.

Terminals keep taking orders when the backing store is unreachable. Orders
captured offline are written to a durable local SQLite queue and replayed
in FIFO order through the idempotent save path once connectivity returns.

Replay is safe to repeat: the save path upserts by order id and never
depletes inventory twice, so an entry that was uploaded but not marked
synced (crash between the two) is harmless when replayed again.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Protocol

from sqlalchemy import func, select, text
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from pos_api.models import LocalBase, QueuedOrder
from pos_api.services.domain.order_state_machine import OrderStateMachine
from shared.config.constants import OrderStatus, QueueStatus
from shared.config.logging import sync_logger as logger
from shared.config.settings import settings
from shared.infrastructure.db import build_engine, safe_commit
from shared.utils.exceptions import AppException, ValidationError
from shared.utils.schemas import EnqueueResult, OrderPayload, SyncResult

# Replaying these would need a manager PIN, which the queue never stores
_UNREPLAYABLE_STATUSES = frozenset({OrderStatus.VOIDED, OrderStatus.REFUNDED})


class Probe(Protocol):
    def is_online(self, db: Session) -> bool: ...


class ConnectivityProbe:
    """Reports whether the backing store answers a trivial query."""

    def is_online(self, db: Session) -> bool:
        try:
            db.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Backing store unreachable", error=str(e))
            db.rollback()
            return False


def _is_connection_error(exc: SQLAlchemyError) -> bool:
    return isinstance(exc, (OperationalError, InterfaceError))


class OfflineQueue:
    """
    Durable FIFO queue of orders waiting to reach the backing store.
    """

    def __init__(
        self,
        local_sessions: sessionmaker,
        probe: Probe | None = None,
        state_machine_factory: Callable[[Session], OrderStateMachine] = OrderStateMachine,
        max_attempts: int | None = None,
    ):
        self._local_sessions = local_sessions
        self._probe = probe or ConnectivityProbe()
        self._state_machine_factory = state_machine_factory
        self._max_attempts = max_attempts or settings.offline_max_attempts

    # -------------------------------------------------------------------------
    # Capture
    # -------------------------------------------------------------------------

    def enqueue(self, payload: OrderPayload) -> QueuedOrder:
        """Append an order to the local queue."""
        with self._local_sessions() as local:
            entry = QueuedOrder(
                order_id=payload.id,
                payload=payload.model_dump_json(),
                status=QueueStatus.PENDING,
            )
            local.add(entry)
            safe_commit(local)
            local.refresh(entry)
            local.expunge(entry)

        logger.info("Order queued offline", order_id=payload.id, queue_id=entry.id)
        return entry

    def enqueue_or_upload(self, payload: OrderPayload, db: Session) -> EnqueueResult:
        """
        Save the order to the backing store, or queue it when offline.

        Online saves go through the same idempotent path as replay. When the
        store drops mid-save the order is queued instead of lost; domain
        errors (invalid transition, bad payload) propagate.
        """
        if payload.status in _UNREPLAYABLE_STATUSES:
            raise ValidationError(
                f"Orders cannot be queued as '{payload.status}'",
                order_id=payload.id,
            )

        if not self._probe.is_online(db):
            self.enqueue(payload)
            return EnqueueResult(order=payload, queued=True)

        try:
            self._state_machine_factory(db).save_order(payload)
        except SQLAlchemyError as e:
            if not _is_connection_error(e):
                raise
            logger.warning("Upload failed, queueing order", order_id=payload.id, error=str(e))
            self.enqueue(payload)
            return EnqueueResult(order=payload, queued=True)

        return EnqueueResult(order=payload, queued=False)

    # -------------------------------------------------------------------------
    # Replay
    # -------------------------------------------------------------------------

    def sync(self, db: Session) -> int:
        """
        Replay pending entries in FIFO order; returns how many were synced.

        The first failing entry keeps its place (attempts and last_error are
        recorded) and the drain stops there, so later orders never overtake
        it. An entry rejected `offline_max_attempts` times for a reason other
        than lost connectivity is marked FAILED and the drain moves past it.
        """
        if not self._probe.is_online(db):
            logger.info("Sync skipped, backing store offline", pending=self.pending_count())
            return 0

        synced = 0
        with self._local_sessions() as local:
            entries = local.scalars(
                select(QueuedOrder)
                .where(QueuedOrder.status == QueueStatus.PENDING)
                .order_by(QueuedOrder.id)
            ).all()

            for entry in entries:
                try:
                    payload = OrderPayload.model_validate_json(entry.payload)
                    self._state_machine_factory(db).save_order(payload)
                except (AppException, SQLAlchemyError, ValueError) as e:
                    entry.attempts += 1
                    entry.last_error = str(getattr(e, "detail", None) or e)
                    offline = isinstance(e, SQLAlchemyError) and _is_connection_error(e)
                    if not offline and entry.attempts >= self._max_attempts:
                        entry.status = QueueStatus.FAILED
                        safe_commit(local)
                        logger.error(
                            "Offline replay abandoned",
                            order_id=entry.order_id,
                            queue_id=entry.id,
                            attempts=entry.attempts,
                            error=entry.last_error,
                        )
                        continue

                    safe_commit(local)
                    logger.warning(
                        "Offline replay failed",
                        order_id=entry.order_id,
                        queue_id=entry.id,
                        attempts=entry.attempts,
                        error=entry.last_error,
                    )
                    break

                entry.status = QueueStatus.SYNCED
                entry.attempts += 1
                entry.last_error = None
                entry.synced_at = datetime.now(timezone.utc)
                safe_commit(local)
                synced += 1

        remaining = self.pending_count()
        logger.info("Offline sync finished", synced=synced, pending=remaining)
        return synced

    def sync_result(self, db: Session) -> SyncResult:
        synced = self.sync(db)
        return SyncResult(synced=synced, pending=self.pending_count())

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def _entries(self, status: str) -> list[QueuedOrder]:
        with self._local_sessions() as local:
            entries = local.scalars(
                select(QueuedOrder)
                .where(QueuedOrder.status == status)
                .order_by(QueuedOrder.id)
            ).all()
            for entry in entries:
                local.expunge(entry)
            return list(entries)

    def pending(self) -> list[QueuedOrder]:
        return self._entries(QueueStatus.PENDING)

    def failed(self) -> list[QueuedOrder]:
        """Entries abandoned after too many rejected replays."""
        return self._entries(QueueStatus.FAILED)

    def pending_count(self) -> int:
        with self._local_sessions() as local:
            return local.scalar(
                select(func.count())
                .select_from(QueuedOrder)
                .where(QueuedOrder.status == QueueStatus.PENDING)
            ) or 0


def create_local_store(url: str | None = None, **engine_overrides) -> sessionmaker:
    """Create the terminal-local queue database and its session factory."""
    engine = build_engine(url or settings.offline_queue_url, **engine_overrides)
    LocalBase.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


_queue: OfflineQueue | None = None


def get_offline_queue() -> OfflineQueue:
    """Get the process-wide offline queue (created on first use)."""
    global _queue
    if _queue is None:
        _queue = OfflineQueue(create_local_store())
    return _queue
