"""
Offline sync router.

Terminals post captured orders here; when the backing store is down they
are buffered in the local queue and replayed by `POST /api/sync/run`.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pos_api.core.dependencies import offline_queue
from pos_api.services.domain.offline_queue import OfflineQueue
from shared.infrastructure.db import get_db
from shared.utils.schemas import ERROR_RESPONSES, EnqueueResult, OrderPayload, QueuedOrderOutput, SyncResult

router = APIRouter(prefix="/api/sync", tags=["sync"], responses=ERROR_RESPONSES)


@router.post("/orders", response_model=EnqueueResult)
def enqueue_or_upload(
    body: OrderPayload,
    db: Session = Depends(get_db),
    queue: OfflineQueue = Depends(offline_queue),
) -> EnqueueResult:
    return queue.enqueue_or_upload(body, db)


@router.post("/run", response_model=SyncResult)
def run_sync(
    db: Session = Depends(get_db),
    queue: OfflineQueue = Depends(offline_queue),
) -> SyncResult:
    """Replay queued orders (FIFO, stops at the first failure)."""
    return queue.sync_result(db)


@router.get("/pending", response_model=list[QueuedOrderOutput])
def list_pending(queue: OfflineQueue = Depends(offline_queue)) -> list[QueuedOrderOutput]:
    return [QueuedOrderOutput.model_validate(e) for e in queue.pending()]
