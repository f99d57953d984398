"""
Work queue statistics endpoint
"""
from datetime import datetime
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db
from enrichment.store import WorkQueueStore
from schemas.api import QueueStatsResponse, BotRunInfo
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Statistics"])


@router.get("/stats/queue", response_model=QueueStatsResponse)
async def get_queue_stats(
    request: Request,
    limit: int = Query(10, ge=1, le=100, description="Number of recent runs to return"),
    db: AsyncSession = Depends(get_db)
):
    """
    Get work queue statistics.

    Returns:
    - Item counts per task type and status
    - Age of the oldest pending item
    - Recent bot run history
    """
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")
    logger.info(f"[{request_id}] GET /stats/queue")

    store = WorkQueueStore(db)
    counts = await store.queue_counts()
    oldest = await store.oldest_pending_at()
    runs = await store.recent_runs(limit)

    return QueueStatsResponse(
        counts=counts,
        total_pending=sum(c["pending"] for c in counts.values()),
        total_processing=sum(c["processing"] for c in counts.values()),
        oldest_pending_at=oldest,
        oldest_pending_age_seconds=round((datetime.utcnow() - oldest).total_seconds(), 1) if oldest else None,
        recent_runs=[BotRunInfo.model_validate(run) for run in runs],
        request_id=request_id
    )
