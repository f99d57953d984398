"""
Health check endpoint with database and bot run status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from api.dependencies import get_db
from enrichment.store import WorkQueueStore
from models.base import RunStatus
from schemas.api import HealthCheckResponse, BotRunInfo
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


def derive_status(database_connected: bool, failed_bots: int, total_bots: int) -> str:
    """healthy: no failing bots; degraded: some; unhealthy: all or no database"""
    if not database_connected:
        return "unhealthy"
    if total_bots == 0 or failed_bots == 0:
        return "healthy"
    if failed_bots < total_bots:
        return "degraded"
    return "unhealthy"


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Last run of every bot
    - Derived overall status
    """
    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    last_runs = []
    failed_bots = []

    if db_connected:
        try:
            runs = await WorkQueueStore(db).last_run_per_bot()
            for bot_name in sorted(runs):
                run = runs[bot_name]
                last_runs.append(BotRunInfo.model_validate(run))
                if run.status == RunStatus.FAILED:
                    failed_bots.append(bot_name)
        except Exception as e:
            logger.error(f"Failed to fetch bot runs: {str(e)}")

    return HealthCheckResponse(
        status=derive_status(db_connected, len(failed_bots), len(last_runs)),
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        last_runs=last_runs,
        failed_bots=failed_bots
    )
