"""
Fail work items stuck in `processing` for longer than --minutes.

Never runs on its own: invoke it after a crashed invocation, or set
STALE_PROCESSING_MINUTES to let the in-process scheduler do it.
"""

import argparse
import asyncio
import sys
import os
import logging
from datetime import timedelta

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import async_session_maker, dispose_engine
from core.logging import setup_logging
from enrichment.store import WorkQueueStore

logger = logging.getLogger(__name__)


async def release(minutes: int) -> int:
    try:
        async with async_session_maker() as session:
            released = await WorkQueueStore(session).release_stale(timedelta(minutes=minutes))
        logger.info(f"Released {released} stale work items")
        return released
    finally:
        await dispose_engine()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Release work items stuck in processing")
    parser.add_argument("--minutes", type=int, required=True, help="Age threshold in minutes")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(release(args.minutes))
