"""
Run one bot invocation: the orchestrator scan or a single specialized worker.

Intended for cron / CI schedulers:
    python scripts/run_bot.py orchestrator
    python scripts/run_bot.py mermaid --batch-size 5

Exit code is 1 when the invocation failed outright.
"""

import argparse
import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import async_session_maker, dispose_engine
from core.logging import setup_logging
from enrichment.caller import RateLimitedCaller
from enrichment.clients import GenerationClient
from enrichment.harness import WorkerHarness
from enrichment.orchestrator import Orchestrator
from models.base import TaskType

logger = logging.getLogger(__name__)

BOT_CHOICES = ["orchestrator"] + [t.value for t in TaskType]


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run one enrichment bot invocation")
    parser.add_argument("bot", choices=BOT_CHOICES, help="orchestrator or a task type")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.WORKER_BATCH_SIZE,
        help="Items claimed per worker invocation"
    )
    parser.add_argument(
        "--no-reclassify",
        action="store_true",
        help="Orchestrator only: skip the reclassification pass"
    )
    return parser.parse_args(argv)


async def run_bot(bot: str, batch_size: int, reclassify: bool = True) -> dict:
    async with async_session_maker() as session:
        if bot == "orchestrator":
            caller = RateLimitedCaller.from_settings(GenerationClient(), name="classify") if reclassify else None
            return await Orchestrator(session, caller=caller).run()
        return await WorkerHarness(session).run(TaskType(bot), batch_size)


async def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        result = await run_bot(args.bot, args.batch_size, reclassify=not args.no_reclassify)
        logger.info(f"{args.bot} finished: {result}")
        return 1 if result.get("status") == "failed" else 0
    except Exception as e:
        logger.error(f"{args.bot} invocation error: {str(e)}")
        return 1
    finally:
        await dispose_engine()


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(main()))
