import logging
from datetime import timedelta
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import async_sessionmaker
from core.config import settings
from core.database import async_session_maker
from enrichment.caller import RateLimitedCaller
from enrichment.clients import GenerationClient
from enrichment.harness import WorkerHarness
from enrichment.orchestrator import Orchestrator
from enrichment.store import WorkQueueStore
from models.base import TaskType

logger = logging.getLogger(__name__)

# Minute offsets within each window; the orchestrator always runs first
BOT_MINUTE_OFFSETS = {
    TaskType.IMPROVE: 10,
    TaskType.VIDEO: 15,
    TaskType.MERMAID: 20,
    TaskType.ELI5: 30,
    TaskType.TLDR: 35,
    TaskType.COMPANY: 45,
}


class EnrichmentScheduler:
    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        window_hours: Optional[int] = None
    ):
        self.scheduler = AsyncIOScheduler()
        self.SessionLocal = session_factory or async_session_maker
        self.window_hours = window_hours or settings.SCHEDULER_WINDOW_HOURS

    async def run_orchestrator_job(self):
        """Job to scan for gaps and enqueue work"""
        logger.info("Scheduler: Starting orchestrator job")
        async with self.SessionLocal() as session:
            try:
                caller = RateLimitedCaller.from_settings(GenerationClient(), name="classify")
                result = await Orchestrator(session, caller=caller).run()
                logger.info(f"Scheduler: orchestrator created {result['created']} work items")
            except Exception as e:
                logger.error(f"Scheduler: orchestrator job failed - {e}")

    async def run_bot_job(self, task_type: TaskType):
        """Job to run one invocation of a specialized worker"""
        logger.info(f"Scheduler: Starting {task_type.value} job")
        async with self.SessionLocal() as session:
            try:
                result = await WorkerHarness(session).run(task_type)
                logger.info(f"Scheduler: {task_type.value} finished with {result['status']}")
            except Exception as e:
                logger.error(f"Scheduler: {task_type.value} job failed - {e}")

    async def release_stale_job(self):
        """Opt-in job failing items stuck in processing"""
        async with self.SessionLocal() as session:
            try:
                await WorkQueueStore(session).release_stale(
                    timedelta(minutes=settings.STALE_PROCESSING_MINUTES)
                )
            except Exception as e:
                logger.error(f"Scheduler: stale release failed - {e}")

    def register_jobs(self):
        hours = f"*/{self.window_hours}"
        self.scheduler.add_job(
            self.run_orchestrator_job,
            trigger=CronTrigger(hour=hours, minute=0),
            id="orchestrator",
            replace_existing=True,
            max_instances=1
        )
        for task_type, minute in BOT_MINUTE_OFFSETS.items():
            self.scheduler.add_job(
                self.run_bot_job,
                trigger=CronTrigger(hour=hours, minute=minute),
                args=[task_type],
                id=f"bot_{task_type.value}",
                replace_existing=True,
                max_instances=1
            )
        if settings.STALE_PROCESSING_MINUTES:
            self.scheduler.add_job(
                self.release_stale_job,
                trigger=IntervalTrigger(minutes=settings.STALE_PROCESSING_MINUTES),
                id="release_stale",
                replace_existing=True,
                max_instances=1
            )

    def start(self):
        """Start the scheduler"""
        self.register_jobs()
        self.scheduler.start()
        logger.info(f"Enrichment scheduler started ({len(self.scheduler.get_jobs())} jobs)")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("Enrichment scheduler stopped")
