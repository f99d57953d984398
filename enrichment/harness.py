"""
Worker Harness - runs one invocation of a specialized worker.

Invocation phases:
1. Record a BotRun
2. Claim a batch of pending items for the task type
3. Process items sequentially in claim order
4. Close the BotRun with success / partial / failed

One item's failure is recorded on that item and never aborts the batch.
"""

from typing import Any, Callable, Dict, List, Optional, Union
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from core.config import settings
from core.exceptions import (
    EnrichmentException,
    QuestionNotFoundError,
    WorkItemStateError,
    summarize_error,
)
from enrichment.store import WorkQueueStore
from enrichment.workers import SpecializedWorker, build_worker
from models.base import RunStatus, TaskType

logger = logging.getLogger(__name__)

WorkerSource = Union[Dict[TaskType, SpecializedWorker], Callable[[TaskType], SpecializedWorker]]


class WorkerHarness:
    """
    Claim -> execute -> complete/fail loop shared by every task type.

    Responsibilities:
    - Claim only items of the requested task type
    - Hand each question to the worker and write back its owned fields
    - Convert per-item errors into failed work items
    - Record accurate BotRun metrics
    """

    def __init__(self, db_session: AsyncSession, workers: Optional[WorkerSource] = None):
        self.db = db_session
        self.store = WorkQueueStore(db_session)
        self._workers = workers if workers is not None else build_worker

    def worker_for(self, task_type: TaskType) -> SpecializedWorker:
        if callable(self._workers):
            return self._workers(task_type)
        return self._workers[task_type]

    async def run(self, task_type: TaskType, batch_size: Optional[int] = None) -> Dict[str, Any]:
        """
        Run one invocation for `task_type`.

        Returns:
            Dictionary with run statistics:
            - status: "success", "partial" or "failed"
            - claimed: Number of items claimed
            - completed / failed / skipped: Per-outcome counts
            - run_id: BotRun id
            - errors: List of per-item error details
        """
        task_type = TaskType(task_type)
        batch_size = batch_size or settings.WORKER_BATCH_SIZE
        worker = self.worker_for(task_type)

        run = await self.store.start_run(task_type.value)
        run_id = run.id

        completed = 0
        failed = 0
        skipped = 0
        errors: List[Dict[str, Any]] = []

        # --------------------------------------------------
        # PHASE 1: CLAIM
        # --------------------------------------------------
        items = await self.store.claim_batch(task_type, batch_size)
        # Plain values: a rollback inside the store expires ORM instances
        claimed = [(item.id, item.question_id) for item in items]

        if not claimed:
            logger.info(f"{task_type.value}: no pending work")
            await self.store.finish_run(run_id, RunStatus.SUCCESS, summary={"message": "No pending work"})
            return {
                "status": RunStatus.SUCCESS.value,
                "claimed": 0,
                "completed": 0,
                "failed": 0,
                "skipped": 0,
                "run_id": run_id,
                "errors": [],
            }

        # --------------------------------------------------
        # PHASE 2: PROCESS (sequential, claim order)
        # --------------------------------------------------
        for item_id, question_id in claimed:
            try:
                question = await self.store.get_question(question_id)
                if question is None:
                    raise QuestionNotFoundError(
                        "Question for work item no longer exists",
                        context={"work_item_id": item_id, "question_id": question_id}
                    )

                output = await worker.execute(question)
                await self.store.complete(item_id, output.result_payload(), output.fields)
                completed += 1
                logger.info(f"{task_type.value}: completed item {item_id} ({question_id})")

            except WorkItemStateError as e:
                # Released or finished elsewhere while we worked on it
                skipped += 1
                logger.warning(f"{task_type.value}: item {item_id} left processing, skipping: {e.message}")

            except Exception as e:
                failed += 1
                reason = summarize_error(e)
                error_detail = {
                    "work_item_id": item_id,
                    "question_id": question_id,
                    "error_type": type(e).__name__,
                    "error_message": reason,
                }
                errors.append(error_detail)
                logger.error(
                    f"{task_type.value}: item {item_id} failed: {reason}",
                    extra={"error_context": e.to_dict() if isinstance(e, EnrichmentException) else error_detail}
                )
                # Discard anything a half-finished complete() left in the transaction
                await self.db.rollback()
                await self._fail_item(item_id, reason)

        # --------------------------------------------------
        # PHASE 3: RUN BOOKKEEPING
        # --------------------------------------------------
        attempted = completed + failed
        if failed == 0:
            status = RunStatus.SUCCESS
        elif completed == 0 and attempted > 0:
            status = RunStatus.FAILED
        else:
            status = RunStatus.PARTIAL

        await self.store.finish_run(
            run_id,
            status,
            items_processed=len(claimed),
            items_updated=completed,
            items_failed=failed,
            summary={"skipped": skipped, "errors": errors[:20]},
        )

        logger.info(
            f"{task_type.value}: run {run_id} finished with {status.value} "
            f"({completed} completed, {failed} failed, {skipped} skipped)"
        )

        return {
            "status": status.value,
            "claimed": len(claimed),
            "completed": completed,
            "failed": failed,
            "skipped": skipped,
            "run_id": run_id,
            "errors": errors,
        }

    async def _fail_item(self, item_id: int, reason: str):
        try:
            await self.store.fail(item_id, reason)
        except WorkItemStateError:
            logger.warning(f"Work item {item_id} left processing before it could be failed")
