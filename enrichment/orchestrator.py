"""
Orchestrator - discovers enrichment gaps and emits work items.

The orchestrator never enriches anything itself. For each task type it asks
the store which questions have an empty or unusable owned field and enqueues
one pending item per question. Re-running the scan is idempotent: the dedup
invariant turns repeat enqueues into DuplicatePendingError, which is skipped.

It also runs the reclassification pass: questions whose channel/sub-channel
are not in the taxonomy are classified by the generation service and written
directly (outside the queue, ledger-logged).
"""

from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from core.config import settings
from core.exceptions import (
    ClassificationError,
    DuplicatePendingError,
    EnrichmentException,
    summarize_error,
)
from enrichment.caller import RateLimitedCaller
from enrichment.store import WorkQueueStore
from enrichment.taxonomy import is_valid_classification, taxonomy_prompt_block
from enrichment.validators import parse_json
from models.base import RunStatus, TaskType
from schemas.generation import GenerationRequest
from schemas.work import WorkItemCreate

logger = logging.getLogger(__name__)

ORCHESTRATOR_NAME = "orchestrator"

DEFAULT_PRIORITIES: Dict[TaskType, int] = {
    TaskType.IMPROVE: 3,
    TaskType.VIDEO: 4,
    TaskType.MERMAID: 5,
    TaskType.ELI5: 6,
    TaskType.TLDR: 6,
    TaskType.COMPANY: 7,
}

GAP_REASONS: Dict[TaskType, str] = {
    TaskType.MERMAID: "diagram missing or invalid",
    TaskType.ELI5: "eli5 missing",
    TaskType.TLDR: "tldr missing",
    TaskType.COMPANY: "companies missing",
    TaskType.VIDEO: "videos not verified recently",
    TaskType.IMPROVE: "answer or explanation too short",
}

CLASSIFY_PROMPT = """Classify this interview question into exactly one channel
and one sub-channel from the list below (sub-channel "general" is allowed for
any channel).

{taxonomy}

Question: "{question}"

Output this exact JSON structure:
{{"channel":"...","subChannel":"..."}}

Return ONLY the JSON object."""


def default_priority(task_type: TaskType) -> int:
    return DEFAULT_PRIORITIES[TaskType(task_type)]


class Orchestrator:
    """
    Attributes:
        store: Work queue store bound to the session
        caller: Rate-limited generation caller; reclassification is skipped without one
        scan_limit: Max questions enqueued per task type per scan
    """

    def __init__(
        self,
        db_session: AsyncSession,
        caller: Optional[RateLimitedCaller] = None,
        scan_limit: Optional[int] = None,
        reclassify_limit: Optional[int] = None
    ):
        self.db = db_session
        self.store = WorkQueueStore(db_session)
        self.caller = caller
        self.scan_limit = scan_limit or settings.ORCHESTRATOR_SCAN_LIMIT
        self.reclassify_limit = reclassify_limit or settings.RECLASSIFY_LIMIT
        self.scan_errors: List[Dict[str, Any]] = []

    async def scan(self) -> int:
        """
        Enqueue work for every gap found.

        Records that cannot be enqueued are logged, kept in `scan_errors`
        and skipped.

        Returns:
            Number of work items created
        """
        created = 0
        self.scan_errors = []
        for task_type in TaskType:
            created += await self.scan_task_type(task_type)
        logger.info(f"Orchestrator scan created {created} work items ({len(self.scan_errors)} records skipped)")
        return created

    async def scan_task_type(self, task_type: TaskType) -> int:
        question_ids = await self.store.scan_missing_fields(
            task_type,
            limit=self.scan_limit,
            exclude_open=True
        )
        created = 0
        for question_id in question_ids:
            try:
                await self.store.create_work_item(WorkItemCreate(
                    question_id=question_id,
                    task_type=task_type,
                    priority=default_priority(task_type),
                    reason=GAP_REASONS[task_type],
                    created_by=ORCHESTRATOR_NAME,
                ))
                created += 1
            except DuplicatePendingError:
                continue
            except EnrichmentException as e:
                # One unusable record never ends the scan
                await self.db.rollback()
                self.scan_errors.append({
                    "question_id": question_id,
                    "task_type": task_type.value,
                    "error": e.summary(),
                })
                logger.warning(
                    f"{task_type.value}: could not enqueue {question_id}: {e.summary()}",
                    extra={"error_context": e.to_dict()}
                )

        if question_ids:
            logger.info(f"{task_type.value}: {len(question_ids)} gaps, {created} items queued")
        return created

    async def reclassify(self) -> Dict[str, int]:
        """
        Fix questions whose channel/sub-channel are not in the taxonomy.

        Per-question failures are logged and skipped.

        Returns:
            {"checked", "invalid", "reclassified", "failed"}
        """
        stats = {"checked": 0, "invalid": 0, "reclassified": 0, "failed": 0}
        if self.caller is None:
            logger.info("Reclassification skipped: no generation caller configured")
            return stats

        candidates = await self.store.classification_candidates()
        for question_id, text, channel, sub_channel in candidates:
            stats["checked"] += 1
            if is_valid_classification(channel, sub_channel):
                continue

            if stats["invalid"] >= self.reclassify_limit:
                break
            stats["invalid"] += 1

            try:
                new_channel, new_sub_channel = await self.classify(question_id, text)
                await self.store.reclassify_question(
                    question_id,
                    new_channel,
                    new_sub_channel,
                    bot_name=ORCHESTRATOR_NAME,
                    reason=f"invalid classification {channel}/{sub_channel}",
                )
                stats["reclassified"] += 1
                logger.info(f"Reclassified {question_id}: {channel}/{sub_channel} -> {new_channel}/{new_sub_channel}")
            except Exception as e:
                stats["failed"] += 1
                await self.db.rollback()
                logger.warning(
                    f"Reclassification failed for {question_id}: {summarize_error(e)}",
                    extra={"error_context": e.to_dict() if isinstance(e, EnrichmentException) else {}}
                )

        return stats

    async def classify(self, question_id: str, text: str):
        response = await self.caller.call(GenerationRequest(
            task="classify",
            prompt=CLASSIFY_PROMPT.format(taxonomy=taxonomy_prompt_block(), question=text),
            max_tokens=100,
        ))
        data = parse_json(response)
        if not isinstance(data, dict):
            raise ClassificationError("Expected a JSON object", context={"question_id": question_id})

        channel = str(data.get("channel") or "").strip().lower()
        sub_channel = str(data.get("subChannel") or data.get("sub_channel") or "").strip().lower()
        if not is_valid_classification(channel, sub_channel):
            raise ClassificationError(
                "Classification outside the taxonomy",
                context={"question_id": question_id, "channel": channel, "sub_channel": sub_channel}
            )
        return channel, sub_channel

    async def run(self) -> Dict[str, Any]:
        """Full orchestrator invocation recorded as a BotRun"""
        run = await self.store.start_run(ORCHESTRATOR_NAME)
        run_id = run.id

        try:
            created = await self.scan()
            reclassified = await self.reclassify()
        except Exception as e:
            await self.db.rollback()
            await self.store.finish_run(run_id, RunStatus.FAILED, summary={"error": summarize_error(e)})
            raise

        failed = reclassified["failed"] + len(self.scan_errors)
        status = RunStatus.PARTIAL if failed else RunStatus.SUCCESS
        await self.store.finish_run(
            run_id,
            status,
            items_processed=reclassified["checked"],
            items_created=created,
            items_updated=reclassified["reclassified"],
            items_failed=failed,
            summary={"reclassification": reclassified, "scan_errors": self.scan_errors[:20]},
        )
        return {
            "status": status.value,
            "created": created,
            "scan_failed": len(self.scan_errors),
            "reclassification": reclassified,
            "run_id": run_id,
        }
