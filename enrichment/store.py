"""
Work queue store: the only shared mutable state between bots.

Every mutation is a single commit on the session:
- create_work_item: insert a pending item (dedup on open (question, bot) pairs)
- claim_batch: optimistic pending -> processing transition
- complete / fail: terminal transitions (complete also writes owned fields)
- reclassify_question / create_question(s): the writes outside the queue

Different task types own disjoint question fields, so only claimers of the
same task type can contend, and the optimistic claim separates them.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging
import uuid

from sqlalchemy import select, update, func, and_, or_, exists
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import (
    DuplicatePendingError,
    FieldOwnershipError,
    QuestionNotFoundError,
    StoreError,
    WorkItemStateError,
)
from enrichment.validators import is_blank, is_valid_mermaid, needs_improvement, video_urls
from models.base import CLASSIFICATION_FIELDS, OPEN_STATUSES, RunStatus, TaskType, WorkStatus, owned_fields
from models.bot_run import BotRun
from models.ledger import BotLedger
from models.question import Question
from models.work_item import WorkItem
from schemas.generation import QuestionDraft
from schemas.work import WorkItemCreate

logger = logging.getLogger(__name__)

STALE_RELEASE_REASON = "stale processing item released"


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def new_question_id() -> str:
    return f"q-{uuid.uuid4().hex[:12]}"


class WorkQueueStore:
    """
    Store for questions, work items, bot runs and the ledger.

    The store never retries and never swallows errors: callers decide whether
    a DuplicatePendingError or WorkItemStateError is expected.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    # ------------------------------------------------------------------
    # Work items
    # ------------------------------------------------------------------

    async def create_work_item(self, item: WorkItemCreate) -> WorkItem:
        """
        Enqueue a pending work item.

        Raises:
            QuestionNotFoundError: If the target question does not exist
            DuplicatePendingError: If an open item exists for (question, task type)
        """
        task_type = TaskType(item.task_type)
        context = {"question_id": item.question_id, "task_type": task_type.value}

        if await self.db.get(Question, item.question_id) is None:
            raise QuestionNotFoundError("Cannot enqueue work for a missing question", context=context)

        if await self._open_item_id(item.question_id, task_type) is not None:
            raise DuplicatePendingError("Open work item already exists", context=context)

        work_item = WorkItem(
            question_id=item.question_id,
            bot_type=task_type,
            priority=item.priority,
            status=WorkStatus.PENDING,
            reason=item.reason,
            created_by=item.created_by,
            created_at=datetime.utcnow(),
        )
        self.db.add(work_item)

        try:
            await self.db.commit()
        except IntegrityError as e:
            # Lost an insert race against a concurrent scan
            await self.db.rollback()
            raise DuplicatePendingError(
                "Open work item already exists",
                context=context,
                original_exception=e
            )

        logger.debug(
            f"Queued {task_type.value} work for {item.question_id} "
            f"(id={work_item.id}, priority={item.priority})"
        )
        return work_item

    async def _open_item_id(self, question_id: str, task_type: TaskType) -> Optional[int]:
        result = await self.db.execute(
            select(WorkItem.id).where(
                and_(
                    WorkItem.question_id == question_id,
                    WorkItem.bot_type == task_type,
                    WorkItem.status.in_(OPEN_STATUSES),
                )
            ).limit(1)
        )
        return result.scalar_one_or_none()

    async def claim_batch(self, task_type: TaskType, limit: int) -> List[WorkItem]:
        """
        Claim up to `limit` pending items of one task type.

        Candidates are ordered by priority (1 first), then creation time, then
        id. Each is claimed with UPDATE ... WHERE status = 'pending'; a zero
        row count means a concurrent invocation got it first and the item is
        skipped. Returned items are in claim order.
        """
        task_type = TaskType(task_type)
        if limit <= 0:
            return []

        candidates = await self.db.execute(
            select(WorkItem.id)
            .where(
                and_(
                    WorkItem.bot_type == task_type,
                    WorkItem.status == WorkStatus.PENDING,
                )
            )
            .order_by(WorkItem.priority.asc(), WorkItem.created_at.asc(), WorkItem.id.asc())
            .limit(limit)
        )
        candidate_ids = list(candidates.scalars().all())

        claimed_ids: List[int] = []
        started_at = datetime.utcnow()

        for item_id in candidate_ids:
            result = await self.db.execute(
                update(WorkItem)
                .where(
                    and_(
                        WorkItem.id == item_id,
                        WorkItem.status == WorkStatus.PENDING,
                    )
                )
                .values(status=WorkStatus.PROCESSING, started_at=started_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                claimed_ids.append(item_id)
            else:
                logger.debug(f"Work item {item_id} already claimed elsewhere, skipping")

        await self.db.commit()

        if not claimed_ids:
            return []

        rows = await self.db.execute(
            select(WorkItem)
            .where(WorkItem.id.in_(claimed_ids))
            .execution_options(populate_existing=True)
        )
        by_id = {item.id: item for item in rows.scalars().all()}

        logger.info(f"Claimed {len(claimed_ids)}/{len(candidate_ids)} {task_type.value} items")
        return [by_id[item_id] for item_id in claimed_ids]

    async def get_work_item(self, item_id: int) -> Optional[WorkItem]:
        result = await self.db.execute(
            select(WorkItem)
            .where(WorkItem.id == item_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def complete(
        self,
        item_id: int,
        result: Optional[Dict[str, Any]] = None,
        fields: Optional[Dict[str, Any]] = None
    ) -> WorkItem:
        """
        Mark a processing item completed and write its owned question fields.

        The status transition, the field writes and the ledger row share one
        commit.

        Raises:
            WorkItemStateError: If the item is missing or no longer processing
            FieldOwnershipError: If `fields` contains a column the task type does not own
            QuestionNotFoundError: If fields are given but the question is gone
        """
        fields = fields or {}
        item = await self.get_work_item(item_id)
        if item is None or item.status != WorkStatus.PROCESSING:
            raise WorkItemStateError(
                "Only processing items can be completed",
                context={"work_item_id": item_id, "status": getattr(item, "status", None)}
            )

        self.check_ownership(item.bot_type, fields)

        question = None
        if fields:
            question = await self.db.get(Question, item.question_id)
            if question is None:
                raise QuestionNotFoundError(
                    "Question disappeared before its work item completed",
                    context={"work_item_id": item_id, "question_id": item.question_id}
                )

        now = datetime.utcnow()
        transition = await self.db.execute(
            update(WorkItem)
            .where(and_(WorkItem.id == item_id, WorkItem.status == WorkStatus.PROCESSING))
            .values(status=WorkStatus.COMPLETED, completed_at=now, result=result)
            .execution_options(synchronize_session=False)
        )
        if transition.rowcount != 1:
            await self.db.rollback()
            raise WorkItemStateError(
                "Work item left processing state concurrently",
                context={"work_item_id": item_id}
            )

        if question is not None:
            before = {name: _jsonable(getattr(question, name)) for name in fields}
            for name, value in fields.items():
                setattr(question, name, value)
            self.db.add(BotLedger(
                bot_name=item.bot_type.value,
                action="enrich",
                item_type="question",
                item_id=question.id,
                before_state=before,
                after_state={name: _jsonable(value) for name, value in fields.items()},
                reason=item.reason,
                created_at=now,
            ))

        await self.db.commit()
        return await self.get_work_item(item_id)

    async def fail(self, item_id: int, reason: str) -> WorkItem:
        """
        Mark a processing item failed. Failed items are never requeued here.

        Raises:
            WorkItemStateError: If the item is missing or no longer processing
        """
        now = datetime.utcnow()
        transition = await self.db.execute(
            update(WorkItem)
            .where(and_(WorkItem.id == item_id, WorkItem.status == WorkStatus.PROCESSING))
            .values(status=WorkStatus.FAILED, completed_at=now, result={"error": reason})
            .execution_options(synchronize_session=False)
        )
        if transition.rowcount != 1:
            await self.db.rollback()
            raise WorkItemStateError(
                "Only processing items can be failed",
                context={"work_item_id": item_id}
            )
        await self.db.commit()
        return await self.get_work_item(item_id)

    async def release_stale(self, older_than: timedelta, now: Optional[datetime] = None) -> int:
        """
        Fail processing items whose claim started before now - older_than.

        Only runs when explicitly invoked; the next orchestrator scan may then
        enqueue fresh work for the same gap.
        """
        now = now or datetime.utcnow()
        cutoff = now - older_than
        result = await self.db.execute(
            update(WorkItem)
            .where(
                and_(
                    WorkItem.status == WorkStatus.PROCESSING,
                    WorkItem.started_at < cutoff,
                )
            )
            .values(
                status=WorkStatus.FAILED,
                completed_at=now,
                result={"error": STALE_RELEASE_REASON},
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        released = result.rowcount or 0
        if released:
            logger.warning(f"Released {released} work items stuck in processing since before {cutoff.isoformat()}")
        return released

    @staticmethod
    def check_ownership(task_type: TaskType, fields: Iterable[str]) -> None:
        allowed = set(owned_fields(task_type))
        foreign = sorted(set(fields) - allowed)
        if foreign:
            raise FieldOwnershipError(
                f"Task type {TaskType(task_type).value} cannot write {', '.join(foreign)}",
                context={"task_type": TaskType(task_type).value, "fields": foreign, "allowed": sorted(allowed)}
            )

    # ------------------------------------------------------------------
    # Gap discovery
    # ------------------------------------------------------------------

    async def scan_missing_fields(
        self,
        task_type: TaskType,
        limit: Optional[int] = None,
        exclude_open: bool = False,
        now: Optional[datetime] = None
    ) -> List[str]:
        """
        Ids of questions whose field owned by `task_type` is missing or unusable.

        - mermaid: diagram empty or not a recognised mermaid diagram
        - eli5 / tldr: field empty
        - company: no companies
        - video: has stored videos not checked within VIDEO_STALENESS_DAYS
        - improve: answer or explanation too short

        With exclude_open, questions that already have an open item for this
        task type are skipped.
        """
        task_type = TaskType(task_type)
        now = now or datetime.utcnow()

        query = select(Question).order_by(Question.created_at.asc(), Question.id.asc())

        if exclude_open:
            open_item = exists().where(
                and_(
                    WorkItem.question_id == Question.id,
                    WorkItem.bot_type == task_type,
                    WorkItem.status.in_(OPEN_STATUSES),
                )
            )
            query = query.where(~open_item)

        if task_type == TaskType.ELI5:
            query = query.where(or_(Question.eli5.is_(None), func.trim(Question.eli5) == ""))
        elif task_type == TaskType.TLDR:
            query = query.where(or_(Question.tldr.is_(None), func.trim(Question.tldr) == ""))
        elif task_type == TaskType.VIDEO:
            stale_before = now - timedelta(days=settings.VIDEO_STALENESS_DAYS)
            query = query.where(
                and_(
                    Question.videos.isnot(None),
                    or_(Question.videos_checked_at.is_(None), Question.videos_checked_at < stale_before),
                )
            )

        result = await self.db.execute(query)
        ids: List[str] = []
        for question in result.scalars().all():
            if not self._has_gap(task_type, question):
                continue
            ids.append(question.id)
            if limit is not None and len(ids) >= limit:
                break
        return ids

    @staticmethod
    def _has_gap(task_type: TaskType, question: Question) -> bool:
        if task_type == TaskType.MERMAID:
            return not is_valid_mermaid(question.diagram)
        if task_type == TaskType.ELI5:
            return is_blank(question.eli5)
        if task_type == TaskType.TLDR:
            return is_blank(question.tldr)
        if task_type == TaskType.COMPANY:
            return is_blank(question.companies)
        if task_type == TaskType.VIDEO:
            return bool(video_urls(question.videos))
        if task_type == TaskType.IMPROVE:
            return needs_improvement(question.answer, question.explanation)
        return False

    # ------------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------------

    async def get_question(self, question_id: str) -> Optional[Question]:
        result = await self.db.execute(
            select(Question)
            .where(Question.id == question_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_questions(
        self,
        channel: Optional[str] = None,
        certification_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[Question]:
        query = select(Question)
        if channel:
            query = query.where(Question.channel == channel)
        if certification_id:
            query = query.where(Question.certification_id == certification_id)
        query = query.order_by(Question.created_at.asc(), Question.id.asc()).offset(offset).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create_question(
        self,
        channel: str,
        sub_channel: str,
        question: str,
        answer: str,
        explanation: str,
        difficulty: str = "intermediate",
        tags: Optional[List[str]] = None,
        diagram: Optional[str] = None,
        certification_id: Optional[str] = None,
        created_by: str = "generator",
    ) -> Question:
        """Persist one generated question with its own commit and ledger row"""
        record = self._add_question(
            channel,
            sub_channel,
            QuestionDraft(
                question=question,
                answer=answer,
                explanation=explanation,
                difficulty=difficulty,
                tags=tags or [],
                diagram=diagram,
            ),
            certification_id,
            created_by,
        )
        await self.db.commit()
        return record

    async def create_questions(
        self,
        channel: str,
        sub_channel: str,
        drafts: List[QuestionDraft],
        certification_id: Optional[str] = None,
        created_by: str = "generator",
    ) -> List[Question]:
        """
        Persist a batch of generated questions in a single commit.

        Either every draft is stored (each with its ledger row) or none is.

        Raises:
            StoreError: If the batch could not be committed
        """
        records = [
            self._add_question(channel, sub_channel, draft, certification_id, created_by)
            for draft in drafts
        ]
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(
                "Failed to persist generated questions",
                context={
                    "channel": channel,
                    "sub_channel": sub_channel,
                    "certification_id": certification_id,
                    "count": len(drafts),
                },
                original_exception=e
            )
        return records

    def _add_question(
        self,
        channel: str,
        sub_channel: str,
        draft: QuestionDraft,
        certification_id: Optional[str],
        created_by: str,
    ) -> Question:
        now = datetime.utcnow()
        record = Question(
            id=new_question_id(),
            question=draft.question,
            answer=draft.answer,
            explanation=draft.explanation,
            difficulty=draft.difficulty,
            tags=draft.tags,
            channel=channel,
            sub_channel=sub_channel,
            certification_id=certification_id,
            diagram=draft.diagram,
            last_updated=now,
            created_at=now,
        )
        self.db.add(record)
        self.db.add(BotLedger(
            bot_name=created_by,
            action="create",
            item_type="question",
            item_id=record.id,
            after_state={"channel": channel, "sub_channel": sub_channel, "certification_id": certification_id},
            created_at=now,
        ))
        return record

    async def classification_candidates(self, limit: Optional[int] = None) -> List[Tuple[str, str, str, str]]:
        """(id, question, channel, sub_channel) for every question, oldest first"""
        query = (
            select(Question.id, Question.question, Question.channel, Question.sub_channel)
            .order_by(Question.created_at.asc(), Question.id.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return [tuple(row) for row in result.all()]

    async def reclassify_question(
        self,
        question_id: str,
        channel: str,
        sub_channel: str,
        bot_name: str = "orchestrator",
        reason: Optional[str] = None
    ) -> Question:
        """
        Rewrite a question's channel/sub_channel directly, outside the queue.

        Raises:
            QuestionNotFoundError: If the question does not exist
        """
        question = await self.db.get(Question, question_id)
        if question is None:
            raise QuestionNotFoundError("Cannot reclassify a missing question", context={"question_id": question_id})

        now = datetime.utcnow()
        before = {field: getattr(question, field) for field in CLASSIFICATION_FIELDS}
        after = dict(zip(CLASSIFICATION_FIELDS, (channel, sub_channel)))
        for field, value in after.items():
            setattr(question, field, value)
        question.last_updated = now
        self.db.add(BotLedger(
            bot_name=bot_name,
            action="reclassify",
            item_type="question",
            item_id=question_id,
            before_state=before,
            after_state=after,
            reason=reason,
            created_at=now,
        ))
        await self.db.commit()
        return question

    # ------------------------------------------------------------------
    # Bot runs
    # ------------------------------------------------------------------

    async def start_run(self, bot_name: str) -> BotRun:
        run = BotRun(bot_name=bot_name, status=RunStatus.RUNNING, started_at=datetime.utcnow())
        self.db.add(run)
        await self.db.commit()
        return run

    async def finish_run(
        self,
        run_id: int,
        status: RunStatus,
        items_processed: int = 0,
        items_created: int = 0,
        items_updated: int = 0,
        items_failed: int = 0,
        summary: Optional[Dict[str, Any]] = None
    ) -> BotRun:
        """Close a BotRun; reloads it so a rollback earlier in the invocation is harmless"""
        run = await self.db.get(BotRun, run_id)
        if run is None:
            raise WorkItemStateError("Unknown bot run", context={"run_id": run_id})
        run.status = status
        run.completed_at = datetime.utcnow()
        run.duration_seconds = (run.completed_at - run.started_at).total_seconds()
        run.items_processed = items_processed
        run.items_created = items_created
        run.items_updated = items_updated
        run.items_failed = items_failed
        run.summary = summary
        self.db.add(run)
        await self.db.commit()
        return run

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def queue_counts(self) -> Dict[str, Dict[str, int]]:
        """{task_type: {status: count}} for every task type"""
        result = await self.db.execute(
            select(WorkItem.bot_type, WorkItem.status, func.count())
            .group_by(WorkItem.bot_type, WorkItem.status)
        )
        counts: Dict[str, Dict[str, int]] = {
            t.value: {s.value: 0 for s in WorkStatus} for t in TaskType
        }
        for bot_type, status, count in result.all():
            counts[TaskType(bot_type).value][WorkStatus(status).value] = count
        return counts

    async def oldest_pending_at(self) -> Optional[datetime]:
        result = await self.db.execute(
            select(func.min(WorkItem.created_at)).where(WorkItem.status == WorkStatus.PENDING)
        )
        return result.scalar()

    async def recent_runs(self, limit: int = 10) -> List[BotRun]:
        result = await self.db.execute(
            select(BotRun).order_by(BotRun.started_at.desc(), BotRun.id.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def last_run_per_bot(self) -> Dict[str, BotRun]:
        latest = (
            select(BotRun.bot_name, func.max(BotRun.id).label("max_id"))
            .group_by(BotRun.bot_name)
            .subquery()
        )
        result = await self.db.execute(
            select(BotRun).join(latest, BotRun.id == latest.c.max_id)
        )
        return {run.bot_name: run for run in result.scalars().all()}
