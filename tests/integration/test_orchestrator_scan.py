"""
Integration tests for gap discovery and reclassification
"""

import json
import pytest
from sqlalchemy import select

from core.exceptions import QuestionNotFoundError, RetriesExhaustedError
from enrichment.orchestrator import Orchestrator, default_priority
from models.base import RunStatus, TaskType, WorkStatus
from models.bot_run import BotRun
from models.ledger import BotLedger
from models.question import Question
from models.work_item import WorkItem


async def all_items(session):
    result = await session.execute(select(WorkItem).order_by(WorkItem.id))
    return result.scalars().all()


@pytest.mark.asyncio
async def test_scan_enqueues_one_mermaid_item_per_missing_diagram(db_session, make_question):
    """10 questions, 4 without a diagram -> exactly 4 pending mermaid items"""
    missing = set()
    for i in range(10):
        if i in (1, 4, 6, 9):
            question = await make_question(diagram=None)
            missing.add(question.id)
        else:
            await make_question()

    created = await Orchestrator(db_session).scan()

    items = await all_items(db_session)
    assert created == 4
    assert len(items) == 4
    assert {item.question_id for item in items} == missing
    for item in items:
        assert item.bot_type == TaskType.MERMAID
        assert item.status == WorkStatus.PENDING
        assert item.priority == default_priority(TaskType.MERMAID) == 5
        assert item.created_by == "orchestrator"
        assert item.reason


@pytest.mark.asyncio
async def test_rescan_is_idempotent(db_session, make_question):
    await make_question(diagram=None, tldr=None)
    orchestrator = Orchestrator(db_session)

    assert await orchestrator.scan() == 2
    assert await orchestrator.scan() == 0
    assert len(await all_items(db_session)) == 2


@pytest.mark.asyncio
async def test_scan_uses_per_task_priorities(db_session, make_question):
    await make_question(diagram=None, eli5=None, tldr=None, companies=[], answer="short")

    await Orchestrator(db_session).scan()

    priorities = {item.bot_type: item.priority for item in await all_items(db_session)}
    assert priorities == {
        TaskType.IMPROVE: 3,
        TaskType.MERMAID: 5,
        TaskType.ELI5: 6,
        TaskType.TLDR: 6,
        TaskType.COMPANY: 7,
    }


@pytest.mark.asyncio
async def test_scan_limit_applies_per_task_type(db_session, make_question):
    for _ in range(5):
        await make_question(diagram=None)

    created = await Orchestrator(db_session, scan_limit=2).scan()

    assert created == 2


@pytest.mark.asyncio
async def test_reclassify_fixes_invalid_channels(db_session, session_factory, make_question, fake_caller):
    valid = await make_question()
    invalid = await make_question(channel="kubernets", sub_channel="podz")
    caller = fake_caller(responses={
        "classify": json.dumps({"channel": "kubernetes", "subChannel": "pods"})
    })

    stats = await Orchestrator(db_session, caller=caller).reclassify()

    assert stats == {"checked": 2, "invalid": 1, "reclassified": 1, "failed": 0}
    async with session_factory() as session:
        fixed = await session.get(Question, invalid.id)
        untouched = await session.get(Question, valid.id)
        assert (fixed.channel, fixed.sub_channel) == ("kubernetes", "pods")
        assert (untouched.channel, untouched.sub_channel) == ("system-design", "caching")
        ledger = (await session.execute(select(BotLedger).where(BotLedger.action == "reclassify"))).scalar_one()
        assert ledger.item_id == invalid.id
        assert ledger.before_state == {"channel": "kubernets", "sub_channel": "podz"}
        assert ledger.after_state == {"channel": "kubernetes", "sub_channel": "pods"}


@pytest.mark.asyncio
async def test_reclassify_skips_failures_and_out_of_taxonomy_answers(db_session, make_question, fake_caller):
    await make_question(channel="unknown", sub_channel="x")
    await make_question(channel="unknown", sub_channel="y")
    answers = iter([
        json.dumps({"channel": "astrology", "subChannel": "stars"}),
        RetriesExhaustedError("gave up", attempts=4),
    ])

    def next_answer(request):
        answer = next(answers)
        if isinstance(answer, Exception):
            raise answer
        return answer

    caller = fake_caller(responses={"classify": next_answer})
    stats = await Orchestrator(db_session, caller=caller).reclassify()

    assert stats["invalid"] == 2
    assert stats["failed"] == 2
    assert stats["reclassified"] == 0


@pytest.mark.asyncio
async def test_reclassify_disabled_without_caller(db_session, make_question):
    await make_question(channel="unknown", sub_channel="x")
    stats = await Orchestrator(db_session).reclassify()
    assert stats["checked"] == 0


@pytest.mark.asyncio
async def test_run_records_bot_run(db_session, make_question):
    await make_question(diagram=None)

    result = await Orchestrator(db_session).run()

    assert result["status"] == "success"
    assert result["created"] == 1
    run = (await db_session.execute(select(BotRun).where(BotRun.id == result["run_id"]))).scalar_one()
    assert run.bot_name == "orchestrator"
    assert run.status == RunStatus.SUCCESS
    assert run.items_created == 1
    assert run.completed_at is not None


@pytest.mark.asyncio
async def test_scan_skips_records_that_cannot_be_enqueued(db_session, make_question):
    """A question deleted between scan and enqueue must not end the scan"""
    vanished = await make_question(diagram=None)
    kept = await make_question(diagram=None, tldr=None)
    vanished_id, kept_id = vanished.id, kept.id

    orchestrator = Orchestrator(db_session)
    create_work_item = orchestrator.store.create_work_item

    async def flaky_create(item):
        if item.question_id == vanished_id and item.task_type == TaskType.MERMAID:
            raise QuestionNotFoundError("Question vanished", context={"question_id": vanished_id})
        return await create_work_item(item)

    orchestrator.store.create_work_item = flaky_create
    created = await orchestrator.scan()

    items = await all_items(db_session)
    assert created == 2
    assert {(item.question_id, item.bot_type) for item in items} == {
        (kept_id, TaskType.MERMAID),
        (kept_id, TaskType.TLDR),
    }
    assert orchestrator.scan_errors == [{
        "question_id": vanished_id,
        "task_type": "mermaid",
        "error": "QuestionNotFoundError: Question vanished",
    }]


@pytest.mark.asyncio
async def test_run_with_skipped_records_is_partial(db_session, make_question):
    vanished = await make_question(diagram=None)
    vanished_id = vanished.id
    await make_question(diagram=None)

    orchestrator = Orchestrator(db_session)
    create_work_item = orchestrator.store.create_work_item

    async def flaky_create(item):
        if item.question_id == vanished_id:
            raise QuestionNotFoundError("Question vanished")
        return await create_work_item(item)

    orchestrator.store.create_work_item = flaky_create
    result = await orchestrator.run()

    assert result["status"] == "partial"
    assert result["created"] == 1
    assert result["scan_failed"] == 1
    run = await db_session.get(BotRun, result["run_id"])
    assert run.items_failed == 1
    assert run.summary["scan_errors"][0]["question_id"] == vanished_id
