"""
Unit tests for the specialized workers
"""

import json
import pytest
from unittest.mock import AsyncMock

from core.exceptions import ContentValidationError
from enrichment.caller import RateLimitedCaller
from enrichment.workers import (
    AnswerImproverWorker,
    CompanyWorker,
    DiagramWorker,
    Eli5Worker,
    TldrWorker,
    VideoWorker,
    build_worker,
    build_workers,
)
from enrichment.workers.company import normalize_companies
from models.base import TaskType
from tests.conftest import FakeCaller, LONG_EXPLANATION, VALID_DIAGRAM, build_question


class TestDiagramWorker:
    @pytest.mark.asyncio
    async def test_valid_diagram(self):
        caller = FakeCaller(default=json.dumps({
            "diagram": VALID_DIAGRAM,
            "diagramType": "flowchart",
            "confidence": "HIGH",
        }))
        output = await DiagramWorker(caller).execute(build_question(diagram=None))

        assert output.fields == {"diagram": VALID_DIAGRAM}
        assert output.result.confidence == "high"
        assert output.result.replaced_existing is False
        assert caller.requests[0].task == "mermaid"

    @pytest.mark.asyncio
    async def test_replacing_invalid_diagram_is_reported(self):
        caller = FakeCaller(default=json.dumps({"diagram": VALID_DIAGRAM}))
        output = await DiagramWorker(caller).execute(build_question(diagram="graph"))

        assert output.result.replaced_existing is True
        assert output.result.confidence == "medium"

    @pytest.mark.asyncio
    async def test_invalid_mermaid_rejected(self):
        caller = FakeCaller(default=json.dumps({"diagram": "A box pointing at another box"}))

        with pytest.raises(ContentValidationError) as exc_info:
            await DiagramWorker(caller).execute(build_question(diagram=None))

        assert exc_info.value.context["validation_rule"] == "mermaid_header"

    @pytest.mark.asyncio
    async def test_non_json_rejected(self):
        caller = FakeCaller(default="Sorry, I cannot draw that.")

        with pytest.raises(ContentValidationError):
            await DiagramWorker(caller).execute(build_question(diagram=None))


class TestShortTextWorkers:
    @pytest.mark.asyncio
    async def test_tldr(self):
        caller = FakeCaller(default='"Cache hot reads near the caller."')
        output = await TldrWorker(caller).execute(build_question(tldr=None))

        assert output.fields == {"tldr": "Cache hot reads near the caller."}
        assert output.result.field == "tldr"

    @pytest.mark.asyncio
    async def test_tldr_too_long(self):
        caller = FakeCaller(default="word " * 60)
        question = build_question(tldr=None)

        with pytest.raises(ContentValidationError) as exc_info:
            await TldrWorker(caller).execute(question)

        assert exc_info.value.context["question_id"] == question.id

    @pytest.mark.asyncio
    async def test_eli5_allows_longer_text(self):
        text = "Imagine a toy box next to your bed. " * 10
        output = await Eli5Worker(FakeCaller(default=text)).execute(build_question(eli5=None))

        assert output.fields["eli5"] == text.strip()

    @pytest.mark.asyncio
    async def test_worker_without_caller(self):
        with pytest.raises(RuntimeError):
            await Eli5Worker().execute(build_question())


class TestCompanyWorker:
    def test_normalize_dedupes_and_caps(self):
        raw = ["Google", " google ", "Amazon  Web Services", "", 42] + [f"Company {i}" for i in range(20)]
        companies = normalize_companies(raw)

        assert companies[:2] == ["Google", "Amazon Web Services"]
        assert len(companies) == 10

    def test_normalize_accepts_wrapped_object(self):
        assert normalize_companies({"companies": ["Stripe"]}) == ["Stripe"]
        assert normalize_companies("Stripe") == []

    @pytest.mark.asyncio
    async def test_execute(self):
        caller = FakeCaller(default='["Netflix", "Uber", "netflix"]')
        output = await CompanyWorker(caller).execute(build_question(companies=[]))

        assert output.fields == {"companies": ["Netflix", "Uber"]}

    @pytest.mark.asyncio
    async def test_empty_list_rejected(self):
        with pytest.raises(ContentValidationError):
            await CompanyWorker(FakeCaller(default="[]")).execute(build_question(companies=[]))


class TestAnswerImproverWorker:
    @pytest.mark.asyncio
    async def test_drops_fields_owned_by_other_workers(self):
        caller = FakeCaller(default=json.dumps({
            "answer": "Use a write-through cache with TTL-based expiry.",
            "explanation": LONG_EXPLANATION,
            "diagram": VALID_DIAGRAM,
            "tldr": "cache it",
        }))
        output = await AnswerImproverWorker(caller).execute(build_question(answer="short"))

        assert set(output.fields) == {"answer", "explanation"}
        assert output.result.dropped_fields == ["diagram", "tldr"]

    @pytest.mark.asyncio
    async def test_short_explanation_rejected(self):
        caller = FakeCaller(default=json.dumps({
            "answer": "Use a write-through cache with TTL-based expiry.",
            "explanation": "Because.",
        }))

        with pytest.raises(ContentValidationError) as exc_info:
            await AnswerImproverWorker(caller).execute(build_question(answer="short"))

        assert exc_info.value.context["validation_rule"] == "explanation_length"


class TestVideoWorker:
    @pytest.mark.asyncio
    async def test_removes_broken_references(self):
        live = "https://www.youtube.com/watch?v=live"
        gone = "https://www.youtube.com/watch?v=gone"
        video_caller = AsyncMock()
        video_caller.call.side_effect = lambda request: request.url == live

        question = build_question(videos={"shortVideo": live, "longVideo": gone})
        output = await VideoWorker(video_caller).execute(question)

        assert output.fields["videos"] == {"shortVideo": live, "longVideo": None}
        assert output.fields["videos_checked_at"] is not None
        assert output.result.kept == [live]
        assert output.result.removed == [gone]
        assert video_caller.call.await_count == 2

    @pytest.mark.asyncio
    async def test_no_references_only_updates_timestamp(self):
        video_caller = AsyncMock()
        output = await VideoWorker(video_caller).execute(build_question(videos={"longVideo": ""}))

        assert output.result.checked == 0
        assert not video_caller.call.called


class TestBuildWorker:
    def test_every_task_type_has_a_worker(self):
        caller = FakeCaller()
        workers = build_workers(caller=caller, video_caller=caller)

        assert set(workers) == set(TaskType)
        for task_type, worker in workers.items():
            assert worker.task_type == task_type

    def test_default_callers_come_from_settings(self):
        worker = build_worker(TaskType.MERMAID)
        video = build_worker("video")

        assert isinstance(worker.caller, RateLimitedCaller)
        assert isinstance(video.video_caller, RateLimitedCaller)

    def test_owned_fields(self):
        assert build_worker(TaskType.IMPROVE, caller=FakeCaller()).owned_fields == ("answer", "explanation")
