"""
API endpoint tests
"""

import json
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from api.dependencies import get_db
from api.main import app
from api.routes.health import derive_status
from api.routes.questions import get_generation_caller
from core.exceptions import AuthenticationError, RetriesExhaustedError
from enrichment.store import WorkQueueStore
from models.base import RunStatus, TaskType
from schemas.work import WorkItemCreate
from tests.conftest import FakeCaller


def question_payload(topic):
    return json.dumps([{
        "question": f"Describe a {topic} scenario you handled?",
        "answer": "Explain the situation, task, action and result.",
        "explanation": "Interviewers look for ownership and measurable outcomes.",
        "tags": [topic],
    }])


@pytest.fixture
def generation():
    return FakeCaller(default=question_payload("leadership"))


@pytest_asyncio.fixture
async def client(session_factory, generation):
    """Client with database and generation overrides; lifespan (scheduler) is not started"""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_generation_caller] = lambda: generation

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthy_without_runs(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database_connected"] is True
        assert data["last_runs"] == []
        assert response.headers["X-Request-ID"].startswith("req_")

    @pytest.mark.asyncio
    async def test_degraded_when_a_bot_last_failed(self, client, db_session):
        store = WorkQueueStore(db_session)
        ok = await store.start_run("tldr")
        await store.finish_run(ok.id, RunStatus.SUCCESS)
        bad = await store.start_run("mermaid")
        await store.finish_run(bad.id, RunStatus.FAILED)

        data = (await client.get("/health")).json()

        assert data["status"] == "degraded"
        assert data["failed_bots"] == ["mermaid"]
        assert {run["bot_name"] for run in data["last_runs"]} == {"tldr", "mermaid"}

    @pytest.mark.asyncio
    async def test_request_id_is_propagated(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "req_fromclient"})
        assert response.headers["X-Request-ID"] == "req_fromclient"

    def test_derive_status(self):
        assert derive_status(False, 0, 0) == "unhealthy"
        assert derive_status(True, 0, 0) == "healthy"
        assert derive_status(True, 1, 3) == "degraded"
        assert derive_status(True, 3, 3) == "unhealthy"


class TestQueueStats:
    @pytest.mark.asyncio
    async def test_counts_by_task_and_status(self, client, db_session, make_question):
        store = WorkQueueStore(db_session)
        first = await make_question(diagram=None, tldr=None)
        second = await make_question(diagram=None)
        for question in (first, second):
            await store.create_work_item(WorkItemCreate(
                question_id=question.id, task_type=TaskType.MERMAID, created_by="test"
            ))
        await store.create_work_item(WorkItemCreate(
            question_id=first.id, task_type=TaskType.TLDR, created_by="test"
        ))
        await store.claim_batch(TaskType.TLDR, 5)

        response = await client.get("/stats/queue")

        assert response.status_code == 200
        data = response.json()
        assert data["counts"]["mermaid"]["pending"] == 2
        assert data["counts"]["tldr"]["processing"] == 1
        assert data["counts"]["company"] == {"pending": 0, "processing": 0, "completed": 0, "failed": 0}
        assert data["total_pending"] == 2
        assert data["total_processing"] == 1
        assert data["oldest_pending_at"] is not None

    @pytest.mark.asyncio
    async def test_empty_queue(self, client):
        data = (await client.get("/stats/queue")).json()

        assert data["total_pending"] == 0
        assert data["oldest_pending_at"] is None
        assert data["recent_runs"] == []


class TestGenerate:
    @pytest.mark.asyncio
    async def test_primary_only(self, client, generation):
        response = await client.post("/questions/generate", json={
            "channel": "behavioral",
            "sub_channel": "star-method",
            "include_related": False,
        })

        assert response.status_code == 201
        data = response.json()
        assert data["primary_id"].startswith("q-")
        assert data["related"] == []
        assert len(generation.requests) == 1

    @pytest.mark.asyncio
    async def test_failed_track_is_reported(self, client, generation):
        generation.responses["question:psd"] = RetriesExhaustedError("gave up", attempts=4)

        response = await client.post("/questions/generate", json={
            "channel": "Behavioral",
            "sub_channel": "star-method",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["channel"] == "behavioral"
        assert data["succeeded_tracks"] == 0
        assert data["failed_tracks"] == 1
        assert data["related"][0]["track_id"] == "psd"
        assert "gave up" in data["related"][0]["error"]

    @pytest.mark.asyncio
    async def test_unknown_channel(self, client):
        response = await client.post("/questions/generate", json={"channel": "astrology"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_invalid_difficulty(self, client):
        response = await client.post("/questions/generate", json={"channel": "behavioral", "difficulty": "expert"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_primary_failure_is_bad_gateway(self, client, generation):
        generation.default = "no json"

        response = await client.post("/questions/generate", json={"channel": "behavioral"})

        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_rejected_credentials(self, client, generation):
        generation.default = AuthenticationError("bad key")

        response = await client.post("/questions/generate", json={"channel": "behavioral"})

        assert response.status_code == 503
