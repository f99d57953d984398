"""
Pydantic schemas for data validation and serialization.

Schemas:
    work: Work item creation and the typed per-task result payloads
    generation: Generation/video requests, generated question drafts and
                fan-out results
    api: API endpoint request/response schemas

Usage:
    from schemas.work import WorkItemCreate, TaskOutput
    from schemas.api import GenerateQuestionRequest, QueueStatsResponse

Example:
    item = WorkItemCreate(
        question_id="q-1a2b3c4d5e6f",
        task_type=TaskType.MERMAID,
        priority=5,
        created_by="orchestrator"
    )
"""

__all__ = [
    "WorkItemCreate",
    "TaskOutput",
    "GenerationRequest",
    "VideoCheckRequest",
    "QuestionDraft",
    "FanOutOptions",
    "GenerateQuestionRequest",
    "QueueStatsResponse",
    "HealthCheckResponse",
]
