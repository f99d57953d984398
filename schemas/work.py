"""
Pydantic schemas for work queue items and task results
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any, Union, Literal
from models.base import TaskType

DEFAULT_PRIORITY = 5


class WorkItemCreate(BaseModel):
    """
    Schema for enqueuing work.

    Ensures:
    - priority stays within 1 (highest) .. 10 (lowest)
    - the producer is always recorded
    """
    question_id: str = Field(..., min_length=1, max_length=64)
    task_type: TaskType
    priority: int = Field(DEFAULT_PRIORITY, ge=1, le=10)
    reason: Optional[str] = Field(None, max_length=2000)
    created_by: str = Field(..., min_length=1, max_length=100)

    @field_validator("reason")
    @classmethod
    def clean_reason(cls, v):
        if v is None:
            return v
        v = v.strip()
        return v or None


# ============================================================================
# Task results (opaque to everything except the producing worker)
# ============================================================================

class DiagramResult(BaseModel):
    kind: Literal["diagram"] = "diagram"
    diagram_type: str = "flowchart"
    confidence: str = "medium"
    replaced_existing: bool = False


class TextResult(BaseModel):
    kind: Literal["text"] = "text"
    field: str
    chars: int


class CompanyResult(BaseModel):
    kind: Literal["companies"] = "companies"
    companies: List[str]


class VideoCheckResult(BaseModel):
    kind: Literal["video_check"] = "video_check"
    checked: int
    kept: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)


class AnswerResult(BaseModel):
    kind: Literal["answer"] = "answer"
    answer_chars: int
    explanation_chars: int
    dropped_fields: List[str] = Field(default_factory=list)


TaskResult = Union[DiagramResult, TextResult, CompanyResult, VideoCheckResult, AnswerResult]


class TaskOutput(BaseModel):
    """
    What a specialized worker hands back to the harness.

    fields: new values for the question columns the task type owns
    result: payload stored on the work item
    """
    fields: Dict[str, Any]
    result: TaskResult = Field(..., discriminator="kind")

    def result_payload(self) -> Dict[str, Any]:
        return self.result.model_dump(mode="json")
