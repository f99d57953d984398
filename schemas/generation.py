"""
Pydantic schemas for generation requests, generated question drafts and
fan-out results
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Any

DIFFICULTIES = ("beginner", "intermediate", "advanced")


class GenerationRequest(BaseModel):
    """One call to the generation service"""
    task: str = Field(..., description="Label used in logs, e.g. 'mermaid' or 'question'")
    prompt: str = Field(..., min_length=1)
    system: Optional[str] = None
    max_tokens: int = Field(1500, ge=1)
    temperature: Optional[float] = Field(None, ge=0, le=2)


class VideoCheckRequest(BaseModel):
    """One existence check against the video provider"""
    url: str = Field(..., min_length=1, max_length=2048)


class QuestionDraft(BaseModel):
    """
    A generated question, validated before it is persisted.

    Ensures:
    - question/answer/explanation are non-empty after stripping
    - difficulty is one of the known levels
    - tags is a list of non-empty strings
    """
    question: str = Field(..., min_length=10, max_length=2000)
    answer: str = Field(..., min_length=1, max_length=5000)
    explanation: str = Field(..., min_length=1)
    difficulty: str = "intermediate"
    tags: List[str] = Field(default_factory=list)
    diagram: Optional[str] = None

    @field_validator("question", "answer", "explanation")
    @classmethod
    def strip_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Text field cannot be empty after stripping")
        return v

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, v):
        v = str(v or "intermediate").strip().lower()
        if v not in DIFFICULTIES:
            return "intermediate"
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        if isinstance(v, list):
            return [str(t).strip() for t in v if str(t).strip()]
        return []


class FanOutOptions(BaseModel):
    """Options for generating a question plus related certification questions"""
    difficulty: str = "intermediate"
    include_related: bool = True
    count_per_track: int = Field(1, ge=1, le=10)


class TrackResult(BaseModel):
    """Outcome of the generation for one certification track"""
    track_id: str
    records: List[Any] = Field(default_factory=list)  # models.question.Question
    error: Optional[str] = None

    @property
    def question_ids(self) -> List[str]:
        return [r.id for r in self.records]

    @property
    def ok(self) -> bool:
        return self.error is None


class FanOutResult(BaseModel):
    """Primary question plus one entry per related certification track"""
    primary: Any  # models.question.Question
    related: List[TrackResult] = Field(default_factory=list)

    class Config:
        arbitrary_types_allowed = True

    @property
    def succeeded_tracks(self) -> List[TrackResult]:
        return [t for t in self.related if t.ok]

    @property
    def failed_tracks(self) -> List[TrackResult]:
        return [t for t in self.related if not t.ok]
