"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from datetime import datetime

from models.base import RunStatus
from schemas.generation import DIFFICULTIES


# ============================================================================
# Health Check Schemas
# ============================================================================

class BotRunInfo(BaseModel):
    """Last or recent bot invocation"""
    id: int
    bot_name: str
    status: RunStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    items_processed: int = 0
    items_created: int = 0
    items_updated: int = 0
    items_failed: int = 0

    class Config:
        from_attributes = True
        use_enum_values = True


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    last_runs: List[BotRunInfo] = Field(default_factory=list)
    failed_bots: List[str] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "database_connected": True,
                "failed_bots": [],
                "last_runs": [
                    {
                        "id": 42,
                        "bot_name": "mermaid",
                        "status": "success",
                        "started_at": "2024-01-15T06:20:00Z",
                        "completed_at": "2024-01-15T06:20:31Z",
                        "duration_seconds": 31.2,
                        "items_processed": 5,
                        "items_updated": 5
                    }
                ]
            }
        }


# ============================================================================
# Queue Statistics Schemas
# ============================================================================

class QueueStatsResponse(BaseModel):
    """Work queue counts by task type and status"""
    counts: Dict[str, Dict[str, int]]
    total_pending: int
    total_processing: int
    oldest_pending_at: Optional[datetime] = None
    oldest_pending_age_seconds: Optional[float] = None
    recent_runs: List[BotRunInfo] = Field(default_factory=list)
    request_id: Optional[str] = None


# ============================================================================
# Question Generation Schemas
# ============================================================================

class GenerateQuestionRequest(BaseModel):
    """Inline generation of a question plus related certification questions"""
    channel: str = Field(..., min_length=1, max_length=100)
    sub_channel: str = Field("general", min_length=1, max_length=100)
    difficulty: str = "intermediate"
    include_related: bool = True
    count_per_track: int = Field(1, ge=1, le=10)

    @field_validator("channel", "sub_channel")
    @classmethod
    def normalize_slug(cls, v):
        return v.strip().lower()

    @field_validator("difficulty")
    @classmethod
    def check_difficulty(cls, v):
        v = v.strip().lower()
        if v not in DIFFICULTIES:
            raise ValueError(f"difficulty must be one of {', '.join(DIFFICULTIES)}")
        return v


class TrackInfo(BaseModel):
    track_id: str
    question_ids: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class GenerateQuestionResponse(BaseModel):
    primary_id: str
    channel: str
    sub_channel: str
    related: List[TrackInfo] = Field(default_factory=list)
    succeeded_tracks: int = 0
    failed_tracks: int = 0
    request_id: Optional[str] = None
