from typing import Dict, Tuple
from sqlalchemy import JSON, Enum
from sqlalchemy.orm import declarative_base
from sqlalchemy.dialects.postgresql import JSONB
import enum

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# ============================================================================
# ENUMS
# ============================================================================

class TaskType(str, enum.Enum):
    """Enrichment task types; each one is a bot with its own slice of fields"""
    MERMAID = "mermaid"
    ELI5 = "eli5"
    TLDR = "tldr"
    COMPANY = "company"
    VIDEO = "video"
    IMPROVE = "improve"


class WorkStatus(str, enum.Enum):
    """Work item state machine: pending -> processing -> completed | failed"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class RunStatus(str, enum.Enum):
    """Bot invocation status"""
    RUNNING = "running"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


OPEN_STATUSES = (WorkStatus.PENDING, WorkStatus.PROCESSING)


def enum_column(enum_cls, name: str) -> Enum:
    """Enum type persisted by value ("pending"), not by member name"""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


# ============================================================================
# FIELD OWNERSHIP
# ============================================================================

# No column appears under two task types.
TASK_FIELD_OWNERSHIP: Dict[TaskType, Tuple[str, ...]] = {
    TaskType.MERMAID: ("diagram",),
    TaskType.ELI5: ("eli5",),
    TaskType.TLDR: ("tldr",),
    TaskType.COMPANY: ("companies",),
    TaskType.VIDEO: ("videos", "videos_checked_at"),
    TaskType.IMPROVE: ("answer", "explanation"),
}

# Written only by the orchestrator's reclassification pass
CLASSIFICATION_FIELDS: Tuple[str, ...] = ("channel", "sub_channel")


def owned_fields(task_type: TaskType) -> Tuple[str, ...]:
    return TASK_FIELD_OWNERSHIP[TaskType(task_type)]
