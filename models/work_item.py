from sqlalchemy import Column, BigInteger, Integer, String, Text, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base, JSONType, TaskType, WorkStatus, enum_column

OPEN_STATUS_PREDICATE = text("status IN ('pending', 'processing')")


class WorkItem(Base):
    """
    One queued unit of enrichment work for one question and one bot.

    State machine:
        pending -> processing  (claim_batch, optimistic update)
        processing -> completed | failed

    Invariant:
        At most one pending/processing row per (question_id, bot_type).
        The partial unique index below backs the store's pre-insert check,
        so two concurrent scans cannot both insert the same open pair.
    """
    __tablename__ = "work_queue"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    question_id = Column(String(64), ForeignKey("questions.id"), nullable=False, index=True)
    bot_type = Column(enum_column(TaskType, "task_type"), nullable=False)

    priority = Column(Integer, nullable=False, default=5)  # 1 = highest, 10 = lowest
    status = Column(enum_column(WorkStatus, "work_status"), nullable=False, default=WorkStatus.PENDING)

    # Provenance
    reason = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Opaque task-specific payload, or {"error": ...} on failure
    result = Column(JSONType, nullable=True)

    question = relationship("Question")

    __table_args__ = (
        Index("idx_work_queue_claim", "bot_type", "status", "priority", "created_at"),
        Index(
            "uq_work_queue_open_pair",
            "question_id",
            "bot_type",
            unique=True,
            postgresql_where=OPEN_STATUS_PREDICATE,
            sqlite_where=OPEN_STATUS_PREDICATE,
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<WorkItem id={self.id} question={self.question_id} "
            f"bot={self.bot_type} status={self.status} priority={self.priority}>"
        )
