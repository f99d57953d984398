from sqlalchemy import Column, BigInteger, Integer, String, DateTime, Float, Index
from datetime import datetime
from models.base import Base, JSONType, RunStatus, enum_column


class BotRun(Base):
    """
    Tracks metadata for each bot invocation.

    Purpose:
    - Audit trail of every orchestrator scan and worker batch
    - Health reporting (last run per bot)
    - Spotting bots that keep failing on the same gap
    """
    __tablename__ = "bot_runs"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    bot_name = Column(String(100), nullable=False, index=True)
    status = Column(enum_column(RunStatus, "run_status"), nullable=False, default=RunStatus.RUNNING)

    started_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Statistics
    items_processed = Column(Integer, default=0)
    items_created = Column(Integer, default=0)
    items_updated = Column(Integer, default=0)
    items_failed = Column(Integer, default=0)

    summary = Column(JSONType, nullable=True)

    __table_args__ = (
        Index("idx_bot_run_name_started", "bot_name", "started_at"),
    )
