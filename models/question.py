from sqlalchemy import Column, String, Text, DateTime, Index
from datetime import datetime
from models.base import Base, JSONType


class Question(Base):
    """
    An interview question: the unit of enrichment.

    Field ownership:
    - question, difficulty, tags: written once by generation
    - channel, sub_channel: generation, or orchestrator reclassification
    - diagram: mermaid bot
    - eli5 / tldr: eli5 bot / tldr bot
    - companies: company bot
    - videos, videos_checked_at: video bot
    - answer, explanation: improve bot (and initial generation)

    See models.base.TASK_FIELD_OWNERSHIP for the authoritative mapping.
    """
    __tablename__ = "questions"

    id = Column(String(64), primary_key=True)

    # Content
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False, default="")
    explanation = Column(Text, nullable=False, default="")
    difficulty = Column(String(20), nullable=False, default="intermediate")
    tags = Column(JSONType, nullable=True)  # list of strings

    # Routing
    channel = Column(String(100), nullable=False, index=True)
    sub_channel = Column(String(100), nullable=False)
    certification_id = Column(String(100), nullable=True, index=True)

    # Enrichable fields
    diagram = Column(Text, nullable=True)
    eli5 = Column(Text, nullable=True)
    tldr = Column(Text, nullable=True)
    companies = Column(JSONType, nullable=True)  # list of organisation names
    videos = Column(JSONType, nullable=True)  # {"shortVideo": url, "longVideo": url}
    videos_checked_at = Column(DateTime, nullable=True)

    # Timestamps
    last_updated = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    __table_args__ = (
        Index("idx_question_channel_sub", "channel", "sub_channel"),
    )
