"""
SQLAlchemy ORM models for database tables.

Models:
    base: Declarative base, shared enums (TaskType, WorkStatus, RunStatus)
          and the task type -> question field ownership map
    question: Interview questions, the records being enriched
    work_item: The shared work queue bots coordinate through
    bot_run: One row per bot invocation
    ledger: Audit trail of every question mutation

Usage:
    from models.base import TaskType, WorkStatus
    from models.question import Question
    from models.work_item import WorkItem

Relationships:
    - WorkItem -> Question (many-to-one, question_id)
    - BotLedger -> Question (by item_id, not enforced)
"""

from models.base import Base, TaskType, WorkStatus, RunStatus
from models.question import Question
from models.work_item import WorkItem
from models.bot_run import BotRun
from models.ledger import BotLedger

__all__ = [
    "Base",
    "TaskType",
    "WorkStatus",
    "RunStatus",
    "Question",
    "WorkItem",
    "BotRun",
    "BotLedger",
]
