from sqlalchemy import Column, BigInteger, Integer, String, Text, DateTime, Index
from datetime import datetime
from models.base import Base, JSONType


class BotLedger(Base):
    """
    Append-only audit trail of every question mutation made by a bot.

    Design:
    - Written in the same commit as the mutation it records
    - before_state/after_state hold only the fields that changed
    - action is "create", "enrich" or "reclassify"
    """
    __tablename__ = "bot_ledger"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    bot_name = Column(String(100), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    item_type = Column(String(50), nullable=False, default="question")
    item_id = Column(String(64), nullable=False, index=True)

    before_state = Column(JSONType, nullable=True)
    after_state = Column(JSONType, nullable=True)
    reason = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_ledger_item", "item_type", "item_id", "created_at"),
    )
