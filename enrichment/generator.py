"""
Question generator: prompt -> validated QuestionDraft -> persisted Question
"""

from typing import Any, List, Optional
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from core.exceptions import ContentValidationError
from enrichment.caller import RateLimitedCaller
from enrichment.store import WorkQueueStore
from enrichment.validators import parse_json
from models.question import Question
from schemas.generation import GenerationRequest, QuestionDraft

logger = logging.getLogger(__name__)

PROMPT = """Write {count} technical interview question(s) for the
"{channel}" channel, "{sub_channel}" topic, at {difficulty} level.
{certification_block}
Each question needs a concise answer and an in-depth explanation (markdown
allowed, at least a few paragraphs with an example).

Output a JSON array with exactly {count} object(s) of this structure:
[{{"question":"...?","answer":"...","explanation":"...","difficulty":"{difficulty}","tags":["tag1","tag2"]}}]

Return ONLY the JSON array."""

CERTIFICATION_BLOCK = """The question must be aligned with the official exam objectives of the
"{certification_id}" certification and framed as a realistic scenario.
"""


def _as_list(data: Any) -> List[Any]:
    if isinstance(data, dict):
        if isinstance(data.get("questions"), list):
            return data["questions"]
        return [data]
    if isinstance(data, list):
        return data
    return []


class QuestionGenerator:
    """
    Generates and persists questions for a channel, optionally aligned with a
    certification track.

    All drafts of one call are validated before any is persisted, and they
    are persisted together in one commit.
    """

    def __init__(self, db_session: AsyncSession, caller: RateLimitedCaller):
        self.db = db_session
        self.store = WorkQueueStore(db_session)
        self.caller = caller

    async def generate(
        self,
        channel: str,
        sub_channel: str,
        difficulty: str = "intermediate",
        certification_id: Optional[str] = None,
        count: int = 1
    ) -> List[Question]:
        """
        Raises:
            ContentValidationError: If the output is not `count` valid questions
            StoreError: If the batch could not be committed (nothing is stored)
            RetriesExhaustedError / NonRetryableError: From the caller
        """
        prompt = PROMPT.format(
            count=count,
            channel=channel,
            sub_channel=sub_channel,
            difficulty=difficulty,
            certification_block=CERTIFICATION_BLOCK.format(certification_id=certification_id) if certification_id else "",
        )
        text = await self.caller.call(GenerationRequest(
            task="question" if certification_id is None else f"question:{certification_id}",
            prompt=prompt,
            max_tokens=2000 * count,
        ))

        drafts = self.validate(parse_json(text), count, channel, certification_id)

        records = await self.store.create_questions(
            channel,
            sub_channel,
            drafts,
            certification_id=certification_id,
        )

        logger.info(
            f"Generated {len(records)} question(s) for {channel}/{sub_channel}"
            + (f" [{certification_id}]" if certification_id else "")
        )
        return records

    @staticmethod
    def validate(data: Any, count: int, channel: str, certification_id: Optional[str] = None) -> List[QuestionDraft]:
        context = {"channel": channel, "certification_id": certification_id}
        items = _as_list(data)
        if len(items) < count:
            raise ContentValidationError(
                f"Expected {count} question(s), got {len(items)}",
                context={**context, "validation_rule": "count"}
            )
        try:
            return [QuestionDraft.model_validate(item) for item in items[:count]]
        except ValidationError as e:
            raise ContentValidationError(
                "Generated question failed validation",
                context={**context, "validation_rule": "question_draft", "errors": e.error_count()},
                original_exception=e
            )
