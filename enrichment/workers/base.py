"""
Abstract base class for specialized enrichment workers
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple
import logging

from core.exceptions import ContentValidationError
from enrichment.caller import RateLimitedCaller
from enrichment.validators import parse_json
from models.base import TaskType, owned_fields
from models.question import Question
from schemas.generation import GenerationRequest
from schemas.work import TaskOutput

logger = logging.getLogger(__name__)


class SpecializedWorker(ABC):
    """
    Base class for all specialized workers.

    A worker turns one question into a TaskOutput. It never touches the
    database: the harness claims, completes and fails work items, and the
    store enforces that `fields` only names columns this task type owns.

    Subclasses set `task_type` and `default_priority` and implement `execute`.
    """

    task_type: TaskType
    default_priority: int = 5
    max_tokens: int = 1500

    def __init__(self, caller: Optional[RateLimitedCaller] = None):
        self.caller = caller

    @property
    def name(self) -> str:
        return self.task_type.value

    @property
    def owned_fields(self) -> Tuple[str, ...]:
        return owned_fields(self.task_type)

    @abstractmethod
    async def execute(self, question: Question) -> TaskOutput:
        """
        Produce new values for the owned fields of `question`.

        Raises:
            ContentValidationError: If the generated content is unusable
            RetriesExhaustedError: If the external service kept failing
            NonRetryableError: For permanent external failures
        """
        pass

    async def generate(self, prompt: str, system: Optional[str] = None) -> str:
        """Send a prompt through the rate-limited caller and return raw text"""
        if self.caller is None:
            raise RuntimeError(f"{type(self).__name__} has no generation caller configured")
        request = GenerationRequest(
            task=self.name,
            prompt=prompt,
            system=system,
            max_tokens=self.max_tokens,
        )
        return await self.caller.call(request)

    async def generate_json(self, prompt: str, question: Question) -> Any:
        text = await self.generate(prompt)
        try:
            return parse_json(text)
        except ContentValidationError as e:
            e.context.update({"task_type": self.name, "question_id": question.id})
            raise

    def reject(self, message: str, question: Question, rule: str) -> ContentValidationError:
        logger.warning(f"{self.name}: rejected output for {question.id}: {message}")
        return ContentValidationError(
            message,
            context={"task_type": self.name, "question_id": question.id, "validation_rule": rule}
        )

    @staticmethod
    def describe(question: Question, answer_chars: int = 200) -> str:
        """Compact question context shared by the prompts"""
        tags = ", ".join((question.tags or [])[:4]) or "technical"
        return (
            f'Question: "{question.question}"\n'
            f'Answer: "{(question.answer or "")[:answer_chars]}"\n'
            f"Channel: {question.channel}/{question.sub_channel}\n"
            f"Tags: {tags}"
        )
