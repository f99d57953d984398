"""
Short-text workers: ELI5 explanation (owns `eli5`) and one-line TL;DR (owns `tldr`)
"""

from core.exceptions import ContentValidationError
from enrichment.validators import clean_text
from enrichment.workers.base import SpecializedWorker
from models.base import TaskType
from models.question import Question
from schemas.work import TaskOutput, TextResult

ELI5_MAX_CHARS = 1200
TLDR_MAX_CHARS = 200

ELI5_PROMPT = """Explain the answer to this interview question as if to a
five-year-old. Use a simple everyday analogy, no jargon, at most 5 sentences.

{context}

Return only the explanation text."""

TLDR_PROMPT = """Summarise the answer to this interview question in one
sentence of at most {max_chars} characters.

{context}

Return only the sentence."""


class _ShortTextWorker(SpecializedWorker):
    field: str
    max_chars: int
    prompt: str
    max_tokens = 400

    async def execute(self, question: Question) -> TaskOutput:
        prompt = self.prompt.format(context=self.describe(question, answer_chars=600), max_chars=self.max_chars)
        text = await self.generate(prompt)
        try:
            value = clean_text(text, self.field, self.max_chars)
        except ContentValidationError as e:
            e.context.update({"task_type": self.name, "question_id": question.id})
            raise
        return TaskOutput(
            fields={self.field: value},
            result=TextResult(field=self.field, chars=len(value)),
        )


class Eli5Worker(_ShortTextWorker):
    task_type = TaskType.ELI5
    default_priority = 6
    field = "eli5"
    max_chars = ELI5_MAX_CHARS
    prompt = ELI5_PROMPT


class TldrWorker(_ShortTextWorker):
    task_type = TaskType.TLDR
    default_priority = 6
    field = "tldr"
    max_chars = TLDR_MAX_CHARS
    prompt = TLDR_PROMPT
    max_tokens = 120
