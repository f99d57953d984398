"""
Answer improver (owns `answer`, `explanation`).

The model is asked for exactly two keys. Anything else it returns, even a
diagram or a summary, is dropped: those fields belong to other workers.
"""

import logging

from enrichment.validators import MIN_ANSWER_CHARS, MIN_EXPLANATION_CHARS
from enrichment.workers.base import SpecializedWorker
from models.base import TaskType
from models.question import Question
from schemas.work import AnswerResult, TaskOutput

logger = logging.getLogger(__name__)

MAX_ANSWER_CHARS = 5000

PROMPT = """Improve the answer and explanation for this interview question.

Question: "{question}"
Current answer: "{answer}"
Current explanation: "{explanation}"

The answer must be a concise, correct response (at least {min_answer} characters).
The explanation must teach the concept in depth with examples (at least
{min_explanation} characters, markdown allowed).

Output this exact JSON structure:
{{"answer":"...","explanation":"..."}}

Return ONLY the JSON object."""


class AnswerImproverWorker(SpecializedWorker):
    task_type = TaskType.IMPROVE
    default_priority = 3
    max_tokens = 2500

    async def execute(self, question: Question) -> TaskOutput:
        prompt = PROMPT.format(
            question=question.question,
            answer=(question.answer or "")[:1500],
            explanation=(question.explanation or "")[:3000],
            min_answer=MIN_ANSWER_CHARS,
            min_explanation=MIN_EXPLANATION_CHARS,
        )
        data = await self.generate_json(prompt, question)
        if not isinstance(data, dict):
            raise self.reject("Expected a JSON object", question, "json_object")

        answer = str(data.get("answer") or "").strip()
        explanation = str(data.get("explanation") or "").strip()

        if len(answer) < MIN_ANSWER_CHARS or len(answer) > MAX_ANSWER_CHARS:
            raise self.reject(f"Answer length {len(answer)} out of bounds", question, "answer_length")
        if len(explanation) < MIN_EXPLANATION_CHARS:
            raise self.reject(f"Explanation too short ({len(explanation)} chars)", question, "explanation_length")

        dropped = sorted(k for k in data if k not in self.owned_fields)
        if dropped:
            logger.info(f"improve: ignoring keys outside answer/explanation for {question.id}: {dropped}")

        return TaskOutput(
            fields={"answer": answer, "explanation": explanation},
            result=AnswerResult(
                answer_chars=len(answer),
                explanation_chars=len(explanation),
                dropped_fields=dropped,
            ),
        )
