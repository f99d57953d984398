"""
Company worker (owns `companies`): organisations known to ask the question
"""

from typing import Any, List

from enrichment.workers.base import SpecializedWorker
from models.base import TaskType
from models.question import Question
from schemas.work import CompanyResult, TaskOutput

MAX_COMPANIES = 10

PROMPT = """List real companies known to ask this interview question (or a
close variant) in technical interviews.

{context}

Output a JSON array of company names, most likely first, e.g.
["Google", "Amazon", "Stripe"]. Return ONLY the JSON array."""


def normalize_companies(raw: Any, limit: int = MAX_COMPANIES) -> List[str]:
    """Dedupe case-insensitively, drop blanks and non-strings, keep order"""
    if isinstance(raw, dict):
        raw = raw.get("companies", [])
    if not isinstance(raw, list):
        return []

    seen = set()
    companies = []
    for name in raw:
        if not isinstance(name, str):
            continue
        name = " ".join(name.split())
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        companies.append(name)
        if len(companies) >= limit:
            break
    return companies


class CompanyWorker(SpecializedWorker):
    task_type = TaskType.COMPANY
    default_priority = 7
    max_tokens = 300

    async def execute(self, question: Question) -> TaskOutput:
        data = await self.generate_json(PROMPT.format(context=self.describe(question)), question)
        companies = normalize_companies(data)
        if not companies:
            raise self.reject("No company names in generated output", question, "non_empty_list")

        return TaskOutput(
            fields={"companies": companies},
            result=CompanyResult(companies=companies),
        )
