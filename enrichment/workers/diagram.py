"""
Mermaid diagram worker (owns `diagram`)
"""

import logging

from enrichment.validators import is_valid_mermaid
from enrichment.workers.base import SpecializedWorker
from models.base import TaskType
from models.question import Question
from schemas.work import DiagramResult, TaskOutput

logger = logging.getLogger(__name__)

CONFIDENCE_LEVELS = ("high", "medium", "low")

PROMPT = """Create a detailed Mermaid diagram for this interview question.

{context}

Requirements: use flowchart TD or the most appropriate diagram type, include
5-10 meaningful nodes, show relationships clearly, use proper Mermaid syntax.

Output this exact JSON structure:
{{"diagram":"flowchart TD\\n  A[Step 1] --> B[Step 2]","diagramType":"flowchart|sequence|class|state","confidence":"high|medium|low"}}

Return ONLY the JSON object."""


class DiagramWorker(SpecializedWorker):
    task_type = TaskType.MERMAID
    default_priority = 5

    async def execute(self, question: Question) -> TaskOutput:
        data = await self.generate_json(PROMPT.format(context=self.describe(question)), question)

        if not isinstance(data, dict):
            raise self.reject("Expected a JSON object", question, "json_object")

        diagram = str(data.get("diagram") or "").strip()
        if not is_valid_mermaid(diagram):
            raise self.reject("Generated diagram is not valid mermaid", question, "mermaid_header")

        confidence = str(data.get("confidence") or "medium").lower()
        if confidence not in CONFIDENCE_LEVELS:
            confidence = "medium"

        return TaskOutput(
            fields={"diagram": diagram},
            result=DiagramResult(
                diagram_type=str(data.get("diagramType") or "flowchart"),
                confidence=confidence,
                replaced_existing=bool(question.diagram),
            ),
        )
