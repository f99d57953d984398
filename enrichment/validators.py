"""
Validation helpers for generated content.

Used both by the workers (to reject unusable model output) and by the store's
gap scan (to decide that an existing value needs regenerating).
"""

import json
import re
from typing import Any, Dict, List, Optional

from core.exceptions import ContentValidationError

MIN_DIAGRAM_CHARS = 20
MIN_ANSWER_CHARS = 20
MIN_EXPLANATION_CHARS = 100

MERMAID_HEADERS = [
    re.compile(r"^(graph|flowchart)\s+(TD|TB|BT|RL|LR)", re.IGNORECASE),
    re.compile(r"^sequenceDiagram", re.IGNORECASE),
    re.compile(r"^classDiagram", re.IGNORECASE),
    re.compile(r"^stateDiagram", re.IGNORECASE),
    re.compile(r"^erDiagram", re.IGNORECASE),
    re.compile(r"^gantt", re.IGNORECASE),
    re.compile(r"^pie", re.IGNORECASE),
    re.compile(r"^mindmap", re.IGNORECASE),
]

_FENCE_RE = re.compile(r"```(?:json|mermaid)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def is_valid_mermaid(diagram: Optional[str]) -> bool:
    """True when the text is long enough and starts with a known diagram type"""
    if not diagram or len(diagram.strip()) < MIN_DIAGRAM_CHARS:
        return False
    trimmed = diagram.strip()
    return any(pattern.match(trimmed) for pattern in MERMAID_HEADERS)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict, tuple)):
        return len(value) == 0
    return False


def video_urls(videos: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Non-empty video references keyed by slot (shortVideo / longVideo)"""
    if not isinstance(videos, dict):
        return {}
    return {
        slot: url.strip()
        for slot, url in videos.items()
        if isinstance(url, str) and url.strip()
    }


def needs_improvement(answer: Optional[str], explanation: Optional[str]) -> bool:
    return (
        len((answer or "").strip()) < MIN_ANSWER_CHARS
        or len((explanation or "").strip()) < MIN_EXPLANATION_CHARS
    )


def parse_json(text: Optional[str]) -> Any:
    """
    Extract the first JSON object or array from model output.

    Handles code fences and leading/trailing prose.

    Raises:
        ContentValidationError: If no JSON can be decoded
    """
    if not text or not text.strip():
        raise ContentValidationError("Empty response from generation service")

    candidates: List[str] = []
    fenced = _FENCE_RE.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    candidates.append(text.strip())

    decoder = json.JSONDecoder()
    for candidate in candidates:
        for start, char in enumerate(candidate):
            if char not in "{[":
                continue
            try:
                value, _ = decoder.raw_decode(candidate[start:])
                return value
            except json.JSONDecodeError:
                continue

    raise ContentValidationError(
        "Response did not contain valid JSON",
        context={"response_preview": text[:200]}
    )


def clean_text(text: Optional[str], field: str, max_chars: int, min_chars: int = 1) -> str:
    """
    Strip quotes/whitespace from a short generated text and enforce bounds.

    Raises:
        ContentValidationError: If the text is empty or longer than max_chars
    """
    value = (text or "").strip().strip('"').strip()
    if len(value) < min_chars:
        raise ContentValidationError(
            f"Generated {field} is too short",
            context={"field": field, "chars": len(value), "validation_rule": f"min_chars={min_chars}"}
        )
    if len(value) > max_chars:
        raise ContentValidationError(
            f"Generated {field} is too long",
            context={"field": field, "chars": len(value), "validation_rule": f"max_chars={max_chars}"}
        )
    return value
