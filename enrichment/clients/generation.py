"""
Generation service transport.

Performs exactly one HTTP attempt per call and maps failures onto the
retryable / non-retryable hierarchy; retrying is the caller's job.
"""

import httpx
from typing import Any, Dict, Optional
import logging

from core.config import settings
from core.exceptions import (
    AuthenticationError,
    GenerationError,
    NetworkError,
    RateLimitError,
)
from schemas.generation import GenerationRequest

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert technical interviewer. "
    "When asked for JSON, output only valid JSON with no surrounding text."
)


class GenerationClient:
    """
    OpenAI-compatible chat completions client.

    Attributes:
        api_url: Base URL, `/chat/completions` is appended
        api_key: Bearer token (optional for local gateways)
        model: Model name sent with every request
        temperature: Default sampling temperature
        timeout: httpx timeout for one request
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None
    ):
        self.api_url = (api_url or settings.GENERATION_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.GENERATION_API_KEY
        self.model = model or settings.GENERATION_MODEL
        self.temperature = temperature if temperature is not None else settings.GENERATION_TEMPERATURE
        self.timeout = timeout or settings.CALL_TIMEOUT_SECONDS

    @property
    def endpoint(self) -> str:
        return f"{self.api_url}/chat/completions"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _payload(self, request: GenerationRequest) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": request.system or DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": request.prompt},
            ],
            "max_tokens": request.max_tokens,
            "temperature": request.temperature if request.temperature is not None else self.temperature,
        }

    async def generate(self, request: GenerationRequest) -> str:
        """
        Send one chat completion request and return the message text.

        Raises:
            AuthenticationError: HTTP 401/403
            RateLimitError: HTTP 429
            NetworkError: HTTP 5xx or transport failure
            GenerationError: Other HTTP 4xx or an empty completion
        """
        context = {"task": request.task, "endpoint": self.endpoint}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.endpoint,
                    headers=self._headers(),
                    json=self._payload(request)
                )
        except httpx.TransportError as e:
            raise NetworkError("Generation service unreachable", context=context, original_exception=e)

        status = response.status_code
        if status in (401, 403):
            raise AuthenticationError(
                "Generation service rejected credentials",
                context={**context, "status_code": status}
            )

        if status == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                "Generation service rate limit",
                context={**context, "status_code": status},
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None
            )

        if status >= 500:
            raise NetworkError(
                f"Generation service error {status}",
                context={**context, "status_code": status, "response_body": response.text[:500]}
            )

        if status >= 400:
            raise GenerationError(
                f"Generation request rejected with {status}",
                context={**context, "status_code": status, "response_body": response.text[:500]}
            )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GenerationError(
                "Malformed completion payload",
                context={**context, "response_body": response.text[:500]},
                original_exception=e
            )

        if not content or not str(content).strip():
            raise GenerationError("Generation service returned empty content", context=context)

        logger.debug(f"Generation for {request.task} returned {len(content)} chars")
        return str(content)

    async def __call__(self, request: GenerationRequest) -> str:
        return await self.generate(request)
