"""
Video existence transport backed by the YouTube oEmbed endpoint
"""

import httpx
from typing import Optional
import logging

from core.config import settings
from core.exceptions import NetworkError, RateLimitError
from schemas.generation import VideoCheckRequest

logger = logging.getLogger(__name__)

# oEmbed answers these for removed, private or malformed videos
MISSING_STATUSES = (400, 401, 403, 404)


class VideoExistenceClient:
    def __init__(self, oembed_url: Optional[str] = None, timeout: float = 15.0):
        self.oembed_url = oembed_url or settings.VIDEO_OEMBED_URL
        self.timeout = timeout

    async def exists(self, request: VideoCheckRequest) -> bool:
        """
        True if the provider still serves the video, False if it is gone.

        Raises:
            RateLimitError: HTTP 429
            NetworkError: HTTP 5xx or transport failure
        """
        context = {"video_url": request.url}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    self.oembed_url,
                    params={"url": request.url, "format": "json"}
                )
        except httpx.TransportError as e:
            raise NetworkError("Video provider unreachable", context=context, original_exception=e)

        status = response.status_code
        if status == 200:
            return True
        if status in MISSING_STATUSES:
            logger.info(f"Video no longer available ({status}): {request.url}")
            return False
        if status == 429:
            raise RateLimitError("Video provider rate limit", context={**context, "status_code": status})

        raise NetworkError(
            f"Video provider returned {status}",
            context={**context, "status_code": status}
        )

    async def __call__(self, request: VideoCheckRequest) -> bool:
        return await self.exists(request)
