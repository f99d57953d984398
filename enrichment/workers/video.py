"""
Video worker (owns `videos`, `videos_checked_at`).

Does not generate anything: it checks every stored video reference through
the existence transport and clears the ones that are gone.
"""

from datetime import datetime
from typing import Dict, List, Optional
import logging

from enrichment.caller import RateLimitedCaller
from enrichment.validators import video_urls
from enrichment.workers.base import SpecializedWorker
from models.base import TaskType
from models.question import Question
from schemas.generation import VideoCheckRequest
from schemas.work import TaskOutput, VideoCheckResult

logger = logging.getLogger(__name__)


class VideoWorker(SpecializedWorker):
    task_type = TaskType.VIDEO
    default_priority = 4

    def __init__(self, video_caller: Optional[RateLimitedCaller] = None):
        super().__init__(caller=None)
        self.video_caller = video_caller

    async def execute(self, question: Question) -> TaskOutput:
        if self.video_caller is None:
            raise RuntimeError("VideoWorker has no video caller configured")

        videos: Dict[str, Optional[str]] = dict(question.videos or {})
        kept: List[str] = []
        removed: List[str] = []

        for slot, url in video_urls(videos).items():
            exists = await self.video_caller.call(VideoCheckRequest(url=url))
            if exists:
                kept.append(url)
            else:
                removed.append(url)
                videos[slot] = None
                logger.info(f"Removing broken {slot} from {question.id}: {url}")

        return TaskOutput(
            fields={"videos": videos, "videos_checked_at": datetime.utcnow()},
            result=VideoCheckResult(checked=len(kept) + len(removed), kept=kept, removed=removed),
        )
