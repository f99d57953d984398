"""
Specialized workers, one per task type.

    mermaid  -> DiagramWorker
    eli5     -> Eli5Worker
    tldr     -> TldrWorker
    company  -> CompanyWorker
    video    -> VideoWorker (existence checks, no generation)
    improve  -> AnswerImproverWorker
"""

from typing import Dict, Optional, Type

from enrichment.caller import RateLimitedCaller
from enrichment.clients import GenerationClient, VideoExistenceClient
from enrichment.workers.base import SpecializedWorker
from enrichment.workers.company import CompanyWorker
from enrichment.workers.diagram import DiagramWorker
from enrichment.workers.improve import AnswerImproverWorker
from enrichment.workers.summary import Eli5Worker, TldrWorker
from enrichment.workers.video import VideoWorker
from models.base import TaskType

WORKER_CLASSES: Dict[TaskType, Type[SpecializedWorker]] = {
    TaskType.MERMAID: DiagramWorker,
    TaskType.ELI5: Eli5Worker,
    TaskType.TLDR: TldrWorker,
    TaskType.COMPANY: CompanyWorker,
    TaskType.VIDEO: VideoWorker,
    TaskType.IMPROVE: AnswerImproverWorker,
}


def build_worker(
    task_type: TaskType,
    caller: Optional[RateLimitedCaller] = None,
    video_caller: Optional[RateLimitedCaller] = None
) -> SpecializedWorker:
    """
    Instantiate the worker for a task type.

    Callers default to settings-configured RateLimitedCallers around the
    generation and video transports.
    """
    task_type = TaskType(task_type)
    if task_type == TaskType.VIDEO:
        return VideoWorker(video_caller or RateLimitedCaller.from_settings(VideoExistenceClient(), name="video"))
    return WORKER_CLASSES[task_type](
        caller or RateLimitedCaller.from_settings(GenerationClient(), name="generation")
    )


def build_workers(
    caller: Optional[RateLimitedCaller] = None,
    video_caller: Optional[RateLimitedCaller] = None
) -> Dict[TaskType, SpecializedWorker]:
    return {t: build_worker(t, caller, video_caller) for t in TaskType}


__all__ = [
    "SpecializedWorker",
    "DiagramWorker",
    "Eli5Worker",
    "TldrWorker",
    "CompanyWorker",
    "VideoWorker",
    "AnswerImproverWorker",
    "WORKER_CLASSES",
    "build_worker",
    "build_workers",
]
