"""
Inline question generation with certification fan-out
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db
from core.exceptions import AuthenticationError, EnrichmentException
from enrichment.caller import RateLimitedCaller
from enrichment.clients import GenerationClient
from enrichment.fanout import FanOutGenerator
from enrichment.generator import QuestionGenerator
from enrichment.taxonomy import CHANNELS
from schemas.api import GenerateQuestionRequest, GenerateQuestionResponse, TrackInfo
from schemas.generation import FanOutOptions
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/questions", tags=["Questions"])


def get_generation_caller() -> RateLimitedCaller:
    return RateLimitedCaller.from_settings(GenerationClient(), name="generation")


@router.post("/generate", response_model=GenerateQuestionResponse, status_code=201)
async def generate_question(
    request: Request,
    body: GenerateQuestionRequest,
    db: AsyncSession = Depends(get_db),
    caller: RateLimitedCaller = Depends(get_generation_caller)
):
    """
    Generate a primary question and, unless disabled, one question set per
    related certification track. Track failures are reported, not raised.
    """
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")
    logger.info(f"[{request_id}] POST /questions/generate - channel={body.channel}/{body.sub_channel}")

    if body.channel not in CHANNELS:
        raise HTTPException(status_code=422, detail=f"Unknown channel: {body.channel}")

    fanout = FanOutGenerator(db, QuestionGenerator(db, caller))
    options = FanOutOptions(
        difficulty=body.difficulty,
        include_related=body.include_related,
        count_per_track=body.count_per_track
    )

    try:
        result = await fanout.generate_with_related(body.channel, body.sub_channel, options)
    except AuthenticationError as e:
        logger.error(f"[{request_id}] Generation service rejected credentials", extra={"error_context": e.to_dict()})
        raise HTTPException(status_code=503, detail="Generation service unavailable")
    except EnrichmentException as e:
        logger.error(f"[{request_id}] Primary generation failed: {e.summary()}", extra={"error_context": e.to_dict()})
        raise HTTPException(status_code=502, detail=e.summary())

    return GenerateQuestionResponse(
        primary_id=result.primary.id,
        channel=body.channel,
        sub_channel=body.sub_channel,
        related=[
            TrackInfo(track_id=t.track_id, question_ids=t.question_ids, error=t.error)
            for t in result.related
        ],
        succeeded_tracks=len(result.succeeded_tracks),
        failed_tracks=len(result.failed_tracks),
        request_id=request_id
    )
