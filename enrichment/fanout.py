"""
Fan-Out Generator - a primary question plus related certification questions.

The primary generation must succeed. Every related certification track is
generated independently afterwards: a failing track is recorded on its
TrackResult and never rolls back the primary or any other track.
"""

from typing import Callable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from core.exceptions import EnrichmentException, summarize_error
from enrichment.generator import QuestionGenerator
from enrichment.taxonomy import certifications_for_channel
from schemas.generation import FanOutOptions, FanOutResult, TrackResult

logger = logging.getLogger(__name__)

CertificationMapping = Callable[[str], List[str]]


class FanOutGenerator:
    """
    Attributes:
        generator: QuestionGenerator used for the primary and every track
        certification_mapping: channel -> certification ids (defaults to the static taxonomy)
    """

    def __init__(
        self,
        db_session: AsyncSession,
        generator: QuestionGenerator,
        certification_mapping: Optional[CertificationMapping] = None
    ):
        self.db = db_session
        self.generator = generator
        self.certification_mapping = certification_mapping or certifications_for_channel

    async def generate_with_related(
        self,
        channel: str,
        sub_channel: str,
        options: Optional[FanOutOptions] = None
    ) -> FanOutResult:
        """
        Generate the primary question, then one generation per related track.

        Raises:
            EnrichmentException: If the primary generation fails (no tracks are attempted)
        """
        options = options or FanOutOptions()

        primary_records = await self.generator.generate(
            channel,
            sub_channel,
            difficulty=options.difficulty,
        )
        primary = self._detach(primary_records)[0]
        result = FanOutResult(primary=primary)

        if not options.include_related:
            return result

        tracks = self.certification_mapping(channel)
        if not tracks:
            logger.debug(f"No certification tracks for channel {channel}")
            return result

        logger.info(f"Fanning out {primary.id} to {len(tracks)} certification tracks")

        for track_id in tracks:
            try:
                records = await self.generator.generate(
                    channel,
                    sub_channel,
                    difficulty=options.difficulty,
                    certification_id=track_id,
                    count=options.count_per_track,
                )
                result.related.append(TrackResult(track_id=track_id, records=self._detach(records)))

            except Exception as e:
                # Anything this track left uncommitted must not leak into the next one
                if self.db.in_transaction():
                    await self.db.rollback()
                reason = summarize_error(e)
                logger.warning(
                    f"Track {track_id} failed for {primary.id}: {reason}",
                    extra={"error_context": e.to_dict() if isinstance(e, EnrichmentException) else {}}
                )
                result.related.append(TrackResult(track_id=track_id, error=reason))

        logger.info(
            f"Fan-out for {primary.id}: {len(result.succeeded_tracks)} tracks succeeded, "
            f"{len(result.failed_tracks)} failed"
        )
        return result

    def _detach(self, records):
        # Committed records stay readable after a later track rolls back
        for record in records:
            self.db.expunge(record)
        return records
