"""Analysis trigger: submits uploaded segments to the external worker."""

import asyncio
import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from movaia.core.exceptions import (
    AnalysisNotFoundError,
    ExternalSubmissionError,
    MissingRequiredSegmentError,
)
from movaia.core.storage import ObjectStore
from movaia.models.analysis import CLAIMABLE_STATUSES, Analysis, AnalysisStatus, VideoAngle
from movaia.workers.client import AnalysisWorkerClient

logger = logging.getLogger(__name__)

# Worker input URLs are presigned at submission time, valid for one hour.
INPUT_URL_EXPIRY = 3600


class AnalysisTriggerService:
    def __init__(self, store: ObjectStore, worker: AnalysisWorkerClient):
        self.store = store
        self.worker = worker

    async def trigger(self, db: AsyncSession, analysis_id: str) -> bool:
        """
        Submit an analysis to the worker.

        Args:
            db: async database session
            analysis_id: analysis to submit

        Returns:
            True when this call submitted the job, False when another
            submission already holds the analysis (no-op).

        Raises:
            AnalysisNotFoundError: no such analysis
            MissingRequiredSegmentError: normal video not uploaded (status untouched)
            ExternalSubmissionError: submission failed for any reason (status is FAILED)
        """
        analysis = await db.get(Analysis, analysis_id)
        if analysis is None:
            raise AnalysisNotFoundError(analysis_id)

        if not analysis.is_uploaded(VideoAngle.NORMAL):
            raise MissingRequiredSegmentError(analysis_id)

        if not await self._claim(db, analysis_id):
            logger.info(
                f"Trigger skipped, analysis already in flight or finished: "
                f"analysis_id={analysis_id}, status={analysis.status}"
            )
            return False
        await db.refresh(analysis)

        try:
            videos = await self._presign_inputs(analysis)
            if videos[VideoAngle.NORMAL.wire_name] is None:
                raise ExternalSubmissionError(analysis_id, "normal video could not be presigned")
            await self.worker.submit(analysis_id, analysis.user_id, videos)
        except Exception as e:
            # A claimed analysis must never stay PROCESSING without a submitted job.
            logger.exception(f"Failed to trigger analysis: analysis_id={analysis_id}")
            await self._set_status(db, analysis_id, AnalysisStatus.FAILED)
            await db.refresh(analysis)
            if isinstance(e, ExternalSubmissionError):
                raise
            raise ExternalSubmissionError(analysis_id, f"{type(e).__name__}: {e}") from e

        logger.info(
            f"Analysis submitted: analysis_id={analysis_id}, "
            f"angles={[a.value for a in analysis.uploaded_angles()]}"
        )
        return True

    async def _claim(self, db: AsyncSession, analysis_id: str) -> bool:
        """Atomically move a claimable analysis to PROCESSING."""
        stmt = (
            update(Analysis)
            .where(
                Analysis.id == analysis_id,
                Analysis.status.in_([s.value for s in CLAIMABLE_STATUSES]),
            )
            .values(status=AnalysisStatus.PROCESSING.value)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount == 1

    async def _set_status(self, db: AsyncSession, analysis_id: str, status: AnalysisStatus) -> None:
        await db.execute(
            update(Analysis)
            .where(Analysis.id == analysis_id)
            .values(status=status.value)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

    async def _presign_inputs(self, analysis: Analysis) -> dict[str, str | None]:
        angles = list(VideoAngle)
        urls = await asyncio.gather(*(self._presign_segment(analysis, angle) for angle in angles))
        return {angle.wire_name: url for angle, url in zip(angles, urls)}

    async def _presign_segment(self, analysis: Analysis, angle: VideoAngle) -> str | None:
        if not analysis.is_uploaded(angle):
            return None
        return await self.store.try_presign_download(
            analysis.segment_key(angle), expiry=INPUT_URL_EXPIRY
        )
