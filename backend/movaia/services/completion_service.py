"""Worker completion webhook handling."""

import hmac
import logging
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from movaia.core.exceptions import AnalysisNotFoundError, WebhookAuthError
from movaia.core.storage import thumbnail_key
from movaia.models.analysis import Analysis, AnalysisStatus, VideoAngle
from movaia.schemas.analysis import WebhookPayload
from movaia.services.notification_service import ANALYSIS_COMPLETE, NotificationService

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = [AnalysisStatus.COMPLETED.value, AnalysisStatus.FAILED.value]


def check_webhook_secret(expected: str, provided: str | None) -> None:
    """No-op when no secret is configured."""
    if not expected:
        return
    if not provided or not hmac.compare_digest(expected, provided):
        raise WebhookAuthError()


def _processing_seconds(analysis: Analysis) -> float | None:
    started = analysis.updated_at
    if started is None:
        return None
    if started.tzinfo is None:
        # SQLite drops the offset; values are written in UTC
        started = started.replace(tzinfo=timezone.utc)
    return (datetime.now(timezone.utc) - started).total_seconds()


class CompletionService:
    def __init__(self, notifications: type[NotificationService] = NotificationService):
        self.notifications = notifications

    async def complete(self, db: AsyncSession, payload: WebhookPayload) -> bool:
        """
        Apply a worker outcome to the analysis.

        Returns:
            True if the outcome was applied, False if the analysis was
            already terminal (duplicate delivery).

        Raises:
            AnalysisNotFoundError: unknown analysis id
        """
        analysis_id = payload.analysis_id
        analysis = await db.get(Analysis, analysis_id)
        if analysis is None:
            raise AnalysisNotFoundError(analysis_id)

        if payload.user_id != analysis.user_id:
            logger.warning(
                f"Webhook user mismatch: analysis_id={analysis_id}, "
                f"payload={payload.user_id}, record={analysis.user_id}"
            )

        duration = _processing_seconds(analysis)

        if payload.status == "failed":
            applied = await self._apply(db, analysis_id, status=AnalysisStatus.FAILED.value)
            if applied:
                logger.warning(
                    f"Worker reported failure: analysis_id={analysis_id}, "
                    f"error={payload.error}, duration={duration}s"
                )
        else:
            values = {
                "status": AnalysisStatus.COMPLETED.value,
                "thumbnail_key": thumbnail_key(analysis.user_id, analysis_id, VideoAngle.NORMAL.value),
            }
            if payload.metrics is not None:
                values["metrics"] = payload.metrics
            applied = await self._apply(db, analysis_id, **values)
            if applied:
                logger.info(f"Analysis completed: analysis_id={analysis_id}, duration={duration}s")

        await db.refresh(analysis)
        if not applied:
            logger.info(
                f"Duplicate webhook ignored: analysis_id={analysis_id}, status={analysis.status}"
            )
            return False

        if analysis.status == AnalysisStatus.COMPLETED.value:
            await self._notify_complete(db, analysis)
        return True

    async def _apply(self, db: AsyncSession, analysis_id: str, **values) -> bool:
        """Write the outcome unless the analysis is already terminal."""
        stmt = (
            update(Analysis)
            .where(Analysis.id == analysis_id, Analysis.status.notin_(TERMINAL_STATUSES))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount == 1

    async def _notify_complete(self, db: AsyncSession, analysis: Analysis) -> None:
        # Best effort: the completion is already committed.
        try:
            await self.notifications.notify(
                db,
                user_id=analysis.user_id,
                type=ANALYSIS_COMPLETE,
                title="Analysis Complete",
                message="Your running form analysis is ready!",
                metadata={"analysisId": analysis.id},
            )
        except Exception:
            logger.exception(f"Failed to create completion notification: analysis_id={analysis.id}")
            await db.rollback()
