"""Multi-angle video upload coordination."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from movaia.core.exceptions import (
    AnalysisNotFoundError,
    MissingRequiredSegmentError,
    ValidationError,
)
from movaia.core.storage import ObjectStore, generate_upload_key, upload_metadata, upload_prefix
from movaia.models.analysis import CLAIMABLE_STATUSES, Analysis, AnalysisStatus, VideoAngle
from movaia.services.activity_service import (
    START_ANALYSIS,
    UPLOAD_VIDEO,
    ActivityLogService,
    RequestContext,
)
from movaia.services.actors import UploadActor
from movaia.services.trigger_service import AnalysisTriggerService
from movaia.services.usage_service import UsageService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadTarget:
    upload_url: str
    storage_key: str
    analysis_id: str
    angle: VideoAngle
    expires: datetime


@dataclass(frozen=True)
class ConfirmResult:
    analysis: Analysis
    analysis_triggered: bool


def parse_angle(value: str | None) -> VideoAngle:
    if not value:
        raise ValidationError("videoType is required")
    try:
        return VideoAngle(value)
    except ValueError:
        raise ValidationError(f"Invalid video type: {value}") from None


def parse_tags(tags: str | None) -> list[str]:
    if not tags:
        return []
    return [t.strip() for t in tags.split(",") if t.strip()]


def can_access(analysis: Analysis, user_id: str) -> bool:
    """Owner or the coach who uploaded it."""
    return user_id in (analysis.user_id, analysis.uploaded_by_coach_id)


class UploadService:
    def __init__(
        self,
        store: ObjectStore,
        trigger: AnalysisTriggerService,
        allowed_video_types: list[str],
        upload_url_expiry: int = 3600,
        usage: type[UsageService] = UsageService,
        activity: type[ActivityLogService] = ActivityLogService,
    ):
        self.store = store
        self.trigger = trigger
        self.allowed_video_types = allowed_video_types
        self.upload_url_expiry = upload_url_expiry
        self.usage = usage
        self.activity = activity

    async def issue_upload_target(
        self,
        actor: UploadActor,
        video_type: str,
        content_type: str,
        file_name: str,
        analysis_id: str | None = None,
    ) -> UploadTarget:
        """Presigned PUT for one segment. Nothing is persisted until confirmation."""
        if not file_name or not content_type:
            raise ValidationError("fileName, fileType, and videoType are required")
        angle = parse_angle(video_type)
        if content_type not in self.allowed_video_types:
            raise ValidationError(
                f"Invalid file type {content_type}. Allowed: {', '.join(self.allowed_video_types)}"
            )

        analysis_id = analysis_id or str(uuid.uuid4())
        key = generate_upload_key(actor.owner_id, analysis_id, angle.value, file_name)
        upload_url = await self.store.presign_upload(
            key,
            content_type,
            self.upload_url_expiry,
            metadata=upload_metadata(actor.owner_id, analysis_id, angle.value, file_name),
        )
        expires = datetime.now(timezone.utc) + timedelta(seconds=self.upload_url_expiry)
        logger.info(
            f"Upload URL issued: analysis_id={analysis_id}, angle={angle.value}, "
            f"owner={actor.owner_id}, actor={actor.acting_user_id}"
        )
        return UploadTarget(upload_url, key, analysis_id, angle, expires)

    async def confirm_segment(
        self,
        db: AsyncSession,
        actor: UploadActor,
        analysis_id: str,
        video_type: str | None,
        storage_key: str,
        is_final: bool,
        notes: str | None = None,
        tags: str | None = None,
        context: RequestContext | None = None,
    ) -> ConfirmResult:
        """
        Record an uploaded segment and, on the final one, start analysis.

        An empty ``storage_key`` with ``is_final`` re-validates the normal
        segment and triggers analysis without touching segment fields.

        Raises:
            ValidationError: missing id / key / bad angle / foreign key prefix
            AnalysisNotFoundError: unknown or inaccessible analysis
            MissingRequiredSegmentError: finalized without the normal video
            ExternalSubmissionError: worker submission failed
        """
        if not analysis_id:
            raise ValidationError("analysisId is required")

        if is_final and not storage_key:
            return await self._trigger_only(db, actor, analysis_id, context)

        if not storage_key:
            raise ValidationError("S3 key is required for video upload")
        angle = parse_angle(video_type)
        self._check_key(actor, analysis_id, angle, storage_key)

        analysis = await db.get(Analysis, analysis_id)
        if analysis is None:
            analysis = Analysis(
                id=analysis_id,
                user_id=actor.owner_id,
                uploaded_by_coach_id=actor.coach_id,
                status=AnalysisStatus.DRAFT.value,
                notes=notes,
                tags=parse_tags(tags),
            )
            db.add(analysis)
            logger.info(f"Analysis created: analysis_id={analysis_id}, owner={actor.owner_id}")
        elif not can_access(analysis, actor.acting_user_id):
            raise AnalysisNotFoundError(analysis_id)

        analysis.set_segment(angle, storage_key)
        await db.commit()
        await db.refresh(analysis)
        logger.info(
            f"Segment confirmed: analysis_id={analysis_id}, angle={angle.value}, final={is_final}"
        )

        await self.activity.record(
            db,
            user_id=actor.acting_user_id,
            action=UPLOAD_VIDEO,
            entity_id=analysis_id,
            metadata={
                "key": storage_key,
                "videoType": angle.value,
                "athleteId": actor.owner_id if actor.coach_id else None,
                "isComplete": is_final,
            },
            context=context,
        )

        triggered = False
        if is_final:
            triggered = await self._start(db, analysis)
        return ConfirmResult(analysis, triggered)

    async def _trigger_only(
        self,
        db: AsyncSession,
        actor: UploadActor,
        analysis_id: str,
        context: RequestContext | None,
    ) -> ConfirmResult:
        analysis = await db.get(Analysis, analysis_id)
        if analysis is None or not can_access(analysis, actor.acting_user_id):
            raise AnalysisNotFoundError(analysis_id)

        triggered = await self._start(db, analysis)
        await self.activity.record(
            db,
            user_id=actor.acting_user_id,
            action=START_ANALYSIS,
            entity_id=analysis_id,
            metadata={"athleteId": actor.owner_id if actor.coach_id else None},
            context=context,
        )
        return ConfirmResult(analysis, triggered)

    async def _start(self, db: AsyncSession, analysis: Analysis) -> bool:
        if not analysis.is_uploaded(VideoAngle.NORMAL):
            raise MissingRequiredSegmentError(analysis.id)

        await self._mark_pending(db, analysis.id)
        submitted = await self.trigger.trigger(db, analysis.id)
        if submitted:
            await self.usage.increment(db, analysis.user_id)
        await db.refresh(analysis)
        return submitted

    async def _mark_pending(self, db: AsyncSession, analysis_id: str) -> None:
        # Only from a claimable status, an in-flight analysis stays PROCESSING.
        await db.execute(
            update(Analysis)
            .where(
                Analysis.id == analysis_id,
                Analysis.status.in_([s.value for s in CLAIMABLE_STATUSES]),
            )
            .values(status=AnalysisStatus.PENDING.value)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

    @staticmethod
    def _check_key(actor: UploadActor, analysis_id: str, angle: VideoAngle, storage_key: str) -> None:
        prefixes = {
            upload_prefix(user_id, analysis_id, angle.value)
            for user_id in (actor.owner_id, actor.acting_user_id)
        }
        if not any(storage_key.startswith(prefix) for prefix in prefixes):
            raise ValidationError(f"Storage key does not belong to this upload: {storage_key}")
