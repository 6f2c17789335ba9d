import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from movaia.api.deps import get_request_context, get_upload_service
from movaia.core.database import get_db
from movaia.core.exceptions import (
    ExternalSubmissionError,
    MissingRequiredSegmentError,
    NotFoundError,
    UploadNotPermittedError,
    ValidationError,
)
from movaia.core.security import get_current_user
from movaia.models.user import User
from movaia.schemas.analysis import AnalysisResponse
from movaia.schemas.video import (
    ConfirmUploadRequest,
    ConfirmUploadResponse,
    UploadUrlRequest,
    UploadUrlResponse,
)
from movaia.services import RequestContext, UploadService, resolve_upload_actor

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload-url", response_model=UploadUrlResponse)
async def get_upload_url(
    body: UploadUrlRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: UploadService = Depends(get_upload_service),
):
    """Presigned S3 PUT URL for one video angle."""
    try:
        actor = await resolve_upload_actor(db, user, body.athlete_id)
        target = await service.issue_upload_target(
            actor,
            video_type=body.video_type,
            content_type=body.file_type,
            file_name=body.file_name,
            analysis_id=body.analysis_id,
        )
    except UploadNotPermittedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return UploadUrlResponse(
        upload_url=target.upload_url,
        key=target.storage_key,
        analysis_id=target.analysis_id,
        video_type=target.angle.value,
        expires=target.expires,
    )


@router.post("/confirm-upload", response_model=ConfirmUploadResponse)
async def confirm_upload(
    body: ConfirmUploadRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: UploadService = Depends(get_upload_service),
    context: RequestContext = Depends(get_request_context),
):
    """Confirm an uploaded segment; ``isComplete`` starts the analysis."""
    try:
        actor = await resolve_upload_actor(db, user, body.athlete_id)
        result = await service.confirm_segment(
            db,
            actor,
            analysis_id=body.analysis_id,
            video_type=body.video_type,
            storage_key=body.key,
            is_final=body.is_complete,
            notes=body.notes,
            tags=body.tags,
            context=context,
        )
    except UploadNotPermittedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (ValidationError, MissingRequiredSegmentError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExternalSubmissionError as e:
        logger.error(f"Analysis failed to start: {e}")
        raise HTTPException(status_code=502, detail="Analysis failed to start")

    if body.key:
        message = f"Video uploaded successfully ({body.video_type})"
    elif result.analysis_triggered:
        message = "Analysis started successfully"
    else:
        message = "Analysis already in progress"
    return ConfirmUploadResponse(
        message=message,
        analysis=AnalysisResponse.model_validate(result.analysis),
        analysis_triggered=result.analysis_triggered,
    )
