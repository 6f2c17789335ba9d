import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from movaia.api.deps import get_completion_service, get_result_service, get_trigger_service
from movaia.config import Settings, get_settings
from movaia.core.database import get_db
from movaia.core.exceptions import (
    ExternalSubmissionError,
    MissingRequiredSegmentError,
    NotFoundError,
    ValidationError,
    WebhookAuthError,
)
from movaia.core.security import get_current_user_id
from movaia.models.analysis import Analysis
from movaia.schemas.analysis import (
    AnalysisFilesResponse,
    AnalysisListResponse,
    AnalysisResponse,
    TriggerRequest,
    TriggerResponse,
    WebhookPayload,
    WebhookResponse,
)
from movaia.services import AnalysisTriggerService, CompletionService, ResultService
from movaia.services.completion_service import check_webhook_secret
from movaia.services.upload_service import can_access

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook", response_model=WebhookResponse)
async def handle_webhook(
    payload: WebhookPayload,
    x_webhook_secret: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
    service: CompletionService = Depends(get_completion_service),
):
    """Completion callback from the analysis worker (no user auth)."""
    logger.info(
        f"Received webhook from worker: analysis_id={payload.analysis_id}, status={payload.status}"
    )
    try:
        check_webhook_secret(settings.webhook_secret, x_webhook_secret)
        applied = await service.complete(db, payload)
    except WebhookAuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    message = "Webhook processed successfully" if applied else "Webhook already processed"
    return WebhookResponse(message=message, applied=applied)


@router.post("/trigger", response_model=TriggerResponse)
async def trigger_analysis(
    body: TriggerRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    service: AnalysisTriggerService = Depends(get_trigger_service),
):
    """Re-submit an analysis to the worker."""
    analysis = await db.get(Analysis, body.analysis_id)
    if analysis is None or not can_access(analysis, user_id):
        raise HTTPException(status_code=404, detail="Analysis not found")

    try:
        submitted = await service.trigger(db, body.analysis_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MissingRequiredSegmentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExternalSubmissionError as e:
        logger.error(f"Analysis failed to start: {e}")
        raise HTTPException(status_code=502, detail="Analysis failed to start")

    message = "Analysis triggered successfully" if submitted else "Analysis already in progress"
    return TriggerResponse(message=message, analysis_id=body.analysis_id, submitted=submitted)


@router.get("/list", response_model=AnalysisListResponse)
async def list_analyses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: str | None = None,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    service: ResultService = Depends(get_result_service),
):
    """List analyses the user owns or uploaded, with thumbnails and classification."""
    try:
        return await service.list_analyses(db, user_id, page=page, page_size=limit, status=status)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{analysis_id}", response_model=AnalysisResponse)
async def get_analysis(
    analysis_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    service: ResultService = Depends(get_result_service),
):
    try:
        return await service.get_analysis(db, analysis_id, user_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Analysis not found")


@router.get("/{analysis_id}/files", response_model=AnalysisFilesResponse)
async def get_analysis_files(
    analysis_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    service: ResultService = Depends(get_result_service),
):
    """Presigned result artifacts for every uploaded angle."""
    try:
        return await service.get_artifacts(db, analysis_id, user_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Analysis not found")
