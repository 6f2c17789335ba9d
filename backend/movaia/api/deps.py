"""FastAPI dependencies wiring the long-lived clients into the services."""

import httpx
from fastapi import Depends, Request

from movaia.config import Settings, get_settings
from movaia.core.storage import ObjectStore, get_object_store
from movaia.metrics import get_rule_table
from movaia.services import (
    AnalysisTriggerService,
    CompletionService,
    RequestContext,
    ResultService,
    UploadService,
)
from movaia.workers.client import AnalysisWorkerClient


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_request_context(request: Request) -> RequestContext:
    return RequestContext(
        ip_address=request.client.host if request.client else "",
        user_agent=request.headers.get("user-agent", ""),
    )


def get_worker_client(
    http_client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> AnalysisWorkerClient:
    return AnalysisWorkerClient(http_client, settings.worker_api_url, settings.webhook_url)


def get_trigger_service(
    store: ObjectStore = Depends(get_object_store),
    worker: AnalysisWorkerClient = Depends(get_worker_client),
) -> AnalysisTriggerService:
    return AnalysisTriggerService(store, worker)


def get_upload_service(
    store: ObjectStore = Depends(get_object_store),
    trigger: AnalysisTriggerService = Depends(get_trigger_service),
    settings: Settings = Depends(get_settings),
) -> UploadService:
    return UploadService(
        store,
        trigger,
        allowed_video_types=settings.allowed_video_types,
        upload_url_expiry=settings.upload_url_expiry_seconds,
    )


def get_completion_service() -> CompletionService:
    return CompletionService()


def get_result_service(
    store: ObjectStore = Depends(get_object_store),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> ResultService:
    return ResultService(store, http_client, get_rule_table(settings.metric_rules_version))
