from datetime import datetime

from movaia.schemas.analysis import AnalysisResponse
from movaia.schemas.base import CamelModel


class UploadUrlRequest(CamelModel):
    file_name: str
    file_type: str
    video_type: str
    analysis_id: str | None = None
    athlete_id: str | None = None


class UploadUrlResponse(CamelModel):
    upload_url: str
    key: str
    analysis_id: str
    video_type: str
    expires: datetime


class ConfirmUploadRequest(CamelModel):
    analysis_id: str
    key: str = ""
    video_type: str | None = None
    athlete_id: str | None = None
    notes: str | None = None
    tags: str | None = None  # comma separated
    is_complete: bool = False


class ConfirmUploadResponse(CamelModel):
    message: str
    analysis: AnalysisResponse
    analysis_triggered: bool
