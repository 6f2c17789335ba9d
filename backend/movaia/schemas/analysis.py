from datetime import datetime
from typing import Literal

from pydantic import Field

from movaia.schemas.base import CamelModel


class OwnerSummary(CamelModel):
    id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str


class MetricsClassification(CamelModel):
    ideal: int
    workable: int
    check: int


class AnalysisResponse(CamelModel):
    id: str
    user_id: str
    uploaded_by_coach_id: str | None = None
    status: str

    normal_video_key: str | None = None
    normal_video_uploaded: bool = False
    left_to_right_video_key: str | None = None
    left_to_right_video_uploaded: bool = False
    right_to_left_video_key: str | None = None
    right_to_left_video_uploaded: bool = False
    rear_view_video_key: str | None = None
    rear_view_video_uploaded: bool = False

    thumbnail_key: str | None = None
    notes: str | None = None
    tags: list[str] = []
    metrics: dict | None = None
    created_at: datetime
    updated_at: datetime

    user: OwnerSummary | None = None
    thumbnail_presigned_url: str | None = None
    metrics_classification: MetricsClassification | None = None


class AnalysisListResponse(CamelModel):
    analyses: list[AnalysisResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class TriggerRequest(CamelModel):
    analysis_id: str


class TriggerResponse(CamelModel):
    message: str
    analysis_id: str
    submitted: bool


class WebhookPayload(CamelModel):
    analysis_id: str
    user_id: str
    status: Literal["completed", "failed"]
    error: str | None = None
    video_type: str | None = None
    metrics: dict | None = None


class WebhookResponse(CamelModel):
    message: str
    applied: bool


# --- result artifacts -------------------------------------------------------


class SidePair(CamelModel):
    left: str | None = None
    right: str | None = None


class ArmMovement(CamelModel):
    front: SidePair
    back: SidePair


class PelvisMinMax(CamelModel):
    min: SidePair
    max: SidePair


class Visualizations(CamelModel):
    full_body: SidePair
    foot_angle: SidePair
    toe_off: SidePair
    shin_angle: SidePair
    mid_stance_angle: SidePair
    arm_movement: ArmMovement
    arm_angle: SidePair
    lean_vertical_oscillation: SidePair
    lean: SidePair
    pelvic_drop: SidePair
    step_width: SidePair
    posture: SidePair
    pelvis_min_max: PelvisMinMax


class AngleArtifacts(CamelModel):
    results_csv: str | None = Field(default=None, alias="resultsCSV")
    visualization_video: str | None = None
    frame_by_frame_csv: str | None = Field(default=None, alias="frameByFrameCSV")
    thumbnail: str | None = None
    visualizations: Visualizations


class AnalysisFiles(CamelModel):
    normal: AngleArtifacts | None = None
    left_to_right: AngleArtifacts | None = None
    right_to_left: AngleArtifacts | None = None
    rear_view: AngleArtifacts | None = None


class AnalysisFilesResponse(CamelModel):
    analysis: AnalysisResponse
    files: AnalysisFiles
