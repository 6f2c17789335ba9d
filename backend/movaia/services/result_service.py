"""Read side: analyses with presigned thumbnails, classifications and artifact bundles."""

import asyncio
import logging
import math

import httpx
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from movaia.core.exceptions import AnalysisNotFoundError, ValidationError
from movaia.core.storage import ObjectStore, result_key, thumbnail_filename, thumbnail_key
from movaia.metrics import Classification, RuleTable, classify_csv
from movaia.models.analysis import Analysis, AnalysisStatus, VideoAngle
from movaia.models.user import User
from movaia.schemas.analysis import (
    AnalysisFiles,
    AnalysisFilesResponse,
    AnalysisListResponse,
    AnalysisResponse,
    AngleArtifacts,
    MetricsClassification,
    OwnerSummary,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

# Visualization PNG codes: input_video_{angle}-{CODE}-{L|R}.png
SIDED_VISUALIZATIONS = {
    "full_body": "FULL",
    "foot_angle": "FAT",
    "toe_off": "TOF",
    "shin_angle": "SAT",
    "mid_stance_angle": "MSA",
    "arm_angle": "ARA",
    "lean_vertical_oscillation": "LENVOP",
    "lean": "LEN",
    "pelvic_drop": "CPD",
    "step_width": "STW",
    "posture": "PST",
}
NESTED_VISUALIZATIONS = {
    "arm_movement": {"front": "AMF", "back": "AMB"},
    "pelvis_min_max": {"min": "PLSMIN", "max": "PLSMAX"},
}


def _sides(key_for, code: str) -> dict[str, str]:
    return {"left": key_for(code, "L"), "right": key_for(code, "R")}


def artifact_layout(owner_id: str, analysis_id: str, angle: VideoAngle) -> dict:
    """Storage keys for one angle's result bundle, shaped like AngleArtifacts."""

    def key(filename: str) -> str:
        return result_key(owner_id, analysis_id, angle.value, filename)

    def png(code: str, side: str) -> str:
        return key(f"input_video_{angle.value}-{code}-{side}.png")

    visualizations: dict = {name: _sides(png, code) for name, code in SIDED_VISUALIZATIONS.items()}
    for name, parts in NESTED_VISUALIZATIONS.items():
        visualizations[name] = {part: _sides(png, code) for part, code in parts.items()}

    return {
        "results_csv": key("results.csv"),
        "visualization_video": key("visualization.mp4"),
        "frame_by_frame_csv": key("frame_by_frame.csv"),
        "thumbnail": key(thumbnail_filename(angle.value)),
        "visualizations": visualizations,
    }


def _leaves(tree: dict, path: tuple = ()):
    for name, value in tree.items():
        if isinstance(value, dict):
            yield from _leaves(value, path + (name,))
        else:
            yield path + (name,), value


def _assign(tree: dict, path: tuple, value) -> None:
    for name in path[:-1]:
        tree = tree[name]
    tree[path[-1]] = value


class ResultService:
    def __init__(self, store: ObjectStore, http_client: httpx.AsyncClient, rules: RuleTable):
        self.store = store
        self.http = http_client
        self.rules = rules

    # -- single analysis -----------------------------------------------------

    async def get_analysis(
        self, db: AsyncSession, analysis_id: str, requester_id: str
    ) -> AnalysisResponse:
        """Owner or uploading coach only; anyone else sees not-found."""
        analysis = await self._find_accessible(db, analysis_id, requester_id)
        response = AnalysisResponse.model_validate(analysis)
        if analysis.status == AnalysisStatus.COMPLETED.value:
            response.thumbnail_presigned_url = await self.store.try_presign_download(
                self._thumbnail_key(analysis)
            )
        return response

    async def _find_accessible(
        self, db: AsyncSession, analysis_id: str, requester_id: str
    ) -> Analysis:
        stmt = select(Analysis).where(
            Analysis.id == analysis_id,
            or_(Analysis.user_id == requester_id, Analysis.uploaded_by_coach_id == requester_id),
        )
        result = await db.execute(stmt)
        analysis = result.scalar_one_or_none()
        if analysis is None:
            raise AnalysisNotFoundError(analysis_id)
        return analysis

    @staticmethod
    def _thumbnail_key(analysis: Analysis) -> str:
        return analysis.thumbnail_key or thumbnail_key(analysis.user_id, analysis.id)

    # -- listing -------------------------------------------------------------

    async def list_analyses(
        self,
        db: AsyncSession,
        requester_id: str,
        page: int = 1,
        page_size: int = 10,
        status: str | None = None,
    ) -> AnalysisListResponse:
        """Paginated analyses the requester owns or uploaded, newest first."""
        if page < 1 or not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValidationError(f"page must be >= 1 and limit between 1 and {MAX_PAGE_SIZE}")

        conditions = [
            or_(Analysis.user_id == requester_id, Analysis.uploaded_by_coach_id == requester_id)
        ]
        if status:
            try:
                conditions.append(Analysis.status == AnalysisStatus(status).value)
            except ValueError:
                raise ValidationError(f"Invalid status filter: {status}") from None

        count_stmt = select(func.count()).select_from(Analysis).where(*conditions)
        total = (await db.execute(count_stmt)).scalar_one()

        stmt = (
            select(Analysis, User)
            .outerjoin(User, User.id == Analysis.user_id)
            .where(*conditions)
            .order_by(Analysis.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        rows = (await db.execute(stmt)).all()

        items = await asyncio.gather(*(self._list_item(analysis, owner) for analysis, owner in rows))
        return AnalysisListResponse(
            analyses=list(items),
            total=total,
            page=page,
            limit=page_size,
            total_pages=math.ceil(total / page_size),
        )

    async def _list_item(self, analysis: Analysis, owner: User | None) -> AnalysisResponse:
        item = AnalysisResponse.model_validate(analysis)
        if owner is not None:
            item.user = OwnerSummary.model_validate(owner)
        if analysis.status != AnalysisStatus.COMPLETED.value:
            return item

        # Each field degrades on its own; neither failure fails the page.
        thumbnail_url, classification = await asyncio.gather(
            self.store.try_presign_download(self._thumbnail_key(analysis)),
            self.get_metrics_classification(analysis.user_id, analysis.id),
            return_exceptions=True,
        )

        if isinstance(thumbnail_url, BaseException):
            logger.warning(
                f"Thumbnail enrichment failed: analysis_id={analysis.id}", exc_info=thumbnail_url
            )
        else:
            item.thumbnail_presigned_url = thumbnail_url

        if isinstance(classification, BaseException):
            logger.warning(
                f"Metrics classification failed: analysis_id={analysis.id}", exc_info=classification
            )
        elif classification is not None:
            item.metrics_classification = MetricsClassification(**classification.as_dict())
        return item

    # -- metrics classification ---------------------------------------------

    async def get_metrics_classification(
        self, owner_id: str, analysis_id: str
    ) -> Classification | None:
        """Download the normal angle's results.csv and tally it. ``None`` when unavailable."""
        key = result_key(owner_id, analysis_id, VideoAngle.NORMAL.value, "results.csv")
        url = await self.store.try_presign_download(key)
        if url is None:
            return None

        try:
            response = await self.http.get(url)
            if response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Could not fetch results CSV for {analysis_id}: {e}")
            return None

        return classify_csv(response.text, self.rules)

    # -- artifact bundle -----------------------------------------------------

    async def get_artifacts(
        self, db: AsyncSession, analysis_id: str, requester_id: str
    ) -> AnalysisFilesResponse:
        """Presigned result artifacts for every uploaded angle.

        The normal angle is always built; other angles only when uploaded.
        Any artifact that cannot be presigned is ``None``.
        """
        analysis = await self._find_accessible(db, analysis_id, requester_id)

        angles = [
            angle
            for angle in VideoAngle
            if angle is VideoAngle.NORMAL or analysis.is_uploaded(angle)
        ]
        bundles = await asyncio.gather(
            *(self._angle_artifacts(analysis.user_id, analysis.id, angle) for angle in angles)
        )
        files = AnalysisFiles(**{angle.value: bundle for angle, bundle in zip(angles, bundles)})
        return AnalysisFilesResponse(analysis=AnalysisResponse.model_validate(analysis), files=files)

    async def _angle_artifacts(
        self, owner_id: str, analysis_id: str, angle: VideoAngle
    ) -> AngleArtifacts:
        tree = artifact_layout(owner_id, analysis_id, angle)
        leaves = list(_leaves(tree))
        urls = await asyncio.gather(*(self.store.try_presign_download(key) for _, key in leaves))
        for (path, _), url in zip(leaves, urls):
            _assign(tree, path, url)
        return AngleArtifacts.model_validate(tree)
