import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from movaia.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED)


# Statuses from which a new worker submission may be claimed.
CLAIMABLE_STATUSES = (AnalysisStatus.DRAFT, AnalysisStatus.PENDING, AnalysisStatus.FAILED)


class VideoAngle(str, enum.Enum):
    NORMAL = "normal"
    LEFT_TO_RIGHT = "left_to_right"
    RIGHT_TO_LEFT = "right_to_left"
    REAR_VIEW = "rear_view"

    @property
    def wire_name(self) -> str:
        """camelCase key used by the worker and the client (``leftToRight``)."""
        head, *rest = self.value.split("_")
        return head + "".join(part.capitalize() for part in rest)


class Analysis(Base):
    __tablename__ = "analyses"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    uploaded_by_coach_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id"), nullable=True, index=True
    )

    # Per-angle video segment: storage key, file name, uploaded flag
    normal_video_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    normal_video_file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    normal_video_uploaded: Mapped[bool] = mapped_column(Boolean, default=False)

    left_to_right_video_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    left_to_right_video_file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    left_to_right_video_uploaded: Mapped[bool] = mapped_column(Boolean, default=False)

    right_to_left_video_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    right_to_left_video_file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    right_to_left_video_uploaded: Mapped[bool] = mapped_column(Boolean, default=False)

    rear_view_video_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    rear_view_video_file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rear_view_video_uploaded: Mapped[bool] = mapped_column(Boolean, default=False)

    status: Mapped[str] = mapped_column(
        String(20), default=AnalysisStatus.DRAFT.value, index=True
    )  # DRAFT, PENDING, PROCESSING, COMPLETED, FAILED

    thumbnail_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list] = mapped_column(JSON, default=list)

    # Biomechanics metrics reported by the worker, only set on COMPLETED
    metrics: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def segment_key(self, angle: VideoAngle) -> str | None:
        return getattr(self, f"{angle.value}_video_key")

    def is_uploaded(self, angle: VideoAngle) -> bool:
        return bool(getattr(self, f"{angle.value}_video_uploaded"))

    def set_segment(self, angle: VideoAngle, storage_key: str) -> None:
        """Record an uploaded segment; the flag is only ever set together with the key."""
        setattr(self, f"{angle.value}_video_key", storage_key)
        setattr(self, f"{angle.value}_video_file_name", storage_key.rsplit("/", 1)[-1])
        setattr(self, f"{angle.value}_video_uploaded", True)

    def uploaded_angles(self) -> list[VideoAngle]:
        return [angle for angle in VideoAngle if self.is_uploaded(angle)]
