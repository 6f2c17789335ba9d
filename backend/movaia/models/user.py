import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from movaia.core.database import Base


class AccountType(str, enum.Enum):
    INDIVIDUAL = "INDIVIDUAL"
    COACH = "COACH"
    ATHLETE_LIMITED = "ATHLETE_LIMITED"
    ADMIN = "ADMIN"


# Account types allowed to upload videos.
UPLOAD_ACCOUNT_TYPES = (AccountType.INDIVIDUAL, AccountType.COACH, AccountType.ADMIN)


class User(Base):
    """Read-only view of the account table owned by the account service."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    account_type: Mapped[str] = mapped_column(String(20), default=AccountType.INDIVIDUAL.value)
    # Set on athlete accounts a coach created and manages
    created_by_coach_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id"), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
