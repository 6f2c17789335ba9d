"""Who is uploading, resolved once at the request boundary."""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from movaia.core.exceptions import AthleteNotFoundError, UploadNotPermittedError
from movaia.models.user import UPLOAD_ACCOUNT_TYPES, AccountType, User


@dataclass(frozen=True)
class Owner:
    """A user uploading their own video."""

    user_id: str

    @property
    def owner_id(self) -> str:
        return self.user_id

    @property
    def acting_user_id(self) -> str:
        return self.user_id

    @property
    def coach_id(self) -> None:
        return None


@dataclass(frozen=True)
class CoachOnBehalfOf:
    """A coach uploading for an athlete they manage."""

    coach_user_id: str
    athlete_id: str

    @property
    def owner_id(self) -> str:
        return self.athlete_id

    @property
    def acting_user_id(self) -> str:
        return self.coach_user_id

    @property
    def coach_id(self) -> str:
        return self.coach_user_id


UploadActor = Owner | CoachOnBehalfOf


async def resolve_upload_actor(
    db: AsyncSession,
    user: User,
    athlete_id: str | None = None,
) -> UploadActor:
    """Map the authenticated user (and optional athlete) to an upload actor.

    Raises:
        UploadNotPermittedError: account type may not upload
        AthleteNotFoundError: coach does not manage ``athlete_id``
    """
    if user.account_type not in {t.value for t in UPLOAD_ACCOUNT_TYPES}:
        raise UploadNotPermittedError(user.account_type)

    if not athlete_id or user.account_type != AccountType.COACH.value:
        return Owner(user.id)

    stmt = select(User.id).where(User.id == athlete_id, User.created_by_coach_id == user.id)
    result = await db.execute(stmt)
    if result.scalar_one_or_none() is None:
        raise AthleteNotFoundError(athlete_id)
    return CoachOnBehalfOf(coach_user_id=user.id, athlete_id=athlete_id)
