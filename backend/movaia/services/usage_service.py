"""Monthly usage counting."""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from movaia.models.usage import UsageRecord

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def current_month(now: datetime | None = None) -> int:
    """Calendar month as ``YYYYMM``, in UTC."""
    now = now or datetime.now(timezone.utc)
    return now.year * 100 + now.month


class UsageService:
    @staticmethod
    async def increment(db: AsyncSession, user_id: str, now: datetime | None = None) -> None:
        """Add one analysis to the user's counter for the current month.

        A single ``INSERT ... ON CONFLICT DO UPDATE`` so concurrent uploads by
        the same user never lose an increment.
        """
        dialect = db.get_bind().dialect.name
        try:
            insert = _UPSERT_DIALECTS[dialect]
        except KeyError:
            raise ValueError(
                f"Usage counting needs a PostgreSQL or SQLite database_url, got {dialect}"
            ) from None

        month = current_month(now)
        stmt = insert(UsageRecord).values(user_id=user_id, month=month, count=1)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "month"],
            set_={"count": UsageRecord.count + 1},
        )
        await db.execute(stmt)
        await db.commit()
        logger.info(f"Usage incremented: user_id={user_id}, month={month}")

    @staticmethod
    async def get_count(db: AsyncSession, user_id: str, month: int | None = None) -> int:
        stmt = select(UsageRecord.count).where(
            UsageRecord.user_id == user_id,
            UsageRecord.month == (month or current_month()),
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none() or 0
