from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from movaia.models.activity_log import ActivityLog

UPLOAD_VIDEO = "UPLOAD_VIDEO"
START_ANALYSIS = "START_ANALYSIS"


@dataclass(frozen=True)
class RequestContext:
    """Where a request came from, for the audit trail."""

    ip_address: str = ""
    user_agent: str = ""


class ActivityLogService:
    @staticmethod
    async def record(
        db: AsyncSession,
        user_id: str,
        action: str,
        entity_id: str,
        metadata: dict | None = None,
        context: RequestContext | None = None,
        entity_type: str = "Analysis",
    ) -> ActivityLog:
        context = context or RequestContext()
        entry = ActivityLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            extra=metadata,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )
        db.add(entry)
        await db.commit()
        return entry
