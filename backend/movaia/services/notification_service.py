from sqlalchemy.ext.asyncio import AsyncSession

from movaia.models.notification import Notification

ANALYSIS_COMPLETE = "ANALYSIS_COMPLETE"


class NotificationService:
    @staticmethod
    async def notify(
        db: AsyncSession,
        user_id: str,
        type: str,
        title: str,
        message: str,
        metadata: dict | None = None,
    ) -> Notification:
        """Append a user-facing notification."""
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            extra=metadata,
        )
        db.add(notification)
        await db.commit()
        return notification
