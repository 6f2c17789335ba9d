"""ORM models. Importing this package registers every table on ``Base.metadata``."""

from .user import AccountType, User
from .analysis import Analysis, AnalysisStatus, VideoAngle
from .usage import UsageRecord
from .notification import Notification
from .activity_log import ActivityLog

__all__ = [
    "AccountType",
    "User",
    "Analysis",
    "AnalysisStatus",
    "VideoAngle",
    "UsageRecord",
    "Notification",
    "ActivityLog",
]
