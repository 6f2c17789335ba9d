"""Business logic services layer."""

from .actors import CoachOnBehalfOf, Owner, UploadActor, resolve_upload_actor
from .upload_service import UploadService
from .trigger_service import AnalysisTriggerService
from .completion_service import CompletionService
from .result_service import ResultService
from .usage_service import UsageService
from .notification_service import NotificationService
from .activity_service import ActivityLogService, RequestContext

__all__ = [
    "CoachOnBehalfOf",
    "Owner",
    "UploadActor",
    "resolve_upload_actor",
    "UploadService",
    "AnalysisTriggerService",
    "CompletionService",
    "ResultService",
    "UsageService",
    "NotificationService",
    "ActivityLogService",
    "RequestContext",
]
