"""Custom exception classes for the analysis core."""


class MovaiaError(Exception):
    """Base class for errors raised by the analysis core."""


class ValidationError(MovaiaError):
    """Raised when a request carries a bad angle, content type or missing field."""


class NotFoundError(MovaiaError):
    """Raised for absent records and for records the caller may not see."""


class AnalysisNotFoundError(NotFoundError):
    def __init__(self, analysis_id: str):
        self.analysis_id = analysis_id
        super().__init__(f"Analysis not found: {analysis_id}")


class AthleteNotFoundError(NotFoundError):
    """Raised when a coach names an athlete they do not manage."""

    def __init__(self, athlete_id: str):
        self.athlete_id = athlete_id
        super().__init__(f"Athlete not found or not managed by you: {athlete_id}")


class MissingRequiredSegmentError(MovaiaError):
    """Raised when analysis is finalized without the normal-speed video."""

    def __init__(self, analysis_id: str):
        self.analysis_id = analysis_id
        super().__init__(f"Cannot start analysis without normal speed video: {analysis_id}")


class ExternalSubmissionError(MovaiaError):
    """Raised when the analysis worker rejects or cannot be reached."""

    def __init__(self, analysis_id: str, reason: str):
        self.analysis_id = analysis_id
        self.reason = reason
        super().__init__(f"Analysis {analysis_id} failed to start: {reason}")


class ArtifactUnavailableError(MovaiaError):
    """Raised by the object store when a single artifact cannot be presigned."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Artifact unavailable: {key}")


class UploadNotPermittedError(MovaiaError):
    def __init__(self, account_type: str):
        self.account_type = account_type
        super().__init__(
            "Your account type does not allow video uploads. "
            "Please upgrade to an Individual plan."
        )


class WebhookAuthError(MovaiaError):
    def __init__(self):
        super().__init__("Invalid webhook secret")
