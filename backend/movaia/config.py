from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # App
    app_name: str = "Movaia"
    debug: bool = False
    api_prefix: str = "/api"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./movaia.db"

    # JWT (verification only, tokens are issued by the account service)
    secret_key: str = "CHANGE-THIS-IN-PRODUCTION"
    algorithm: str = "HS256"

    # AWS S3
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = "us-east-1"
    s3_bucket_name: str = "movaia-videos"
    upload_url_expiry_seconds: int = 3600
    download_url_expiry_seconds: int = 3600

    # File Upload
    allowed_video_types: list[str] = [
        "video/mp4",
        "video/quicktime",
        "video/x-msvideo",
        "video/x-matroska",
    ]

    # External analysis worker
    worker_api_url: str = "http://localhost:5001"
    backend_url: str = "http://localhost:5000"
    worker_timeout_seconds: float = 30.0
    webhook_secret: str = ""

    # Metrics classification
    metric_rules_version: str = "classification-v1"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def webhook_url(self) -> str:
        return f"{self.backend_url.rstrip('/')}{self.api_prefix}/analysis/webhook"


@lru_cache
def get_settings() -> Settings:
    return Settings()
