"""S3 gateway: presigned upload/download URLs and the storage key layout."""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from movaia.config import Settings, get_settings
from movaia.core.exceptions import ArtifactUnavailableError

logger = logging.getLogger(__name__)

UPLOAD_PREFIX = "videos"
RESULT_PREFIX = "analysis_result"


def upload_prefix(owner_id: str, analysis_id: str, angle: str) -> str:
    return f"{UPLOAD_PREFIX}/{owner_id}/{analysis_id}/{angle}/"


def generate_upload_key(owner_id: str, analysis_id: str, angle: str, file_name: str) -> str:
    """videos/{owner}/{analysis}/{angle}/{uuid}.{ext}"""
    ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else "mp4"
    return f"{upload_prefix(owner_id, analysis_id, angle)}{uuid.uuid4()}.{ext}"


def result_base_key(owner_id: str, analysis_id: str) -> str:
    return f"{RESULT_PREFIX}/{owner_id}/{analysis_id}"


def result_key(owner_id: str, analysis_id: str, angle: str, filename: str) -> str:
    return f"{result_base_key(owner_id, analysis_id)}/{angle}/{filename}"


def thumbnail_filename(angle: str) -> str:
    return f"input_video_{angle}-FULL-L.png"


def thumbnail_key(owner_id: str, analysis_id: str, angle: str = "normal") -> str:
    return result_key(owner_id, analysis_id, angle, thumbnail_filename(angle))


class ObjectStore:
    """Bucket-keyed blob store adapter. Holds the one boto3 client for the process."""

    def __init__(self, client, bucket: str, download_expiry: int = 3600):
        self.client = client
        self.bucket = bucket
        self.download_expiry = download_expiry

    @classmethod
    def from_settings(cls, settings: Settings) -> "ObjectStore":
        client_kwargs = {"region_name": settings.aws_region}
        if settings.aws_access_key_id:
            client_kwargs["aws_access_key_id"] = settings.aws_access_key_id
            client_kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
        client = boto3.client("s3", **client_kwargs)
        logger.info(f"S3 gateway initialized for bucket: {settings.s3_bucket_name}")
        return cls(client, settings.s3_bucket_name, settings.download_url_expiry_seconds)

    async def presign_upload(
        self,
        key: str,
        content_type: str,
        expiry: int,
        metadata: dict[str, str] | None = None,
    ) -> str:
        params = {"Bucket": self.bucket, "Key": key, "ContentType": content_type}
        if metadata:
            params["Metadata"] = metadata
        return await asyncio.to_thread(
            self.client.generate_presigned_url,
            "put_object",
            Params=params,
            ExpiresIn=expiry,
        )

    async def presign_download(self, key: str, expiry: int | None = None) -> str:
        """Presigned GET for ``key``. Raises ArtifactUnavailableError on failure."""
        try:
            url = await asyncio.to_thread(
                self.client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expiry or self.download_expiry,
            )
        except (ClientError, BotoCoreError) as e:
            raise ArtifactUnavailableError(key) from e
        if not url:
            raise ArtifactUnavailableError(key)
        return url

    async def try_presign_download(self, key: str, expiry: int | None = None) -> str | None:
        """Like presign_download, but an unavailable artifact is just ``None``."""
        try:
            return await self.presign_download(key, expiry)
        except ArtifactUnavailableError:
            logger.debug(f"Artifact unavailable: {key}")
            return None


def upload_metadata(owner_id: str, analysis_id: str, angle: str, file_name: str) -> dict[str, str]:
    return {
        "userId": owner_id,
        "analysisId": analysis_id,
        "videoType": angle,
        "originalName": file_name,
        "uploadedAt": datetime.now(timezone.utc).isoformat(),
    }


@lru_cache
def get_object_store() -> ObjectStore:
    return ObjectStore.from_settings(get_settings())
