"""S3 gateway tests: key layout and presigning without network."""

import pytest
from botocore.exceptions import NoCredentialsError

from movaia.config import Settings
from movaia.core import storage
from movaia.core.exceptions import ArtifactUnavailableError
from movaia.core.storage import (
    ObjectStore,
    generate_upload_key,
    result_key,
    thumbnail_key,
    upload_metadata,
    upload_prefix,
)


def test_upload_key_layout():
    key = generate_upload_key("user-1", "an-1", "normal", "My Run.MOV")
    assert key.startswith(upload_prefix("user-1", "an-1", "normal"))
    assert key.startswith("videos/user-1/an-1/normal/")
    assert key.endswith(".mov")


def test_upload_key_defaults_to_mp4():
    key = generate_upload_key("user-1", "an-1", "rear_view", "clip")
    assert key.endswith(".mp4")


def test_upload_keys_are_unique():
    assert generate_upload_key("u", "a", "normal", "x.mp4") != generate_upload_key(
        "u", "a", "normal", "x.mp4"
    )


def test_result_and_thumbnail_keys():
    assert result_key("u", "a", "left_to_right", "results.csv") == (
        "analysis_result/u/a/left_to_right/results.csv"
    )
    assert thumbnail_key("u", "a") == "analysis_result/u/a/normal/input_video_normal-FULL-L.png"


def test_upload_metadata():
    meta = upload_metadata("u", "a", "normal", "run.mp4")
    assert meta["userId"] == "u"
    assert meta["analysisId"] == "a"
    assert meta["videoType"] == "normal"
    assert meta["originalName"] == "run.mp4"
    assert "uploadedAt" in meta


@pytest.mark.anyio
async def test_presign_upload_passes_content_type(store, s3_client):
    url = await store.presign_upload("videos/u/a/normal/x.mp4", "video/mp4", 900, {"userId": "u"})

    assert url.startswith("https://s3.test/test-bucket/videos/u/a/normal/x.mp4")
    call = s3_client.calls[-1]
    assert call["method"] == "put_object"
    assert call["expires"] == 900
    assert call["params"]["ContentType"] == "video/mp4"
    assert call["params"]["Metadata"] == {"userId": "u"}


@pytest.mark.anyio
async def test_presign_download_default_expiry(store, s3_client):
    await store.presign_download("analysis_result/u/a/normal/results.csv")
    assert s3_client.calls[-1]["method"] == "get_object"
    assert s3_client.calls[-1]["expires"] == 3600


@pytest.mark.anyio
async def test_presign_download_failure(store, s3_client):
    s3_client.broken_keys.add("missing.png")

    with pytest.raises(ArtifactUnavailableError):
        await store.presign_download("missing.png")
    assert await store.try_presign_download("missing.png") is None


@pytest.mark.anyio
async def test_botocore_errors_degrade_to_none():
    class NoCredentials:
        def generate_presigned_url(self, *args, **kwargs):
            raise NoCredentialsError()

    store = ObjectStore(NoCredentials(), "bucket")
    assert await store.try_presign_download("a/b.png") is None


def test_from_settings_builds_client(monkeypatch):
    captured = {}

    def fake_client(service, **kwargs):
        captured["service"] = service
        captured.update(kwargs)
        return object()

    monkeypatch.setattr(storage.boto3, "client", fake_client)
    settings = Settings(
        aws_region="eu-central-1",
        aws_access_key_id="AKIA",
        aws_secret_access_key="secret",
        s3_bucket_name="runs",
        download_url_expiry_seconds=600,
    )

    store = ObjectStore.from_settings(settings)

    assert captured["service"] == "s3"
    assert captured["region_name"] == "eu-central-1"
    assert captured["aws_access_key_id"] == "AKIA"
    assert store.bucket == "runs"
    assert store.download_expiry == 600
