"""Shared pytest fixtures: in-memory database, fake S3 client, stubbed worker."""

from __future__ import annotations

import json
from urllib.parse import urlsplit

import httpx
import pytest
from botocore.exceptions import ClientError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from movaia import models  # noqa: F401
from movaia.config import get_settings
from movaia.core.database import Base
from movaia.core.storage import ObjectStore
from movaia.metrics.rules import CLASSIFICATION_V1
from movaia.models import AccountType, Analysis, AnalysisStatus, User, VideoAngle
from movaia.services import AnalysisTriggerService, ResultService, UploadService
from movaia.workers.client import AnalysisWorkerClient

BUCKET = "test-bucket"
WORKER_URL = "http://worker.test"
WEBHOOK_URL = "http://api.test/api/analysis/webhook"


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeS3Client:
    """Stands in for boto3's S3 client; presigning is deterministic and offline."""

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.broken_keys: set[str] = set()

    def generate_presigned_url(self, ClientMethod, Params=None, ExpiresIn=3600, HttpMethod=None):
        self.calls.append({"method": ClientMethod, "params": Params, "expires": ExpiresIn})
        key = Params["Key"]
        if key in self.broken_keys:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": key}}, "GetObject")
        return f"https://s3.test/{Params['Bucket']}/{key}?X-Amz-Expires={ExpiresIn}"


class WorkerStub:
    """httpx.MockTransport handler for the analysis worker and presigned GETs."""

    def __init__(self) -> None:
        self.submissions: list[dict] = []
        self.fail_with: int | None = None
        self.unreachable = False
        self.objects: dict[str, str] = {}

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST" and request.url.path == "/api/analyze":
            if self.unreachable:
                raise httpx.ConnectError("connection refused", request=request)
            self.submissions.append(_json(request))
            if self.fail_with:
                return httpx.Response(self.fail_with, json={"error": "worker error"})
            return httpx.Response(202, json={"accepted": True})

        if request.method == "GET":
            # https://s3.test/{bucket}/{key}
            key = urlsplit(str(request.url)).path.split("/", 2)[-1]
            if key in self.objects:
                return httpx.Response(200, text=self.objects[key])
            return httpx.Response(404)

        return httpx.Response(405)


def _json(request: httpx.Request) -> dict:
    return json.loads(request.content)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def users(db):
    """individual, second individual, coach, managed athlete."""
    rows = {
        "runner": User(id="runner-1", email="runner@example.com", first_name="Ada",
                       last_name="Runner", account_type=AccountType.INDIVIDUAL.value),
        "stranger": User(id="stranger-1", email="stranger@example.com",
                         account_type=AccountType.INDIVIDUAL.value),
        "coach": User(id="coach-1", email="coach@example.com",
                      account_type=AccountType.COACH.value),
        "athlete": User(id="athlete-1", email="athlete@example.com",
                        account_type=AccountType.ATHLETE_LIMITED.value,
                        created_by_coach_id="coach-1"),
    }
    db.add_all(rows.values())
    await db.commit()
    return rows


@pytest.fixture
def s3_client():
    return FakeS3Client()


@pytest.fixture
def store(s3_client):
    return ObjectStore(s3_client, BUCKET)


@pytest.fixture
def worker_stub():
    return WorkerStub()


@pytest.fixture
async def http_client(worker_stub):
    async with httpx.AsyncClient(transport=httpx.MockTransport(worker_stub.handle)) as client:
        yield client


@pytest.fixture
def worker_client(http_client):
    return AnalysisWorkerClient(http_client, WORKER_URL, WEBHOOK_URL)


@pytest.fixture
def trigger_service(store, worker_client):
    return AnalysisTriggerService(store, worker_client)


@pytest.fixture
def upload_service(store, trigger_service):
    return UploadService(
        store,
        trigger_service,
        allowed_video_types=get_settings().allowed_video_types,
    )


@pytest.fixture
def result_service(store, http_client):
    return ResultService(store, http_client, CLASSIFICATION_V1)


def upload_key(owner_id: str, analysis_id: str, angle: VideoAngle, name: str = "clip.mp4") -> str:
    return f"videos/{owner_id}/{analysis_id}/{angle.value}/{name}"


async def make_analysis(
    db,
    analysis_id: str,
    owner_id: str = "runner-1",
    angles: tuple[VideoAngle, ...] = (VideoAngle.NORMAL,),
    status: AnalysisStatus = AnalysisStatus.DRAFT,
    coach_id: str | None = None,
) -> Analysis:
    analysis = Analysis(
        id=analysis_id,
        user_id=owner_id,
        uploaded_by_coach_id=coach_id,
        status=status.value,
        tags=[],
    )
    for angle in angles:
        analysis.set_segment(angle, upload_key(owner_id, analysis_id, angle))
    db.add(analysis)
    await db.commit()
    await db.refresh(analysis)
    return analysis
