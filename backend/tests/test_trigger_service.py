"""Analysis trigger: normal-video gate, atomic claim, submission failure."""

import httpx
import pytest

from movaia.core.exceptions import (
    AnalysisNotFoundError,
    ExternalSubmissionError,
    MissingRequiredSegmentError,
)
from movaia.models import Analysis, AnalysisStatus, VideoAngle
from movaia.services import AnalysisTriggerService
from movaia.workers.client import AnalysisWorkerClient

from conftest import WEBHOOK_URL, WORKER_URL, make_analysis, upload_key


@pytest.mark.anyio
async def test_trigger_submits_presigned_inputs(db, trigger_service, worker_stub):
    await make_analysis(db, "an-1", angles=(VideoAngle.NORMAL, VideoAngle.REAR_VIEW))

    assert await trigger_service.trigger(db, "an-1") is True

    analysis = await db.get(Analysis, "an-1")
    assert analysis.status == AnalysisStatus.PROCESSING.value

    [job] = worker_stub.submissions
    assert job["analysisId"] == "an-1"
    assert job["userId"] == "runner-1"
    videos = job["videos"]
    assert videos["normal"].startswith(
        "https://s3.test/test-bucket/" + upload_key("runner-1", "an-1", VideoAngle.NORMAL)
    )
    assert videos["rearView"] is not None
    assert videos["leftToRight"] is None
    assert videos["rightToLeft"] is None


@pytest.mark.anyio
@pytest.mark.parametrize("status", [AnalysisStatus.DRAFT, AnalysisStatus.PENDING, AnalysisStatus.FAILED])
async def test_trigger_without_normal_never_changes_status(db, trigger_service, worker_stub, status):
    await make_analysis(db, "an-1", angles=(VideoAngle.LEFT_TO_RIGHT,), status=status)

    with pytest.raises(MissingRequiredSegmentError):
        await trigger_service.trigger(db, "an-1")

    analysis = await db.get(Analysis, "an-1")
    await db.refresh(analysis)
    assert analysis.status == status.value
    assert worker_stub.submissions == []


@pytest.mark.anyio
async def test_trigger_unknown_analysis(db, trigger_service):
    with pytest.raises(AnalysisNotFoundError):
        await trigger_service.trigger(db, "nope")


@pytest.mark.anyio
@pytest.mark.parametrize("status", [AnalysisStatus.PROCESSING, AnalysisStatus.COMPLETED])
async def test_trigger_is_noop_when_not_claimable(db, trigger_service, worker_stub, status):
    await make_analysis(db, "an-1", status=status)

    assert await trigger_service.trigger(db, "an-1") is False

    analysis = await db.get(Analysis, "an-1")
    assert analysis.status == status.value
    assert worker_stub.submissions == []


@pytest.mark.anyio
async def test_second_trigger_is_noop(db, trigger_service, worker_stub):
    await make_analysis(db, "an-1")

    assert await trigger_service.trigger(db, "an-1") is True
    assert await trigger_service.trigger(db, "an-1") is False
    assert len(worker_stub.submissions) == 1


@pytest.mark.anyio
async def test_failed_analysis_can_be_retried(db, trigger_service, worker_stub):
    await make_analysis(db, "an-1", status=AnalysisStatus.FAILED)

    assert await trigger_service.trigger(db, "an-1") is True
    assert len(worker_stub.submissions) == 1


@pytest.mark.anyio
async def test_worker_error_marks_failed(db, trigger_service, worker_stub):
    await make_analysis(db, "an-1")
    worker_stub.unreachable = True

    with pytest.raises(ExternalSubmissionError):
        await trigger_service.trigger(db, "an-1")

    analysis = await db.get(Analysis, "an-1")
    assert analysis.status == AnalysisStatus.FAILED.value
    assert analysis.thumbnail_key is None


@pytest.mark.anyio
async def test_unpresignable_normal_marks_failed(db, trigger_service, worker_stub, s3_client):
    await make_analysis(db, "an-1")
    s3_client.broken_keys.add(upload_key("runner-1", "an-1", VideoAngle.NORMAL))

    with pytest.raises(ExternalSubmissionError):
        await trigger_service.trigger(db, "an-1")

    analysis = await db.get(Analysis, "an-1")
    assert analysis.status == AnalysisStatus.FAILED.value
    assert worker_stub.submissions == []


@pytest.mark.anyio
async def test_malformed_worker_url_marks_failed_and_allows_retry(db, store, http_client, worker_stub):
    await make_analysis(db, "an-1")
    broken = AnalysisTriggerService(store, AnalysisWorkerClient(http_client, "http://\x00host", WEBHOOK_URL))

    with pytest.raises(ExternalSubmissionError) as exc:
        await broken.trigger(db, "an-1")
    assert isinstance(exc.value.__cause__, httpx.InvalidURL)

    analysis = await db.get(Analysis, "an-1")
    assert analysis.status == AnalysisStatus.FAILED.value

    healthy = AnalysisTriggerService(store, AnalysisWorkerClient(http_client, WORKER_URL, WEBHOOK_URL))
    assert await healthy.trigger(db, "an-1") is True
    assert len(worker_stub.submissions) == 1


@pytest.mark.anyio
async def test_unexpected_presign_error_marks_failed(db, trigger_service, s3_client, monkeypatch):
    await make_analysis(db, "an-1")

    def explode(*args, **kwargs):
        raise RuntimeError("signer misconfigured")

    monkeypatch.setattr(s3_client, "generate_presigned_url", explode)

    with pytest.raises(ExternalSubmissionError) as exc:
        await trigger_service.trigger(db, "an-1")
    assert "RuntimeError" in exc.value.reason

    analysis = await db.get(Analysis, "an-1")
    assert analysis.status == AnalysisStatus.FAILED.value
