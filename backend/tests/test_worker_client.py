import pytest

from movaia.core.exceptions import ExternalSubmissionError

from conftest import WEBHOOK_URL


VIDEOS = {
    "normal": "https://s3.test/test-bucket/videos/u/a/normal/x.mp4",
    "leftToRight": None,
    "rightToLeft": None,
    "rearView": None,
}


@pytest.mark.anyio
async def test_submit_posts_job(worker_client, worker_stub):
    body = await worker_client.submit("an-1", "runner-1", VIDEOS)

    assert body == {"accepted": True}
    assert worker_stub.submissions == [
        {
            "analysisId": "an-1",
            "videos": VIDEOS,
            "userId": "runner-1",
            "webhookUrl": WEBHOOK_URL,
        }
    ]


@pytest.mark.anyio
async def test_submit_non_2xx(worker_client, worker_stub):
    worker_stub.fail_with = 503

    with pytest.raises(ExternalSubmissionError) as exc:
        await worker_client.submit("an-1", "runner-1", VIDEOS)
    assert exc.value.analysis_id == "an-1"
    assert "503" in exc.value.reason


@pytest.mark.anyio
async def test_submit_unreachable(worker_client, worker_stub):
    worker_stub.unreachable = True

    with pytest.raises(ExternalSubmissionError) as exc:
        await worker_client.submit("an-1", "runner-1", VIDEOS)
    assert "ConnectError" in exc.value.reason
