"""HTTP client for the external biomechanics analysis worker."""

import logging

import httpx

from movaia.core.exceptions import ExternalSubmissionError

logger = logging.getLogger(__name__)


class AnalysisWorkerClient:
    """Submits analysis jobs; the worker reports back through the webhook."""

    def __init__(self, http_client: httpx.AsyncClient, base_url: str, webhook_url: str):
        self.http = http_client
        self.base_url = base_url.rstrip("/")
        self.webhook_url = webhook_url

    async def submit(
        self,
        analysis_id: str,
        owner_id: str,
        videos: dict[str, str | None],
    ) -> dict:
        """POST {base}/api/analyze.

        ``videos`` is keyed by wire angle name (normal, leftToRight,
        rightToLeft, rearView); absent segments are ``None``.

        Raises:
            ExternalSubmissionError: worker unreachable or non-2xx response
        """
        payload = {
            "analysisId": analysis_id,
            "videos": videos,
            "userId": owner_id,
            "webhookUrl": self.webhook_url,
        }
        try:
            response = await self.http.post(f"{self.base_url}/api/analyze", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ExternalSubmissionError(
                analysis_id, f"worker responded {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ExternalSubmissionError(analysis_id, f"{type(e).__name__}: {e}") from e

        logger.info(f"Worker accepted analysis: analysis_id={analysis_id}")
        try:
            return response.json()
        except ValueError:
            return {}
