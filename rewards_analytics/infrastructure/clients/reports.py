"""Report renderer client with exponential backoff retry logic"""

import httpx
import asyncio
from typing import Dict, Any
from rewards_analytics.config import settings
from rewards_analytics.domain.exceptions import ReportRenderError
from rewards_analytics.infrastructure.observability.metrics import (
    report_render_latency_histogram,
    report_render_failure_counter,
)


class ReportClient:
    """Client for the external service that renders report files"""

    def __init__(
        self,
        renderer_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.renderer_url = renderer_url or settings.report_renderer_url
        self.max_retries = settings.export_max_retries
        self.backoff_base = settings.export_backoff_base
        self.transport = transport

    async def render(self, payload: Dict[str, Any]) -> Dict[str, str]:
        """
        Submit a report payload and return its download location.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s (base * 2^attempt)
        - Retries on 5xx errors and network failures
        - Tracks latency histogram and failure counter

        Returns:
            {"download_url": ..., "expires_at": ...}

        Raises:
            httpx.HTTPStatusError: 4xx, or 5xx after the last retry
            httpx.RequestError: renderer unreachable after the last retry
            ReportRenderError: success status with a malformed body
        """
        attempt = 0
        async with httpx.AsyncClient(transport=self.transport) as client:
            while attempt < self.max_retries:
                try:
                    with report_render_latency_histogram.time():
                        response = await client.post(
                            self.renderer_url,
                            json=payload,
                            timeout=30.0,
                        )
                        response.raise_for_status()
                    return self._parse(response)

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    report_render_failure_counter.inc()

                    # client errors will not succeed on retry
                    if isinstance(e, httpx.HTTPStatusError) and e.response.status_code < 500:
                        raise

                    if attempt >= self.max_retries:
                        # Final failure after all retries
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)

        raise RuntimeError("export_max_retries must be at least 1")

    @staticmethod
    def _parse(response: httpx.Response) -> Dict[str, str]:
        try:
            data = response.json()
            return {"download_url": str(data["download_url"]), "expires_at": str(data["expires_at"])}
        except (KeyError, TypeError, ValueError) as e:
            report_render_failure_counter.inc()
            raise ReportRenderError(f"Invalid renderer response: {e}") from e
