"""
Client for the analysis service.

Forwards an ``AnalysisRequest`` to ``POST /review`` and validates the
envelope it gets back into an ``AnalysisResult``.
"""

from typing import Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from review_relay.errors import ReviewServiceError, UpstreamTimeoutError
from review_relay.models.analysis import AnalysisRequest, AnalysisResult
from review_relay.utils.http import RetryingHttpClient, is_upstream_timeout
from review_relay.utils.logging import get_logger

logger = get_logger(__name__)


class ReviewServiceClient:
    """Sends analysis requests across the service boundary."""

    def __init__(self, http: RetryingHttpClient, base_url: str, timeout_seconds: float = 120.0):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    @property
    def review_url(self) -> str:
        return f"{self.base_url}/review"

    async def analyze(self, request: AnalysisRequest, request_id: Optional[str] = None) -> AnalysisResult:
        """
        Forward a request to the analysis service.

        Args:
            request: Analysis request to forward
            request_id: Correlation id propagated as ``X-Request-ID``

        Returns:
            Validated analysis result

        Raises:
            ReviewServiceError: Transport failure, non-2xx reply or unusable payload
            UpstreamTimeoutError: The call exceeded its timeout
        """
        log = logger.with_context(repository=request.repo, pr_number=request.pr_number)
        headers = {"Content-Type": "application/json"}
        if request_id:
            headers["X-Request-ID"] = request_id

        log.info("Sending request to review service", extra={"url": self.review_url})
        try:
            response = await self.http.post(
                self.review_url,
                service="review_service",
                timeout=self.timeout_seconds,
                json=request.model_dump(by_alias=True, exclude_none=True),
                headers=headers,
            )
        except httpx.HTTPError as e:
            if is_upstream_timeout(e):
                log.error(f"Review service timed out: {e}")
                raise UpstreamTimeoutError(
                    "Timed out waiting for review service",
                    details={"stage": ReviewServiceError.stage},
                ) from e
            if isinstance(e, httpx.HTTPStatusError):
                log.error(
                    f"Review service returned {e.response.status_code}",
                    extra={"response_body": e.response.text[:500]},
                )
            else:
                log.error(f"Review service unreachable: {type(e).__name__}: {e}")
            raise ReviewServiceError("Review service request failed") from e

        result = self._parse_result(response, log)
        log.info(
            "Received review from review service",
            extra={"comment_count": len(result.comments)},
        )
        return result

    @staticmethod
    def _parse_result(response: httpx.Response, log) -> AnalysisResult:
        try:
            body = response.json()
        except ValueError as e:
            log.error("Review service response is not JSON")
            raise ReviewServiceError("Invalid response format from review service") from e

        payload = body
        if isinstance(body, dict) and body.get("data"):
            payload = body["data"]

        try:
            return AnalysisResult.model_validate(payload)
        except PydanticValidationError as e:
            log.error(f"Invalid review response format: {e.error_count()} errors")
            raise ReviewServiceError("Invalid response format from review service") from e
