"""
Review service: the analysis side of the pipeline.

Validates an incoming request, asks the model for a review and sanitizes
the reply. Holds no state between requests.
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from review_relay.errors import ExternalServiceError, ValidationError
from review_relay.models.analysis import AnalysisRequest, AnalysisResult
from review_relay.services.llm_client import LLMClient
from review_relay.services.response_sanitizer import MalformedResponse, parse_model_response
from review_relay.utils.logging import get_logger

logger = get_logger(__name__)


def validate_analysis_request(payload: Any, max_diff_size: int) -> AnalysisRequest:
    """
    Validate a raw request body before any model call.

    Args:
        payload: Decoded JSON body
        max_diff_size: Diff ceiling in characters

    Returns:
        Validated AnalysisRequest

    Raises:
        ValidationError: With ``details.errors`` listing each field and message
    """
    try:
        return AnalysisRequest.model_validate(payload, context={"max_diff_size": max_diff_size})
    except PydanticValidationError as e:
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"]),
                "message": error["msg"],
            }
            for error in e.errors()
        ]
        raise ValidationError("Invalid request body", {"errors": errors}) from e


class ReviewService:
    """Produces an AnalysisResult for one validated request."""

    def __init__(self, llm_client: LLMClient, max_diff_size: int):
        self.llm_client = llm_client
        self.max_diff_size = max_diff_size

    async def review(self, payload: Any) -> AnalysisResult:
        """
        Validate, analyze and sanitize.

        Raises:
            ValidationError: The request is malformed; the model is not called
            ExternalServiceError: The model failed or replied with unusable output
            UpstreamTimeoutError: The model call timed out
        """
        request = validate_analysis_request(payload, self.max_diff_size)
        log = logger.with_context(repository=request.repo, pr_number=request.pr_number)
        log.info(
            "Received review request",
            extra={"language": request.language, "diff_length": len(request.diff)},
        )

        raw = await self.llm_client.review_diff(request.diff, request.language)

        parsed = parse_model_response(raw)
        if isinstance(parsed, MalformedResponse):
            log.error(
                f"Unusable model response: {parsed.reason}",
                extra={"content_length": len(raw), "content_preview": raw[:200]},
            )
            raise ExternalServiceError("Failed to generate code review")

        result = parsed.result
        log.info("Successfully generated code review", extra={"comment_count": len(result.comments)})
        return result
