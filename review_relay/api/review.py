"""
Review endpoint of the analysis service.
"""

import json

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from review_relay.api.handlers import get_request_id
from review_relay.errors import InternalError, ReviewRelayError, ValidationError
from review_relay.models.api_response import success_response
from review_relay.services.review_service import ReviewService
from review_relay.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["review"])


def get_review_service(request: Request) -> ReviewService:
    return request.app.state.review_service


@router.post("/review")
async def create_review(request: Request) -> JSONResponse:
    """
    Review a unified diff.

    Expects ``{repo, prNumber, diff, language?}`` and returns the envelope
    wrapping ``{summary, comments}``. Invalid bodies are rejected with
    field-level details before the model is called.
    """
    try:
        raw_body = await request.body()
        try:
            payload = json.loads(raw_body) if raw_body else None
        except (ValueError, UnicodeDecodeError) as e:
            raise ValidationError("Request body is not valid JSON") from e

        result = await get_review_service(request).review(payload)

    except ReviewRelayError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in /review: {e}", exc_info=True)
        raise InternalError("Failed to generate code review") from e

    return JSONResponse(success_response(result.model_dump(), get_request_id(request)))
