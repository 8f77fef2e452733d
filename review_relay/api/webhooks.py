"""
Webhook endpoints for GitHub pull request events.
"""

from typing import Optional

from fastapi import APIRouter, Header, Request
from fastapi.responses import JSONResponse

from review_relay.api.handlers import get_request_id
from review_relay.errors import InternalError, ReviewRelayError
from review_relay.models.api_response import success_response
from review_relay.services.dispatcher import WebhookDispatcher
from review_relay.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/github", tags=["webhooks"])


def get_dispatcher(request: Request) -> WebhookDispatcher:
    return request.app.state.dispatcher


@router.post("/webhook")
async def handle_github_webhook(
    request: Request,
    x_github_event: Optional[str] = Header(None, alias="X-GitHub-Event"),
    x_hub_signature: Optional[str] = Header(None, alias="X-Hub-Signature-256"),
) -> JSONResponse:
    """
    Receive and process a GitHub webhook delivery.

    This endpoint:
    1. Captures the raw body before any parsing, for signature verification
    2. Hands the delivery to the dispatcher, which runs the review pipeline
    3. Returns 200 for processed or intentionally ignored events

    Failures are raised as ReviewRelayError subclasses and rendered into the
    error envelope by the registered exception handlers.
    """
    request_id = get_request_id(request)

    try:
        # Must be read before anything decodes the body
        raw_body = await request.body()

        outcome = await get_dispatcher(request).dispatch(
            raw_body=raw_body,
            event_kind=x_github_event,
            signature=x_hub_signature,
            request_id=request_id,
        )

    except ReviewRelayError:
        raise
    except Exception as e:
        logger.error(f"Error processing webhook: {e}", exc_info=True)
        raise InternalError("Failed to process webhook") from e

    return JSONResponse(success_response(outcome.to_response_data(), request_id))
