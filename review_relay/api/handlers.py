"""Exception handlers rendering the uniform error envelope."""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from review_relay.errors import ErrorCode, ReviewRelayError
from review_relay.middleware.request_id import REQUEST_ID_HEADER
from review_relay.models.api_response import error_response
from review_relay.utils.logging import get_logger

logger = get_logger(__name__)


def get_request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def _envelope(request: Request, status_code: int, body: dict) -> JSONResponse:
    request_id = get_request_id(request)
    headers = {REQUEST_ID_HEADER: request_id} if request_id else None
    return JSONResponse(body, status_code=status_code, headers=headers)


async def handle_review_relay_error(request: Request, exc: ReviewRelayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            f"Request failed: {exc.code.value}: {exc.message}",
            extra={"path": request.url.path, "request_id": get_request_id(request)},
        )
    return _envelope(
        request,
        exc.status_code,
        error_response(exc.code.value, exc.message, exc.details, get_request_id(request)),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        extra={"path": request.url.path, "request_id": get_request_id(request)},
        exc_info=exc,
    )
    return _envelope(
        request,
        500,
        error_response(
            ErrorCode.INTERNAL_ERROR.value,
            "An internal error occurred",
            request_id=get_request_id(request),
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReviewRelayError, handle_review_relay_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
