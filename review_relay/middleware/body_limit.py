"""Request body size ceiling."""

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from review_relay.errors import PayloadTooLargeError
from review_relay.models.api_response import error_response


class RequestSizeLimitMiddleware:
    """
    Reject request bodies larger than ``max_body_size`` bytes.

    A declared ``Content-Length`` over the limit is refused before reading.
    Otherwise the streamed bytes are counted and ``PayloadTooLargeError`` is
    raised from ``receive`` once the limit is crossed.
    """

    def __init__(self, app: ASGIApp, max_body_size: int):
        self.app = app
        self.max_body_size = max_body_size

    def _error(self) -> PayloadTooLargeError:
        return PayloadTooLargeError(
            f"Request body exceeds maximum size of {self.max_body_size} bytes"
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_body_size:
            error = self._error()
            request_id = scope.get("state", {}).get("request_id")
            response = JSONResponse(
                error_response(error.code.value, error.message, request_id=request_id),
                status_code=error.status_code,
            )
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_size:
                    raise self._error()
            return message

        await self.app(scope, limited_receive, send)
