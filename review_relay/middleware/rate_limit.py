"""Per-client rate limiting middleware."""

import math
from typing import Optional

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from review_relay.errors import RateLimitExceeded
from review_relay.models.api_response import error_response
from review_relay.services.rate_limiter import RateLimitDecision, SlidingWindowRateLimiter


def client_key(scope: Scope, trust_proxy: bool = False) -> str:
    """Identify the caller by address, optionally via the first forwarded hop."""
    if trust_proxy:
        forwarded = Headers(scope=scope).get("x-forwarded-for")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop

    client = scope.get("client")
    return client[0] if client else "unknown"


def rate_limit_headers(decision: RateLimitDecision) -> dict:
    return {
        "RateLimit-Limit": str(decision.limit),
        "RateLimit-Remaining": str(decision.remaining),
        "RateLimit-Reset": str(math.ceil(decision.reset_after)),
    }


class RateLimitMiddleware:
    """Apply a sliding-window limit to requests under ``path_prefix``."""

    def __init__(
        self,
        app: ASGIApp,
        limiter: SlidingWindowRateLimiter,
        path_prefix: str = "/",
        trust_proxy: bool = False,
    ):
        self.app = app
        self.limiter = limiter
        self.path_prefix = path_prefix
        self.trust_proxy = trust_proxy

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope["path"].startswith(self.path_prefix):
            await self.app(scope, receive, send)
            return

        decision = await self.limiter.check(client_key(scope, self.trust_proxy))
        headers = rate_limit_headers(decision)

        if not decision.allowed:
            error = RateLimitExceeded("Too many requests, please try again later")
            request_id: Optional[str] = scope.get("state", {}).get("request_id")
            headers["Retry-After"] = headers["RateLimit-Reset"]
            response = JSONResponse(
                error_response(error.code.value, error.message, request_id=request_id),
                status_code=error.status_code,
                headers=headers,
            )
            await response(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_headers = MutableHeaders(scope=message)
                for name, value in headers.items():
                    response_headers[name] = value
            await send(message)

        await self.app(scope, receive, send_with_headers)
