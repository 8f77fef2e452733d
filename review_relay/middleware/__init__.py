"""ASGI middleware shared by both services."""

from review_relay.middleware.body_limit import RequestSizeLimitMiddleware
from review_relay.middleware.rate_limit import RateLimitMiddleware
from review_relay.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware

__all__ = [
    "REQUEST_ID_HEADER",
    "RateLimitMiddleware",
    "RequestIdMiddleware",
    "RequestSizeLimitMiddleware",
]
