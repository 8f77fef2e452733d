"""Business logic services package."""

from review_relay.services.comment_publisher import CommentPublisher, render_review_body
from review_relay.services.diff_retriever import DiffRetriever
from review_relay.services.dispatcher import DispatchOutcome, DispatchStatus, WebhookDispatcher
from review_relay.services.llm_client import LLMClient
from review_relay.services.rate_limiter import (
    CounterStore,
    InMemoryCounterStore,
    RedisCounterStore,
    SlidingWindowRateLimiter,
)
from review_relay.services.response_sanitizer import (
    MalformedResponse,
    ParsedResponse,
    parse_model_response,
)
from review_relay.services.review_client import ReviewServiceClient
from review_relay.services.review_service import ReviewService, validate_analysis_request
from review_relay.services.signature import SignatureVerifier, compute_signature

__all__ = [
    'CommentPublisher',
    'render_review_body',
    'DiffRetriever',
    'DispatchOutcome',
    'DispatchStatus',
    'WebhookDispatcher',
    'LLMClient',
    'CounterStore',
    'InMemoryCounterStore',
    'RedisCounterStore',
    'SlidingWindowRateLimiter',
    'MalformedResponse',
    'ParsedResponse',
    'parse_model_response',
    'ReviewServiceClient',
    'ReviewService',
    'validate_analysis_request',
    'SignatureVerifier',
    'compute_signature',
]
