"""
FastAPI application entry point for the webhook intake gateway.
"""

from typing import Optional

import httpx
from fastapi import FastAPI

from review_relay import __version__
from review_relay.api import webhooks
from review_relay.api.handlers import register_exception_handlers
from review_relay.api.health import create_health_router
from review_relay.config import GatewaySettings
from review_relay.middleware import RateLimitMiddleware, RequestIdMiddleware, RequestSizeLimitMiddleware
from review_relay.services.comment_publisher import CommentPublisher
from review_relay.services.diff_retriever import DiffRetriever
from review_relay.services.dispatcher import WebhookDispatcher
from review_relay.services.rate_limiter import CounterStore, SlidingWindowRateLimiter, build_counter_store
from review_relay.services.review_client import ReviewServiceClient
from review_relay.services.signature import SignatureVerifier
from review_relay.utils.http import RetryingHttpClient
from review_relay.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

SERVICE_NAME = "webhook-service"


def create_app(
    settings: Optional[GatewaySettings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    counter_store: Optional[CounterStore] = None,
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        settings: Gateway settings; loaded from the environment when omitted
        http_client: Outbound client; a default one is created when omitted
        counter_store: Rate-limit store; chosen from settings when omitted

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = GatewaySettings()

    http = RetryingHttpClient(
        http_client or httpx.AsyncClient(follow_redirects=True),
        max_retries=settings.http_max_retries,
        base_delay=settings.http_retry_base_delay_seconds,
    )
    store = counter_store or build_counter_store(settings.rate_limit_redis_url)

    verifier = SignatureVerifier(settings.github_webhook_secret)
    if not verifier.enabled:
        logger.warning("GITHUB_WEBHOOK_SECRET is not configured, webhook signatures will not be verified")

    dispatcher = WebhookDispatcher(
        verifier=verifier,
        diff_retriever=DiffRetriever(
            http,
            token=settings.github_token,
            api_url=settings.github_api_url,
            timeout_seconds=settings.diff_fetch_timeout_seconds,
        ),
        review_client=ReviewServiceClient(
            http,
            base_url=settings.review_service_url,
            timeout_seconds=settings.review_service_timeout_seconds,
        ),
        publisher=CommentPublisher(
            http,
            token=settings.github_token,
            api_url=settings.github_api_url,
            timeout_seconds=settings.github_api_timeout_seconds,
        ),
        language=settings.review_language,
    )

    app = FastAPI(
        title="PR Review Relay - Webhook Gateway",
        description="Receives GitHub pull request webhooks and publishes AI reviews",
        version=__version__,
    )
    app.state.settings = settings
    app.state.dispatcher = dispatcher
    app.state.http = http
    app.state.counter_store = store

    register_exception_handlers(app)

    # Added innermost first; RequestIdMiddleware ends up outermost
    app.add_middleware(RequestSizeLimitMiddleware, max_body_size=settings.max_request_size)
    app.add_middleware(
        RateLimitMiddleware,
        limiter=SlidingWindowRateLimiter(
            store,
            limit=settings.rate_limit_max,
            window_seconds=settings.rate_limit_window_seconds,
        ),
        path_prefix="/github",
        trust_proxy=settings.trust_proxy,
    )
    app.add_middleware(RequestIdMiddleware)

    async def github_configured() -> bool:
        return bool(settings.github_token)

    app.include_router(
        create_health_router(
            SERVICE_NAME,
            {"rate_limit_store": store.ping, "github_credentials": github_configured},
        )
    )
    app.include_router(webhooks.router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "PR Review Relay webhook gateway",
            "version": __version__,
            "docs": "/docs",
        }

    @app.on_event("shutdown")
    async def shutdown_event():
        """Release outbound connections on shutdown."""
        logger.info("Shutting down webhook gateway")
        await http.aclose()
        close_store = getattr(store, "close", None)
        if close_store is not None:
            await close_store()

    return app


def main() -> None:
    import uvicorn

    settings = GatewaySettings()
    setup_logging(settings.log_level)
    logger.info("Starting webhook gateway", extra={"port": settings.port})
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
