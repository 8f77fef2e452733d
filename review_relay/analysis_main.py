"""
FastAPI application entry point for the analysis service.
"""

from typing import Optional

from fastapi import FastAPI

from review_relay import __version__
from review_relay.api import review
from review_relay.api.handlers import register_exception_handlers
from review_relay.api.health import create_health_router
from review_relay.config import AnalysisSettings
from review_relay.middleware import RateLimitMiddleware, RequestIdMiddleware, RequestSizeLimitMiddleware
from review_relay.services.llm_client import LLMClient
from review_relay.services.rate_limiter import CounterStore, SlidingWindowRateLimiter, build_counter_store
from review_relay.services.review_service import ReviewService
from review_relay.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

SERVICE_NAME = "review-service"


def create_app(
    settings: Optional[AnalysisSettings] = None,
    llm_client: Optional[LLMClient] = None,
    counter_store: Optional[CounterStore] = None,
) -> FastAPI:
    """
    Build the analysis application.

    Args:
        settings: Analysis settings; loaded from the environment when omitted
        llm_client: Model backend client; built from settings when omitted
        counter_store: Rate-limit store; chosen from settings when omitted

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = AnalysisSettings()

    llm = llm_client or LLMClient(settings)
    store = counter_store or build_counter_store(settings.rate_limit_redis_url)

    app = FastAPI(
        title="PR Review Relay - Analysis Service",
        description="Reviews unified diffs with a language model",
        version=__version__,
    )
    app.state.settings = settings
    app.state.review_service = ReviewService(llm, max_diff_size=settings.max_diff_size)
    app.state.counter_store = store

    register_exception_handlers(app)

    app.add_middleware(RequestSizeLimitMiddleware, max_body_size=settings.max_request_size)
    app.add_middleware(
        RateLimitMiddleware,
        limiter=SlidingWindowRateLimiter(
            store,
            limit=settings.rate_limit_max,
            window_seconds=settings.rate_limit_window_seconds,
        ),
        path_prefix="/review",
        trust_proxy=settings.trust_proxy,
    )
    app.add_middleware(RequestIdMiddleware)

    async def llm_ready() -> bool:
        return llm.is_ready

    app.include_router(
        create_health_router(SERVICE_NAME, {"rate_limit_store": store.ping, "openai": llm_ready})
    )
    app.include_router(review.router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "PR Review Relay analysis service",
            "version": __version__,
            "docs": "/docs",
        }

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Shutting down analysis service")
        close_store = getattr(store, "close", None)
        if close_store is not None:
            await close_store()

    return app


def main() -> None:
    import uvicorn

    settings = AnalysisSettings()
    setup_logging(settings.log_level)
    logger.info(
        "Starting analysis service",
        extra={"port": settings.port, "model": settings.openai_model},
    )
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
