"""
Unit tests for the ASGI middleware stack.
"""

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from review_relay.api.handlers import get_request_id, register_exception_handlers
from review_relay.middleware import (
    REQUEST_ID_HEADER,
    RateLimitMiddleware,
    RequestIdMiddleware,
    RequestSizeLimitMiddleware,
)
from review_relay.middleware.rate_limit import client_key
from review_relay.services.rate_limiter import InMemoryCounterStore, SlidingWindowRateLimiter
from review_relay.utils.logging import request_id_var


def build_app(limit: int = 2, max_body_size: int = 64) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.add_middleware(RequestSizeLimitMiddleware, max_body_size=max_body_size)
    app.add_middleware(
        RateLimitMiddleware,
        limiter=SlidingWindowRateLimiter(InMemoryCounterStore(), limit=limit, window_seconds=900),
        path_prefix="/limited",
    )
    app.add_middleware(RequestIdMiddleware)

    @app.post("/limited/echo")
    async def echo(request: Request):
        body = await request.body()
        return {"size": len(body), "requestId": get_request_id(request), "contextId": request_id_var.get()}

    @app.get("/open")
    async def open_route():
        return {"ok": True}

    return app


@pytest.fixture
def client() -> TestClient:
    return TestClient(build_app())


def test_request_id_generated_and_echoed(client):
    response = client.post("/limited/echo", content=b"hi")

    assert response.status_code == 200
    request_id = response.headers[REQUEST_ID_HEADER]
    assert response.json()["requestId"] == request_id
    assert response.json()["contextId"] == request_id


def test_request_ids_are_unique(client):
    first = client.get("/open").headers[REQUEST_ID_HEADER]
    second = client.get("/open").headers[REQUEST_ID_HEADER]
    assert first != second


def test_oversized_body_rejected(client):
    response = client.post("/limited/echo", content=b"x" * 65)

    assert response.status_code == 413
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["requestId"] == response.headers[REQUEST_ID_HEADER]


def test_streamed_body_over_limit_rejected(client):
    def chunks():
        yield b"x" * 40
        yield b"x" * 40

    response = client.post("/limited/echo", content=chunks())

    assert response.status_code == 413
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_body_at_limit_accepted(client):
    response = client.post("/limited/echo", content=b"x" * 64)
    assert response.json()["size"] == 64


def test_rate_limit_headers_and_rejection(client):
    first = client.post("/limited/echo", content=b"")
    assert first.headers["RateLimit-Limit"] == "2"
    assert first.headers["RateLimit-Remaining"] == "1"

    client.post("/limited/echo", content=b"")
    rejected = client.post("/limited/echo", content=b"")

    assert rejected.status_code == 429
    assert rejected.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert int(rejected.headers["Retry-After"]) > 0
    assert REQUEST_ID_HEADER in rejected.headers


def test_rate_limit_scoped_to_prefix(client):
    for _ in range(5):
        response = client.get("/open")
        assert response.status_code == 200
        assert "RateLimit-Limit" not in response.headers


def test_client_key_from_scope():
    scope = {"type": "http", "client": ("10.0.0.1", 1234), "headers": [(b"x-forwarded-for", b"1.1.1.1, 2.2.2.2")]}

    assert client_key(scope) == "10.0.0.1"
    assert client_key(scope, trust_proxy=True) == "1.1.1.1"
    assert client_key({"type": "http", "headers": []}) == "unknown"
