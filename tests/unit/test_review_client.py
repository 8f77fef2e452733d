"""Unit tests for the analysis service client."""

import json

import httpx
import pytest

from review_relay.errors import ReviewServiceError, UpstreamTimeoutError
from review_relay.models.analysis import AnalysisRequest
from review_relay.services.review_client import ReviewServiceClient
from review_relay.utils.http import RetryingHttpClient

REVIEW_URL = "http://review-service.test/review"

RESULT = {
    "summary": "Looks fine",
    "comments": [{"file": "a.ts", "line": 3, "severity": "warning", "message": "unused var"}],
}


@pytest.fixture
def client(mock_http_client) -> ReviewServiceClient:
    http = RetryingHttpClient(mock_http_client, max_retries=3, base_delay=0.0)
    return ReviewServiceClient(http, base_url="http://review-service.test/", timeout_seconds=60.0)


@pytest.fixture
def request_model() -> AnalysisRequest:
    return AnalysisRequest(repo="acme/widgets", prNumber=42, diff="+x", language="typescript")


@pytest.mark.asyncio
async def test_forwards_request_and_parses_envelope(client, http_handler, request_model):
    http_handler.add("POST", REVIEW_URL, httpx.Response(200, json={"success": True, "data": RESULT}))

    result = await client.analyze(request_model, request_id="req-1")

    assert result.summary == "Looks fine"
    assert result.comments[0].severity == "warning"
    sent = http_handler.calls("POST", REVIEW_URL)[0]
    assert json.loads(sent.content) == {
        "repo": "acme/widgets",
        "prNumber": 42,
        "diff": "+x",
        "language": "typescript",
    }
    assert sent.headers["X-Request-ID"] == "req-1"


@pytest.mark.asyncio
async def test_bare_body_accepted(client, http_handler, request_model):
    http_handler.add("POST", REVIEW_URL, httpx.Response(200, json=RESULT))

    result = await client.analyze(request_model)

    assert len(result.comments) == 1


@pytest.mark.asyncio
async def test_missing_language_is_omitted(client, http_handler):
    http_handler.add("POST", REVIEW_URL, httpx.Response(200, json={"success": True, "data": RESULT}))

    await client.analyze(AnalysisRequest(repo="acme/widgets", prNumber=1, diff="+x"))

    sent = http_handler.calls("POST", REVIEW_URL)[0]
    assert "language" not in json.loads(sent.content)


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"success": True, "data": {"comments": []}},
    {"success": True, "data": {"summary": "x", "comments": "nope"}},
    ["not", "an", "object"],
])
async def test_unusable_payload(client, http_handler, request_model, body):
    http_handler.add("POST", REVIEW_URL, httpx.Response(200, json=body))

    with pytest.raises(ReviewServiceError) as exc_info:
        await client.analyze(request_model)

    assert exc_info.value.message == "Invalid response format from review service"
    assert exc_info.value.details == {"stage": "review_service"}


@pytest.mark.asyncio
async def test_client_error_not_retried(client, http_handler, request_model):
    http_handler.add("POST", REVIEW_URL, httpx.Response(400, json={"success": False}))

    with pytest.raises(ReviewServiceError):
        await client.analyze(request_model)

    assert len(http_handler.calls("POST", REVIEW_URL)) == 1


@pytest.mark.asyncio
async def test_server_error_retried_until_ceiling(client, http_handler, request_model):
    http_handler.add("POST", REVIEW_URL, httpx.Response(503))

    with pytest.raises(ReviewServiceError):
        await client.analyze(request_model)

    assert len(http_handler.calls("POST", REVIEW_URL)) == 4


@pytest.mark.asyncio
async def test_timeout(client, http_handler, request_model):
    http_handler.add("POST", REVIEW_URL, httpx.ReadTimeout("timed out"))

    with pytest.raises(UpstreamTimeoutError) as exc_info:
        await client.analyze(request_model)

    assert exc_info.value.details == {"stage": "review_service"}


@pytest.mark.asyncio
async def test_downstream_timeout_is_terminal(client, http_handler, request_model):
    http_handler.add(
        "POST", REVIEW_URL,
        httpx.Response(504, json={"success": False, "error": {"code": "TIMEOUT_ERROR", "message": "timed out"}}),
        httpx.Response(200, json={"success": True, "data": RESULT}),
    )

    with pytest.raises(UpstreamTimeoutError) as exc_info:
        await client.analyze(request_model)

    assert exc_info.value.details == {"stage": "review_service"}
    assert len(http_handler.calls("POST", REVIEW_URL)) == 1
