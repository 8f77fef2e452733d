"""
Unit tests for the analysis service's review endpoint.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from review_relay.analysis_main import create_app
from review_relay.errors import UpstreamTimeoutError
from review_relay.services.rate_limiter import InMemoryCounterStore


@pytest.fixture
def llm():
    client = MagicMock()
    client.is_ready = True
    client.review_diff = AsyncMock(return_value=json.dumps({
        "summary": "Looks fine",
        "comments": [
            {"file": "a.ts", "line": 3, "severity": "warning", "message": "unused var"},
            {"file": "b.ts", "line": "x", "severity": "warning", "message": "dropped"},
        ],
    }))
    return client


@pytest.fixture
def client(analysis_settings, llm):
    app = create_app(analysis_settings, llm_client=llm, counter_store=InMemoryCounterStore())
    return TestClient(app)


def test_review_success(client, llm):
    response = client.post(
        "/review",
        json={"repo": "acme/widgets", "prNumber": 42, "diff": "+x", "language": "typescript"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"] == {
        "summary": "Looks fine",
        "comments": [{"file": "a.ts", "line": 3, "severity": "warning", "message": "unused var"}],
    }
    assert body["requestId"] == response.headers["X-Request-ID"]
    llm.review_diff.assert_awaited_once_with("+x", "typescript")


def test_invalid_request_lists_fields(client, llm):
    response = client.post("/review", json={"repo": "", "prNumber": "42"})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["message"] == "Invalid request body"
    fields = {entry["field"] for entry in error["details"]["errors"]}
    assert {"repo", "prNumber", "diff"} <= fields
    llm.review_diff.assert_not_awaited()


def test_diff_over_ceiling_rejected(client, llm):
    response = client.post("/review", json={"repo": "acme/widgets", "prNumber": 1, "diff": "x" * 101})

    assert response.status_code == 400
    errors = response.json()["error"]["details"]["errors"]
    assert errors == [{"field": "diff", "message": "Diff exceeds maximum size of 100 characters"}]
    llm.review_diff.assert_not_awaited()


def test_non_json_body(client):
    response = client.post("/review", content=b"not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_unusable_model_output(client, llm):
    llm.review_diff.return_value = "not json at all"

    response = client.post("/review", json={"repo": "acme/widgets", "prNumber": 1, "diff": "+x"})

    assert response.status_code == 502
    assert response.json()["error"] == {
        "code": "EXTERNAL_SERVICE_ERROR",
        "message": "Failed to generate code review",
    }


def test_model_timeout(client, llm):
    llm.review_diff.side_effect = UpstreamTimeoutError("Timed out waiting for model")

    response = client.post("/review", json={"repo": "acme/widgets", "prNumber": 1, "diff": "+x"})

    assert response.status_code == 504
    assert response.json()["error"]["code"] == "TIMEOUT_ERROR"
