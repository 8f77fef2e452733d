"""
Shared fixtures for unit tests.
"""

import json
from typing import Callable, List

import httpx
import pytest

from review_relay.config import AnalysisSettings, GatewaySettings
from review_relay.services.signature import compute_signature

WEBHOOK_SECRET = "test_secret"
GITHUB_API = "https://api.github.test"
REVIEW_SERVICE = "http://review-service.test"


@pytest.fixture
def gateway_settings() -> GatewaySettings:
    """Gateway settings isolated from the real environment."""
    return GatewaySettings(
        _env_file=None,
        github_token="test_token",
        github_webhook_secret=WEBHOOK_SECRET,
        github_api_url=GITHUB_API,
        review_service_url=REVIEW_SERVICE,
        http_retry_base_delay_seconds=0.0,
    )


@pytest.fixture
def analysis_settings() -> AnalysisSettings:
    """Analysis settings isolated from the real environment."""
    return AnalysisSettings(
        _env_file=None,
        openai_api_key="test_key",
        max_diff_size=100,
    )


class RecordingHandler:
    """
    httpx.MockTransport handler that records requests and replays routes.

    Routes map ``(method, url)`` to a response or a list of responses that
    are served in order (the last one repeats).
    """

    def __init__(self):
        self.routes = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, url: str, *responses):
        self.routes[(method, url)] = list(responses)

    def calls(self, method: str, url: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and str(r.url) == url]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responses = self.routes.get((request.method, str(request.url)))
        if not responses:
            return httpx.Response(404, json={"message": "Not Found"})
        response = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        return response


@pytest.fixture
def http_handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def mock_http_client(http_handler: RecordingHandler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(http_handler), follow_redirects=True)


@pytest.fixture
def sign() -> Callable[[bytes], str]:
    """Sign a payload with the test webhook secret."""
    def _sign(payload: bytes) -> str:
        return compute_signature(payload, WEBHOOK_SECRET)
    return _sign


@pytest.fixture
def make_payload() -> Callable[..., bytes]:
    """Build serialized pull_request webhook bodies."""
    return pull_request_payload


def pull_request_payload(
    action: str = "opened",
    full_name: str = "acme/widgets",
    number: int = 42,
) -> bytes:
    """Serialized pull_request webhook body."""
    return json.dumps({
        "action": action,
        "repository": {
            "name": full_name.split("/")[-1],
            "full_name": full_name,
            "html_url": f"https://github.com/{full_name}",
        },
        "pull_request": {
            "number": number,
            "title": "Add widget",
            "body": "",
            "head": {"ref": "feature", "sha": "abc123"},
            "base": {"ref": "main", "sha": "def456"},
        },
    }).encode()
