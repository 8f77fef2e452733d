"""
Unit tests for retry utilities and the retrying HTTP transport.
"""

from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from review_relay.utils.http import RetryingHttpClient, is_retryable
from review_relay.utils.resilience import backoff_delay, retry_with_backoff


def test_backoff_delay_grows_exponentially():
    assert [backoff_delay(n, 0.5, 30.0) for n in range(4)] == [0.5, 1.0, 2.0, 4.0]


def test_backoff_delay_is_capped():
    assert backoff_delay(10, 1.0, 30.0) == 30.0


def test_sync_retry_succeeds_after_failures():
    func = Mock(side_effect=[ValueError("boom"), ValueError("boom"), "ok"])
    func.__name__ = "func"

    with patch("review_relay.utils.resilience.time.sleep") as sleep:
        result = retry_with_backoff(max_retries=3, base_delay=1.0)(func)()

    assert result == "ok"
    assert func.call_count == 3
    assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_async_retry_gives_up_after_ceiling():
    func = AsyncMock(side_effect=ConnectionError("down"))
    func.__name__ = "func"

    with patch("review_relay.utils.resilience.asyncio.sleep", new=AsyncMock()):
        with pytest.raises(ConnectionError):
            await retry_with_backoff(max_retries=2, base_delay=0.1)(func)()

    assert func.await_count == 3


@pytest.mark.asyncio
async def test_retry_if_stops_immediately():
    func = AsyncMock(side_effect=ValueError("permanent"))
    func.__name__ = "func"

    with pytest.raises(ValueError):
        await retry_with_backoff(max_retries=3, retry_if=lambda e: False)(func)()

    assert func.await_count == 1


def test_is_retryable_classification():
    request = httpx.Request("GET", "https://example.test")
    assert is_retryable(httpx.ConnectError("refused", request=request))
    assert not is_retryable(httpx.ReadTimeout("slow", request=request))
    assert is_retryable(httpx.HTTPStatusError("", request=request, response=httpx.Response(500)))
    assert not is_retryable(httpx.HTTPStatusError("", request=request, response=httpx.Response(404)))
    assert not is_retryable(httpx.HTTPStatusError("", request=request, response=httpx.Response(504)))
    assert not is_retryable(ValueError("other"))


@pytest.mark.asyncio
async def test_transport_error_retried_then_succeeds(mock_http_client, http_handler):
    url = "https://example.test/resource"
    http_handler.add("GET", url, httpx.ConnectError("refused"), httpx.Response(200, text="ok"))
    client = RetryingHttpClient(mock_http_client, max_retries=3, base_delay=0.0)

    response = await client.get(url, service="test")

    assert response.text == "ok"
    assert len(http_handler.calls("GET", url)) == 2


@pytest.mark.asyncio
async def test_retry_disabled_makes_single_attempt(mock_http_client, http_handler):
    url = "https://example.test/resource"
    http_handler.add("POST", url, httpx.Response(503))
    client = RetryingHttpClient(mock_http_client, max_retries=3, base_delay=0.0)

    with pytest.raises(httpx.HTTPStatusError):
        await client.post(url, service="test", retry=False)

    assert len(http_handler.calls("POST", url)) == 1
