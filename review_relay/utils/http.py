"""
Outbound HTTP transport with retry and call logging.

Wraps a shared ``httpx.AsyncClient``. Transport failures and 5xx responses are
retried with exponential backoff. Timeouts, 504 responses and 4xx responses
are not.
"""

import time
from typing import Any, Optional

import httpx

from review_relay.utils.logging import get_logger, log_api_call
from review_relay.utils.resilience import retry_with_backoff

logger = get_logger(__name__)

GATEWAY_TIMEOUT = 504


def is_upstream_timeout(error: BaseException) -> bool:
    """A local timeout, or a 504 reporting that a hop further down timed out."""
    if isinstance(error, httpx.TimeoutException):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code == GATEWAY_TIMEOUT
    return False


def is_retryable(error: BaseException) -> bool:
    """Whether an outbound failure is worth another attempt."""
    if is_upstream_timeout(error):
        return False
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return False


class RetryingHttpClient:
    """
    Thin wrapper around ``httpx.AsyncClient`` applying the retry policy.

    Every non-2xx response is raised as ``httpx.HTTPStatusError`` so callers
    can map it to their own error kind; only the 5xx ones are retried first.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        max_retries: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 30.0,
    ):
        self.client = client
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay

        self._send_with_retry = retry_with_backoff(
            max_retries=max_retries,
            base_delay=base_delay,
            max_delay=max_delay,
            exceptions=(httpx.HTTPError,),
            retry_if=is_retryable,
        )(self._send_once)

    async def request(
        self,
        method: str,
        url: str,
        *,
        service: str,
        timeout: Optional[float] = None,
        retry: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Send a request, retrying transient failures when ``retry`` is set.

        Args:
            method: HTTP method
            url: Absolute URL
            service: Logical service name used in call logs
            timeout: Per-attempt timeout in seconds
            retry: Disable to make exactly one attempt
            **kwargs: Passed through to ``httpx.AsyncClient.request``

        Returns:
            The successful response

        Raises:
            httpx.HTTPStatusError: Non-2xx response (after retries for 5xx)
            httpx.TimeoutException: The attempt exceeded ``timeout``
            httpx.TransportError: Network failure (after retries)
        """
        if timeout is not None:
            kwargs["timeout"] = timeout

        if retry:
            return await self._send_with_retry(method, url, service, **kwargs)
        return await self._send_once(method, url, service, **kwargs)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _send_once(self, method: str, url: str, service: str, **kwargs: Any) -> httpx.Response:
        start_time = time.time()
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            log_api_call(
                logger,
                service=service,
                endpoint=url,
                method=method,
                duration_ms=(time.time() - start_time) * 1000,
                error=f"{type(e).__name__}: {e}",
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        if response.is_success:
            log_api_call(
                logger,
                service=service,
                endpoint=url,
                method=method,
                status_code=response.status_code,
                duration_ms=duration_ms,
            )
            return response

        log_api_call(
            logger,
            service=service,
            endpoint=url,
            method=method,
            status_code=response.status_code,
            duration_ms=duration_ms,
            error=f"HTTP {response.status_code}",
        )
        raise httpx.HTTPStatusError(
            f"{method} {url} returned {response.status_code}",
            request=response.request,
            response=response,
        )
