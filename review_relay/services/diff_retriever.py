"""
Diff Retriever component for GitHub integration.

Resolves a pull request's diff locator through the REST API and downloads
the unified diff from it.
"""

from typing import Optional

import httpx

from review_relay.errors import DiffRetrievalError, UpstreamTimeoutError
from review_relay.models.pr_event import PullRequestRef
from review_relay.utils.http import RetryingHttpClient
from review_relay.utils.logging import get_logger


logger = get_logger(__name__)

DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"
JSON_MEDIA_TYPE = "application/vnd.github+json"
GITHUB_API_VERSION = "2022-11-28"


def github_headers(token: str, accept: str = JSON_MEDIA_TYPE) -> dict:
    """Request headers for authenticated GitHub calls."""
    return {
        "Accept": accept,
        "Authorization": f"Bearer {token}",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }


def _is_text_response(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "")
    if not content_type:
        return True
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type.startswith("text/") or media_type.endswith("diff")


class DiffRetriever:
    """
    Retrieves the unified diff of a pull request.

    Two dependent calls are made: the pull request resource is read to find
    its ``diff_url``, then that URL is fetched with the diff media type. Both
    go through the retrying transport with the short diff-fetch timeout.
    """

    def __init__(
        self,
        http: RetryingHttpClient,
        token: str,
        api_url: str = "https://api.github.com",
        timeout_seconds: float = 10.0,
    ):
        self.http = http
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    async def fetch_diff(self, pr: PullRequestRef) -> str:
        """
        Fetch the current diff of a pull request.

        Args:
            pr: Pull request to fetch

        Returns:
            Unified diff text (possibly empty)

        Raises:
            DiffRetrievalError: If either call fails or returns unusable data
            UpstreamTimeoutError: If either call exceeds the timeout
        """
        log = logger.with_context(repository=pr.full_name, pr_number=pr.number)
        failure = f"Failed to fetch diff for PR #{pr.number} in {pr.full_name}"

        try:
            diff_url = await self._get_diff_url(pr)
            if not diff_url:
                log.error("Pull request has no diff_url")
                raise DiffRetrievalError(failure)

            log.info("Fetching diff from GitHub", extra={"diff_url": diff_url})
            response = await self.http.get(
                diff_url,
                service="github",
                timeout=self.timeout_seconds,
                headers=github_headers(self.token, accept=DIFF_MEDIA_TYPE),
                follow_redirects=True,
            )

        except httpx.TimeoutException as e:
            log.error(f"Diff fetch timed out: {e}")
            raise UpstreamTimeoutError(
                f"Timed out fetching diff for PR #{pr.number} in {pr.full_name}",
                details={"stage": DiffRetrievalError.stage},
            ) from e
        except httpx.HTTPError as e:
            log.error(f"Diff fetch failed: {type(e).__name__}: {e}")
            raise DiffRetrievalError(failure) from e

        if not _is_text_response(response):
            log.error(
                "Diff response is not text",
                extra={"content_type": response.headers.get("content-type")},
            )
            raise DiffRetrievalError(failure)

        diff = response.text
        log.info("Successfully fetched diff", extra={"diff_length": len(diff)})
        return diff

    async def _get_diff_url(self, pr: PullRequestRef) -> Optional[str]:
        url = f"{self.api_url}/repos/{pr.owner}/{pr.repo}/pulls/{pr.number}"
        response = await self.http.get(
            url,
            service="github",
            timeout=self.timeout_seconds,
            headers=github_headers(self.token),
        )
        try:
            data = response.json()
        except ValueError:
            return None

        diff_url = data.get("diff_url") if isinstance(data, dict) else None
        return diff_url if isinstance(diff_url, str) and diff_url else None
