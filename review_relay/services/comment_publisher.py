"""
Comment Publisher component.

Posts the analysis result to a GitHub pull request as a single review with
the neutral ``COMMENT`` event, so the bot never approves or blocks a merge.
"""

from typing import List

import httpx

from review_relay.errors import PublicationError, UpstreamTimeoutError
from review_relay.models.analysis import AnalysisResult, Finding
from review_relay.models.pr_event import PullRequestRef
from review_relay.services.diff_retriever import github_headers
from review_relay.utils.http import RetryingHttpClient
from review_relay.utils.logging import get_logger

logger = get_logger(__name__)

REVIEW_HEADING = "### 🤖 AI Code Review Assistant"
FINDINGS_HEADING = "#### Findings"
NO_ISSUES_PLACEHOLDER = "_No specific issues were detected. Nice work!_"
REVIEW_EVENT = "COMMENT"


def format_finding(finding: Finding) -> str:
    """Render one finding as a markdown bullet."""
    return f"- ({finding.severity}) {finding.file}:{finding.line} – {finding.message}"


def render_review_body(result: AnalysisResult) -> str:
    """
    Build the markdown body of the review comment.

    Args:
        result: Validated analysis result

    Returns:
        Markdown document with the summary followed by one bullet per finding,
        or the no-issues placeholder when there are none
    """
    if result.comments:
        findings = "\n".join(format_finding(finding) for finding in result.comments)
    else:
        findings = NO_ISSUES_PLACEHOLDER

    parts: List[str] = [
        REVIEW_HEADING,
        "",
        result.summary,
        "",
        FINDINGS_HEADING,
        findings,
    ]
    return "\n".join(parts)


class CommentPublisher:
    """Publishes review summaries to GitHub pull requests."""

    def __init__(
        self,
        http: RetryingHttpClient,
        token: str,
        api_url: str = "https://api.github.com",
        timeout_seconds: float = 30.0,
    ):
        self.http = http
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    async def publish_review(self, pr: PullRequestRef, result: AnalysisResult) -> None:
        """
        Publish the review summary to the pull request.

        Exactly one attempt is made; a failed publication is reported to the
        caller and never retried here.

        Args:
            pr: Target pull request
            result: Analysis result to render

        Raises:
            PublicationError: If GitHub rejects or fails the call
            UpstreamTimeoutError: If the call exceeds its timeout
        """
        log = logger.with_context(repository=pr.full_name, pr_number=pr.number)
        url = f"{self.api_url}/repos/{pr.owner}/{pr.repo}/pulls/{pr.number}/reviews"
        body = render_review_body(result)

        log.info(
            "Posting AI review to GitHub",
            extra={"comment_count": len(result.comments)},
        )

        try:
            await self.http.post(
                url,
                service="github",
                timeout=self.timeout_seconds,
                retry=False,
                headers=github_headers(self.token),
                json={"event": REVIEW_EVENT, "body": body},
            )
        except httpx.TimeoutException as e:
            log.error(f"Publishing review timed out: {e}")
            raise UpstreamTimeoutError(
                f"Timed out posting review summary to PR #{pr.number} in {pr.full_name}",
                details={"stage": PublicationError.stage},
            ) from e
        except httpx.HTTPError as e:
            log.error(f"Failed to post review summary to GitHub: {type(e).__name__}: {e}")
            raise PublicationError(
                f"Failed to post review summary to PR #{pr.number} in {pr.full_name}"
            ) from e

        log.info("Successfully posted AI review to GitHub")
