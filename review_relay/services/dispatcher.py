"""
Webhook Dispatcher.

Drives one pull request webhook through the review pipeline:

    received -> authenticated -> actionable -> diff fetched -> forwarded
             -> result validated -> published

Every step can end the run early. Nothing is rolled back: a run that fails
after fetching the diff simply publishes nothing. Deliveries are handled
independently, so a redelivered or overlapping event is reviewed again.
"""

import json
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel

from review_relay.errors import ValidationError
from review_relay.models.analysis import AnalysisRequest
from review_relay.models.pr_event import PULL_REQUEST_EVENT, PullRequestEvent, PullRequestRef
from review_relay.services.comment_publisher import CommentPublisher
from review_relay.services.diff_retriever import DiffRetriever
from review_relay.services.review_client import ReviewServiceClient
from review_relay.services.signature import SignatureVerifier
from review_relay.utils.logging import get_logger, log_webhook_event

logger = get_logger(__name__)

NO_CHANGES_REASON = "PR has no changes to review"


class DispatchStatus(str, Enum):
    """Terminal success outcomes of a pipeline run."""

    IGNORED = "ignored"
    NO_CHANGES = "no_changes"
    PUBLISHED = "published"


class DispatchOutcome(BaseModel):
    """Result of a successful pipeline run."""

    status: DispatchStatus

    def to_response_data(self) -> Dict[str, Any]:
        if self.status == DispatchStatus.IGNORED:
            return {"ignored": True}
        if self.status == DispatchStatus.NO_CHANGES:
            return {
                "forwardedToReviewService": False,
                "postedReviewToGitHub": False,
                "reason": NO_CHANGES_REASON,
            }
        return {"forwardedToReviewService": True, "postedReviewToGitHub": True}


def parse_pull_request_ref(event: PullRequestEvent) -> PullRequestRef:
    """
    Validate the pull request identity carried by an event.

    Raises:
        ValidationError: If the repository name or PR number is missing or malformed
    """
    full_name = event.repository_full_name
    if not full_name or event.pr_number is None:
        raise ValidationError("Missing repo full_name or PR number")

    if event.pr_number <= 0:
        raise ValidationError("Invalid PR number", {"prNumber": event.pr_number})

    segments = full_name.split("/")
    if len(segments) != 2 or not all(segments):
        raise ValidationError("Invalid repository full_name format", {"fullName": full_name})

    owner, repo = segments
    return PullRequestRef(owner=owner, repo=repo, number=event.pr_number)


class WebhookDispatcher:
    """Orchestrates a single webhook delivery from intake to publication."""

    def __init__(
        self,
        verifier: SignatureVerifier,
        diff_retriever: DiffRetriever,
        review_client: ReviewServiceClient,
        publisher: CommentPublisher,
        language: Optional[str] = None,
    ):
        self.verifier = verifier
        self.diff_retriever = diff_retriever
        self.review_client = review_client
        self.publisher = publisher
        self.language = language

    async def dispatch(
        self,
        raw_body: Optional[bytes],
        event_kind: Optional[str],
        signature: Optional[str],
        request_id: Optional[str] = None,
    ) -> DispatchOutcome:
        """
        Run the pipeline for one delivery.

        Args:
            raw_body: Unmodified request body bytes
            event_kind: Value of the ``X-GitHub-Event`` header
            signature: Value of the ``X-Hub-Signature-256`` header
            request_id: Correlation id to propagate downstream

        Returns:
            DispatchOutcome describing which success branch was taken

        Raises:
            AuthenticationError: Signature verification failed
            ValidationError: Payload or PR identity is malformed
            ExternalServiceError: A downstream stage failed
            UpstreamTimeoutError: A downstream stage timed out
        """
        self.verifier.verify(raw_body, signature)

        # Other event kinds are ignored whatever their body looks like
        if event_kind != PULL_REQUEST_EVENT:
            log_webhook_event(logger, event_kind, None)
            logger.info("Ignoring webhook event", extra={"event_kind": event_kind})
            return DispatchOutcome(status=DispatchStatus.IGNORED)

        event = PullRequestEvent.from_payload(
            self._decode_payload(raw_body),
            event_kind=event_kind,
            signature=signature,
            raw_body=raw_body,
        )
        log_webhook_event(logger, event.event_kind, event.action)

        if not event.is_actionable:
            logger.info(
                "Ignoring webhook event",
                extra={"event_kind": event.event_kind, "action": event.action},
            )
            return DispatchOutcome(status=DispatchStatus.IGNORED)

        pr = parse_pull_request_ref(event)
        log = logger.with_context(repository=pr.full_name, pr_number=pr.number)
        log.info(f"Processing PR {pr}")

        diff = await self.diff_retriever.fetch_diff(pr)
        if not diff.strip():
            log.info("Skipping review for PR with empty diff")
            return DispatchOutcome(status=DispatchStatus.NO_CHANGES)

        # Size policy is enforced by the analysis service, not here
        request = AnalysisRequest.model_construct(
            repo=pr.full_name,
            pr_number=pr.number,
            diff=diff,
            language=self.language,
        )
        result = await self.review_client.analyze(request, request_id=request_id)

        await self.publisher.publish_review(pr, result)
        log.info("Review published", extra={"comment_count": len(result.comments)})
        return DispatchOutcome(status=DispatchStatus.PUBLISHED)

    @staticmethod
    def _decode_payload(raw_body: Optional[bytes]) -> Dict[str, Any]:
        if not raw_body:
            raise ValidationError("Request body is empty")
        try:
            payload = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError) as e:
            raise ValidationError("Request body is not valid JSON") from e
        if not isinstance(payload, dict):
            raise ValidationError("Webhook payload must be a JSON object")
        return payload
