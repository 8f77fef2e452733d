"""Pull request event data models."""

from typing import Optional

from pydantic import BaseModel


ACTIONABLE_ACTIONS = frozenset({"opened", "reopened", "synchronize"})
PULL_REQUEST_EVENT = "pull_request"


class PullRequestEvent(BaseModel):
    """
    Pull request webhook as delivered by the provider.

    ``raw_body`` holds the exact bytes the provider signed; it is captured
    before any parsing and is what signature verification runs over.
    """

    event_kind: Optional[str] = None
    action: Optional[str] = None
    repository_full_name: Optional[str] = None
    pr_number: Optional[int] = None
    signature: Optional[str] = None
    raw_body: Optional[bytes] = None

    @property
    def is_actionable(self) -> bool:
        """True for pull_request events whose action warrants a review."""
        return self.event_kind == PULL_REQUEST_EVENT and self.action in ACTIONABLE_ACTIONS

    @classmethod
    def from_payload(
        cls,
        payload: dict,
        event_kind: Optional[str],
        signature: Optional[str],
        raw_body: Optional[bytes],
    ) -> "PullRequestEvent":
        """Extract the fields the pipeline needs from a decoded webhook body."""
        repository = payload.get("repository")
        pull_request = payload.get("pull_request")

        full_name = repository.get("full_name") if isinstance(repository, dict) else None
        number = pull_request.get("number") if isinstance(pull_request, dict) else None
        action = payload.get("action")

        return cls(
            event_kind=event_kind,
            action=action if isinstance(action, str) else None,
            repository_full_name=full_name if isinstance(full_name, str) else None,
            pr_number=number if isinstance(number, int) and not isinstance(number, bool) else None,
            signature=signature,
            raw_body=raw_body,
        )


class PullRequestRef(BaseModel):
    """Validated identity of the pull request under review."""

    owner: str
    repo: str
    number: int

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def __str__(self) -> str:
        return f"{self.full_name}#{self.number}"
