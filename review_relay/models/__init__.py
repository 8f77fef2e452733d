"""Data models for the PR review relay."""

from .analysis import AnalysisRequest, AnalysisResult, Finding, Severity
from .api_response import ApiResponse, ErrorBody, error_response, success_response
from .pr_event import ACTIONABLE_ACTIONS, PullRequestEvent, PullRequestRef

__all__ = [
    # PR event models
    "ACTIONABLE_ACTIONS",
    "PullRequestEvent",
    "PullRequestRef",
    # Analysis contract
    "AnalysisRequest",
    "AnalysisResult",
    "Finding",
    "Severity",
    # API response models
    "ApiResponse",
    "ErrorBody",
    "error_response",
    "success_response",
]
