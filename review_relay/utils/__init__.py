"""
Utility modules for the PR review relay.
"""

from review_relay.utils.logging import (
    get_logger,
    setup_logging,
    log_webhook_event,
    log_api_call,
    request_id_var,
)
from review_relay.utils.resilience import backoff_delay, retry_with_backoff

__all__ = [
    "get_logger",
    "setup_logging",
    "log_webhook_event",
    "log_api_call",
    "request_id_var",
    "backoff_delay",
    "retry_with_backoff",
]
