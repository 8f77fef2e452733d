"""
Webhook signature verification.

GitHub signs each delivery with HMAC-SHA256 over the raw request body and
sends it as ``X-Hub-Signature-256: sha256=<hex>``.
"""

import hashlib
import hmac
from typing import Optional

from review_relay.errors import AuthenticationError
from review_relay.utils.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


def compute_signature(payload: bytes, secret: str) -> str:
    """
    Compute the provider-format signature for a payload.

    Args:
        payload: Raw request payload
        secret: Shared webhook secret

    Returns:
        Signature string including the ``sha256=`` prefix
    """
    digest = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


class SignatureVerifier:
    """Authenticates webhook bodies against a shared secret."""

    def __init__(self, secret: Optional[str]):
        self._secret = secret

    @property
    def enabled(self) -> bool:
        return bool(self._secret)

    def verify(self, raw_body: Optional[bytes], signature: Optional[str]) -> None:
        """
        Verify a webhook signature, failing closed.

        Args:
            raw_body: Exact bytes received from the provider
            signature: Value of the signature header

        Raises:
            AuthenticationError: If the body or header is missing, or the
                signature does not match
        """
        if not self._secret:
            logger.warning("Webhook secret is not configured, skipping signature verification")
            return

        if raw_body is None:
            logger.error("Raw request body unavailable, cannot verify signature")
            raise AuthenticationError("Missing request body for signature verification")

        if not signature or not signature.startswith(SIGNATURE_PREFIX):
            logger.error(f"Missing or malformed {SIGNATURE_HEADER} header")
            raise AuthenticationError("Missing or invalid signature header")

        expected = compute_signature(raw_body, self._secret).encode()
        try:
            received = signature.encode("ascii")
        except UnicodeEncodeError:
            logger.error("Signature header contains non-ASCII characters")
            raise AuthenticationError("Missing or invalid signature header")

        # compare_digest needs equal lengths to stay constant-time
        if len(expected) != len(received):
            logger.error(
                "Signature length mismatch",
                extra={"expected_length": len(expected), "received_length": len(received)},
            )
            raise AuthenticationError("Invalid signature")

        if not hmac.compare_digest(expected, received):
            logger.error("Webhook signature verification failed")
            raise AuthenticationError("Invalid signature")

        logger.debug("Webhook signature verified")
