"""LINE webhook signature verification.

LINE signs each webhook with HMAC-SHA256 over the raw request body, keyed by
the channel secret, and sends the base64 digest in ``x-line-signature``.
The check must run on the bytes exactly as received: re-serializing a decoded
body is not guaranteed to reproduce them.
"""

from __future__ import annotations

import base64
import hashlib
import hmac

SIGNATURE_HEADER = "x-line-signature"


def compute_signature(channel_secret: str, body: bytes) -> str:
    """Return the base64-encoded HMAC-SHA256 of body."""
    digest = hmac.new(channel_secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


class SignatureVerifier:
    """Verifies inbound webhook bodies against the channel secret."""

    def __init__(self, channel_secret: str) -> None:
        if not channel_secret:
            raise ValueError("channel_secret must not be empty")
        self._channel_secret = channel_secret

    def verify(self, body: bytes, signature: str | None) -> bool:
        """Return True only if signature matches body.

        Missing or empty signatures are rejected. Comparison is constant-time.
        """
        if not signature:
            return False
        expected = compute_signature(self._channel_secret, body)
        return hmac.compare_digest(signature.encode(), expected.encode())
