"""GitHub webhook signature verification (X-Hub-Signature-256)."""

from __future__ import annotations

import hashlib
import hmac

from ..errors import WebhookSignatureError

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


def sign(secret: str, body: bytes) -> str:
    """Header value GitHub would send for ``body``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(secret: str, body: bytes, signature: str | None) -> None:
    """Check a webhook signature against the raw request body.

    Raises:
        WebhookSignatureError: If the header is missing or does not match
    """
    if not signature or not hmac.compare_digest(sign(secret, body), signature.strip()):
        raise WebhookSignatureError(signature)
