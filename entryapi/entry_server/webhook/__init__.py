"""
Webhook module - incremental fast-store refresh from push events.

This module handles:
- X-Hub-Signature-256 verification
- Push-event payload parsing
- Per-path fetch-and-store / delete

Invariants:
    - Signature and payload validation happen before any path is processed
    - One path failing never stops the rest of the batch
"""

from .payload import CommitChanges, Operation, WebhookPayload
from .signature import SIGNATURE_HEADER, sign, verify_signature
from .synchronizer import WebhookResult, WebhookSynchronizer

__all__ = [
    "SIGNATURE_HEADER",
    "CommitChanges",
    "Operation",
    "WebhookPayload",
    "WebhookResult",
    "WebhookSynchronizer",
    "sign",
    "verify_signature",
]
