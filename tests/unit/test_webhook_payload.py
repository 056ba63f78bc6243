"""
Unit tests for webhook signature checks and payload parsing.

Tests cover:
- HMAC-SHA256 signature generation and verification
- Push-event parsing and path ordering
- Rejection of malformed payloads
"""

import pytest

from entryapi.entry_server.errors import WebhookSignatureError, WebhookValidationError
from entryapi.entry_server.webhook import (
    CommitChanges,
    Operation,
    WebhookPayload,
    sign,
    verify_signature,
)

BODY = b'{"repository": {"full_name": "making/blog.ik.am"}}'


class TestSignature:
    """Tests for X-Hub-Signature-256 handling."""

    def test_sign_format(self):
        """Signatures are sha256=<hex>."""
        signature = sign("secret", BODY)
        assert signature.startswith("sha256=")
        assert len(signature) == len("sha256=") + 64

    def test_valid_signature(self):
        """A signature over the same body and secret passes."""
        verify_signature("secret", BODY, sign("secret", BODY))

    def test_wrong_secret(self):
        """A different secret fails and echoes the signature."""
        signature = sign("other", BODY)
        with pytest.raises(WebhookSignatureError) as exc_info:
            verify_signature("secret", BODY, signature)
        assert exc_info.value.message == f"Invalid signature: {signature}"

    def test_tampered_body(self):
        """Any body change invalidates the signature."""
        with pytest.raises(WebhookSignatureError):
            verify_signature("secret", BODY + b" ", sign("secret", BODY))

    def test_missing_signature(self):
        """No header is a failure."""
        with pytest.raises(WebhookSignatureError):
            verify_signature("secret", BODY, None)


class TestPayload:
    """Tests for WebhookPayload parsing."""

    def test_parse(self):
        """Repository and per-commit paths are read."""
        payload = WebhookPayload.from_dict(
            {
                "repository": {"full_name": "making/blog.ik.am"},
                "commits": [
                    {"added": ["content/00001.md"], "modified": [], "removed": ["content/00002.md"]},
                    {"modified": ["README.md"]},
                ],
            }
        )

        assert payload.repository == "making/blog.ik.am"
        assert payload.commits == (
            CommitChanges(added=("content/00001.md",), removed=("content/00002.md",)),
            CommitChanges(modified=("README.md",)),
        )

    def test_path_order(self):
        """Within a commit: added, then modified, then removed."""
        commit = CommitChanges(added=("a",), modified=("m",), removed=("r",))
        assert commit.paths() == [
            (Operation.ADDED, "a"),
            (Operation.MODIFIED, "m"),
            (Operation.REMOVED, "r"),
        ]

    def test_no_commits(self):
        """A push without commits is valid and empty."""
        payload = WebhookPayload.from_dict({"repository": {"full_name": "o/r"}})
        assert payload.commits == ()

    @pytest.mark.parametrize(
        "data",
        [
            [],
            {},
            {"repository": {}},
            {"repository": {"full_name": "o/r"}, "commits": "nope"},
            {"repository": {"full_name": "o/r"}, "commits": [{"added": "content/00001.md"}]},
        ],
    )
    def test_invalid(self, data):
        """Malformed payloads are rejected."""
        with pytest.raises(WebhookValidationError):
            WebhookPayload.from_dict(data)
