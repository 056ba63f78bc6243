"""
Error types for the Entry API server.

This module defines the exception types raised by the core:
- EntryApiError: Base exception
- TenantConfigurationError: Tenant has no registered content coordinates
- QueryExecutionError: The fast store rejected a compiled query
- GitHubApiError: Unexpected response from the content host
- WebhookSignatureError: Webhook signature verification failed
- WebhookValidationError: Webhook payload cannot be processed
- EntryNotFoundError: Entry missing where the caller requires one

Invariants:
    - All errors inherit from EntryApiError
    - "Not found" in the cache-aside core is absence (None), never an error
    - Nothing in the core retries; retry policy belongs to the caller
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class EntryApiError(Exception):
    """Base exception for all Entry API errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "ENTRY_API_ERROR"
        self.details = details or {}


class TenantConfigurationError(EntryApiError):
    """A referenced tenant has no registered content coordinates.

    This is a configuration problem, not a cache miss. It is never retried.
    """

    def __init__(self, tenant_id: str) -> None:
        super().__init__(
            f"Could not find tenant definition: {tenant_id}",
            code="TENANT_NOT_CONFIGURED",
            details={"tenant_id": tenant_id},
        )
        self.tenant_id = tenant_id


class QueryExecutionError(EntryApiError):
    """The fast store rejected a compiled query.

    Well-formed SearchCriteria never produce this; seeing it points at a
    compiler bug.
    """

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        params: Optional[list[Any]] = None,
    ) -> None:
        super().__init__(
            message,
            code="QUERY_EXECUTION_ERROR",
            details={"query": query, "params": params or []},
        )
        self.query = query
        self.params = params or []


class GitHubApiError(EntryApiError):
    """The content host returned a status the core cannot interpret.

    Raised when:
    - A content read returns 5xx (or any non-2xx, non-4xx status)
    - A write-through create/update/delete fails
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        path: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="GITHUB_API_ERROR",
            details={"status_code": status_code, "path": path},
        )
        self.status_code = status_code
        self.path = path


class WebhookSignatureError(EntryApiError):
    """Webhook signature does not match the request body.

    The offending signature is echoed back for diagnosis.
    """

    def __init__(self, signature: Optional[str]) -> None:
        super().__init__(
            f"Invalid signature: {signature}",
            code="INVALID_SIGNATURE",
            details={"signature": signature},
        )
        self.signature = signature


class WebhookValidationError(EntryApiError):
    """Webhook payload is malformed or names an unknown repository."""

    def __init__(self, message: str, repository: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="INVALID_WEBHOOK",
            details={"repository": repository},
        )
        self.repository = repository


class EntryNotFoundError(EntryApiError):
    """Entry does not exist where the caller requires it to."""

    def __init__(self, entry_key: Any) -> None:
        super().__init__(
            f"Entry not found: {entry_key}",
            code="NOT_FOUND",
            details={"entry_key": str(entry_key)},
        )
        self.entry_key = entry_key
