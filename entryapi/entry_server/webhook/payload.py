"""
Push-event payload types.

Only the fields the synchronizer needs are read:

    {
      "repository": {"full_name": "owner/repo"},
      "commits": [{"added": [...], "modified": [...], "removed": [...]}]
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import WebhookValidationError


class Operation(Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class CommitChanges:
    added: tuple[str, ...] = ()
    modified: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()

    def paths(self) -> list[tuple[Operation, str]]:
        """Changed paths in added, modified, removed order."""
        return (
            [(Operation.ADDED, p) for p in self.added]
            + [(Operation.MODIFIED, p) for p in self.modified]
            + [(Operation.REMOVED, p) for p in self.removed]
        )


def _paths(data: dict[str, Any], name: str) -> tuple[str, ...]:
    value = data.get(name) or []
    if not isinstance(value, list):
        raise WebhookValidationError(f"'{name}' must be a list")
    return tuple(str(p) for p in value)


@dataclass(frozen=True)
class WebhookPayload:
    repository: str
    commits: tuple[CommitChanges, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> WebhookPayload:
        """Parse a decoded push-event body.

        Raises:
            WebhookValidationError: If the payload is missing required fields
        """
        if not isinstance(data, dict):
            raise WebhookValidationError("Webhook payload must be a JSON object")
        repository = data.get("repository") or {}
        full_name = repository.get("full_name") if isinstance(repository, dict) else None
        if not full_name:
            raise WebhookValidationError("Webhook payload has no repository.full_name")
        commits = data.get("commits") or []
        if not isinstance(commits, list):
            raise WebhookValidationError("'commits' must be a list", repository=full_name)
        return cls(
            repository=full_name,
            commits=tuple(
                CommitChanges(
                    added=_paths(c, "added"),
                    modified=_paths(c, "modified"),
                    removed=_paths(c, "removed"),
                )
                for c in commits
                if isinstance(c, dict)
            ),
        )
