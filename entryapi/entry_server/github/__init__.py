"""
GitHub module - the authoritative content host.

This module provides:
- GitHubClient: async REST client for file contents and commit history
- GitHubEntryFetcher: builds Entries with authorship from commit history

Content files live at ``<content_dir>/NNNNN.md`` in each tenant's repository.
"""

from .client import Commit, FileResponse, GitHubClient, GitHubFile
from .fetcher import EntryFetcher, GitHubEntryFetcher

__all__ = [
    "Commit",
    "EntryFetcher",
    "FileResponse",
    "GitHubClient",
    "GitHubEntryFetcher",
    "GitHubFile",
]
