"""
Entry API Server - cache-aside content service for Markdown blog entries.

This package serves blog entries whose source of truth is a set of Markdown
files in a GitHub repository:
- Entries are Markdown files with YAML front matter (content/NNNNN.md)
- SQLite is the fast store, one table shared by every tenant
- Reads are cache-aside: a miss fetches from GitHub and fills the store
- Push webhooks refresh the store incrementally
- A small search language compiles to parameterized SQL predicates

Architecture:
    ┌─────────────┐     ┌─────────────┐     ┌─────────────────┐
    │   Client    │────▶│ HTTP Server │────▶│  EntryService   │
    └─────────────┘     └──────┬──────┘     └────────┬────────┘
                               │                     │
                        webhook│                     ▼
                               ▼            ┌─────────────────┐
                      ┌────────────────┐    │ EntryRepository │──▶ query compiler
                      │  Synchronizer  │───▶│  (cache-aside)  │
                      └────────────────┘    └───┬─────────┬───┘
                                                │         │ miss
                                                ▼         ▼
                                          ┌─────────┐ ┌─────────┐
                                          │ SQLite  │ │ GitHub  │
                                          │ (fast)  │ │ (source)│
                                          └─────────┘ └─────────┘

Invariants:
    - GitHub is the source of truth; the SQLite store can be rebuilt
    - Every entry is addressed by (entry_id, tenant_id)
    - User query text only ever reaches SQL as bound parameters

How to change safely:
    - Keep the stored column names stable, existing stores are reused
    - New query syntax must compile to a fragment plus parameters
"""

from ._version import __version__

__all__ = ["__version__"]
