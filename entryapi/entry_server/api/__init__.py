"""
API module for the Entry API server.

This module provides the external interface:
- HTTP server (aiohttp) over EntryService and the webhook synchronizer

Invariants:
    - Handlers hold no behavior of their own; they translate HTTP to the core
    - Every entry route is mirrored under /tenants/{tenant_id}

How to change safely:
    - Add new routes, don't change the shape of existing responses
"""

from .http_server import AppContext, create_http_app, run_http_server

__all__ = [
    "AppContext",
    "create_http_app",
    "run_http_server",
]
