"""
HTTP server for the Entry API.

Thin aiohttp adapter over EntryService and WebhookSynchronizer. Handlers
only translate HTTP to service calls; all behavior lives in the core.

Routes (each also available under /tenants/{tenant_id}):
    GET    /entries                      page of entries (query, tag,
                                         categories, cursor, size) or
                                         batch lookup (entryIds)
    GET    /entries/template.md          markdown template for new entries
    GET    /entries/{id}                 one entry as JSON
    GET    /entries/{id}.md              one entry as markdown
    POST   /entries                      create from markdown
    PUT    /entries/{id}                 replace from markdown
    PATCH  /entries/{id}/summary         replace the summary
    DELETE /entries/{id}                 delete
    GET    /categories                   distinct category paths
    GET    /tags                         tags with counts
    POST   /webhook                      GitHub push event
    GET    /readyz                       readiness (no tenant prefix)

Invariants:
    - Write endpoints require the X-Actor header (the author name)
    - Webhook bodies are verified against X-Hub-Signature-256 when a
      secret is configured
    - Error bodies are {"error": ..., "error_code": ...}

How to change safely:
    - Keep the /tenants/{tenant_id} mirror for every entry route
    - Keep JSON field names stable (see Entry.to_dict)
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any

from aiohttp import web

from ..config import HttpConfig
from ..entry.markdown import parse_markdown, to_markdown
from ..entry.model import (
    DEFAULT_PAGE_SIZE,
    Author,
    Category,
    CursorPageRequest,
    Entry,
    EntryKey,
    FrontMatter,
    SearchCriteria,
    Tag,
    parse_datetime,
)
from ..errors import (
    EntryApiError,
    EntryNotFoundError,
    TenantConfigurationError,
    WebhookSignatureError,
    WebhookValidationError,
)
from ..service import EntryService
from ..webhook import SIGNATURE_HEADER, WebhookPayload, WebhookSynchronizer, verify_signature

logger = logging.getLogger(__name__)

TENANT_PREFIX = "/tenants/{tenant_id}"
MARKDOWN_CONTENT_TYPE = "text/markdown"
CACHE_MAX_AGE_SECONDS = 3600

ERROR_STATUS: dict[type[EntryApiError], int] = {
    WebhookSignatureError: 400,
    WebhookValidationError: 400,
    EntryNotFoundError: 404,
    TenantConfigurationError: 500,
}

TEMPLATE_ENTRY = Entry(
    entry_key=EntryKey(0),
    front_matter=FrontMatter(
        title="How to Build a REST API with Spring Boot",
        categories=(Category("Programming"), Category("Java"), Category("Spring")),
        tags=(Tag("Java"), Tag("Spring Boot"), Tag("Tutorial")),
    ),
    content="""### Introduction

Briefly introduce the topic and what readers will learn.

### Prerequisites

- List any required knowledge
- Tools or software needed
- Version requirements

### Main Content

#### Step 1: Getting Started

Explain the first concept or step with clear examples.

#### Step 2: Implementation

Continue with detailed implementation steps.

### Conclusion

Summarize key takeaways and suggest next steps for further learning.
""",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AppContext:
    """Collaborators shared by all handlers.

    Attributes:
        service: Entry use cases
        synchronizer: Webhook synchronizer
        webhook_secret: Secret for X-Hub-Signature-256 (None skips the check)
        clock: Source of "now" for created/updated dates
    """

    service: EntryService
    synchronizer: WebhookSynchronizer
    webhook_secret: str | None = None
    clock: Callable[[], datetime] = field(default=_utcnow)


def _bad_request(message: str) -> web.HTTPBadRequest:
    return web.HTTPBadRequest(
        text=json.dumps({"error": message, "error_code": "BAD_REQUEST"}),
        content_type="application/json",
    )


def _tenant_id(request: web.Request) -> str | None:
    return request.match_info.get("tenant_id")


def _entry_key(request: web.Request) -> EntryKey:
    return EntryKey(int(request.match_info["entry_id"]), _tenant_id(request))


def _actor(request: web.Request) -> str:
    actor = request.headers.get("X-Actor")
    if not actor:
        raise _bad_request("X-Actor header is required")
    return actor


def _int_param(request: web.Request, name: str, default: int) -> int:
    value = request.query.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise _bad_request(f"'{name}' must be an integer")


def _list_param(request: web.Request, name: str) -> list[str]:
    value = request.query.get(name, "")
    return [v.strip() for v in value.split(",") if v.strip()]


def _json(data: Any, status: int = 200, headers: dict[str, str] | None = None) -> web.Response:
    return web.json_response(data, status=status, headers=headers)


def _not_found(entry_key: EntryKey) -> web.Response:
    return _json({"error": f"Entry not found: {entry_key}", "error_code": "NOT_FOUND"}, status=404)


def _not_modified(request: web.Request, entry: Entry) -> bool:
    updated = entry.updated.date
    since = request.if_modified_since
    if updated is None or since is None:
        return False
    return updated.replace(microsecond=0) <= since


def _cache_headers(entry: Entry) -> dict[str, str]:
    headers = {"Cache-Control": f"max-age={CACHE_MAX_AGE_SECONDS}"}
    if entry.updated.date is not None:
        updated = entry.updated.date.astimezone(timezone.utc)
        headers["Last-Modified"] = format_datetime(updated, usegmt=True)
    return headers


def create_http_app(context: AppContext) -> web.Application:
    """Create the aiohttp application.

    Args:
        context: Shared collaborators

    Returns:
        aiohttp Application instance
    """
    app = web.Application(middlewares=[error_middleware])

    routes: list[tuple[str, str, Callable[[web.Request, AppContext], Any]]] = [
        ("GET", "/entries", handle_get_entries),
        ("GET", "/entries/template.md", handle_get_template),
        ("GET", r"/entries/{entry_id:\d+}", handle_get_entry),
        ("GET", r"/entries/{entry_id:\d+}.md", handle_get_entry_markdown),
        ("POST", "/entries", handle_post_entry),
        ("PUT", r"/entries/{entry_id:\d+}", handle_put_entry),
        ("PATCH", r"/entries/{entry_id:\d+}/summary", handle_patch_summary),
        ("DELETE", r"/entries/{entry_id:\d+}", handle_delete_entry),
        ("GET", "/categories", handle_get_categories),
        ("GET", "/tags", handle_get_tags),
        ("POST", "/webhook", handle_webhook),
    ]
    for method, path, handler in routes:
        for prefix in ("", TENANT_PREFIX):
            app.router.add_route(method, prefix + path, functools.partial(handler, ctx=context))

    app.router.add_get("/readyz", handle_readyz)
    return app


@web.middleware
async def error_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except EntryApiError as e:
        status = next(
            (s for error_type, s in ERROR_STATUS.items() if isinstance(e, error_type)), 500
        )
        if status >= 500:
            logger.error(f"HTTP handler error: {e.message}", exc_info=True)
        else:
            logger.info(f"Rejected request: {e.message}", extra={"error_code": e.code})
        return _json({"error": e.message, "error_code": e.code}, status=status)
    except Exception as e:
        logger.error(f"HTTP handler error: {e}", exc_info=True)
        return _json({"error": str(e), "error_code": "INTERNAL"}, status=500)


async def handle_get_entries(request: web.Request, ctx: AppContext) -> web.Response:
    """Handle GET /entries - page of entries, or batch lookup with entryIds."""
    tenant_id = _tenant_id(request)

    if "entryIds" in request.query:
        try:
            keys = [EntryKey(int(i), tenant_id) for i in _list_param(request, "entryIds")]
        except ValueError:
            raise _bad_request("'entryIds' must be comma-separated integers")
        entries = await ctx.service.find_all(keys)
        return _json([e.to_dict() for e in entries])

    categories = _list_param(request, "categories")
    criteria = SearchCriteria(
        query=request.query.get("query") or None,
        tag=request.query.get("tag") or None,
        categories=tuple(categories) or None,
    )
    size = _int_param(request, "size", DEFAULT_PAGE_SIZE)
    if size < 1:
        raise _bad_request("'size' must be positive")
    cursor_param = request.query.get("cursor")
    try:
        cursor = parse_datetime(cursor_param) if cursor_param else None
    except ValueError:
        raise _bad_request("'cursor' must be an ISO-8601 timestamp")

    if criteria.is_default() and size == DEFAULT_PAGE_SIZE and cursor is None:
        page = await ctx.service.find_latest(tenant_id)
    else:
        page = await ctx.service.find_order_by_updated(
            tenant_id, criteria, CursorPageRequest(cursor=cursor, page_size=size)
        )
    return _json(page.to_dict())


async def handle_get_template(request: web.Request, ctx: AppContext) -> web.Response:
    """Handle GET /entries/template.md - starter markdown."""
    return web.Response(text=to_markdown(TEMPLATE_ENTRY), content_type=MARKDOWN_CONTENT_TYPE)


async def handle_get_entry(request: web.Request, ctx: AppContext) -> web.Response:
    """Handle GET /entries/{id} - entry as JSON."""
    entry_key = _entry_key(request)
    entry = await ctx.service.find_by_id(entry_key)
    if entry is None:
        return _not_found(entry_key)
    if _not_modified(request, entry):
        return web.Response(status=304)
    return _json(entry.to_dict(), headers=_cache_headers(entry))


async def handle_get_entry_markdown(request: web.Request, ctx: AppContext) -> web.Response:
    """Handle GET /entries/{id}.md - entry as markdown."""
    entry_key = _entry_key(request)
    entry = await ctx.service.find_by_id(entry_key)
    if entry is None:
        return _not_found(entry_key)
    if _not_modified(request, entry):
        return web.Response(status=304)
    return web.Response(
        text=to_markdown(entry),
        content_type=MARKDOWN_CONTENT_TYPE,
        headers=_cache_headers(entry),
    )


async def handle_post_entry(request: web.Request, ctx: AppContext) -> web.Response:
    """Handle POST /entries - create an entry from a markdown body."""
    tenant_id = _tenant_id(request)
    actor = _actor(request)
    markdown = await request.text()

    author = Author(actor, ctx.clock())
    entry_id = await ctx.service.next_id(tenant_id)
    entry_key = EntryKey(entry_id, tenant_id)
    saved = await ctx.service.save(parse_markdown(entry_key, markdown, author, author))

    location = f"/entries/{entry_id}" if tenant_id is None else f"/tenants/{tenant_id}/entries/{entry_id}"
    return _json(saved.to_dict(), status=201, headers={"Location": location})


async def handle_put_entry(request: web.Request, ctx: AppContext) -> web.Response:
    """Handle PUT /entries/{id} - replace an entry, keeping its creator."""
    entry_key = _entry_key(request)
    actor = _actor(request)
    markdown = await request.text()

    updated = Author(actor, ctx.clock())
    existing = await ctx.service.find_by_id(entry_key)
    created = existing.created if existing is not None else updated
    saved = await ctx.service.save(parse_markdown(entry_key, markdown, created, updated))
    return _json(saved.to_dict())


async def handle_patch_summary(request: web.Request, ctx: AppContext) -> web.Response:
    """Handle PATCH /entries/{id}/summary - body {"summary": "..."}."""
    entry_key = _entry_key(request)
    _actor(request)
    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise _bad_request("Invalid JSON body")
    summary = body.get("summary") if isinstance(body, dict) else None
    if not isinstance(summary, str):
        raise _bad_request("summary is required")

    entry = await ctx.service.find_by_id(entry_key)
    if entry is None:
        return _not_found(entry_key)
    await ctx.service.update_summary(entry_key, summary)
    return _json(entry.with_summary(summary).to_dict())


async def handle_delete_entry(request: web.Request, ctx: AppContext) -> web.Response:
    """Handle DELETE /entries/{id}."""
    entry_key = _entry_key(request)
    _actor(request)
    await ctx.service.delete_by_id(entry_key)
    return web.Response(status=204)


async def handle_get_categories(request: web.Request, ctx: AppContext) -> web.Response:
    """Handle GET /categories - distinct category paths."""
    categories = await ctx.service.find_all_categories(_tenant_id(request))
    return _json([[c.to_dict() for c in path] for path in categories])


async def handle_get_tags(request: web.Request, ctx: AppContext) -> web.Response:
    """Handle GET /tags - tags with entry counts."""
    tags = await ctx.service.find_all_tags(_tenant_id(request))
    return _json([t.to_dict() for t in tags])


async def handle_webhook(request: web.Request, ctx: AppContext) -> web.Response:
    """Handle POST /webhook - GitHub push event."""
    body = await request.read()
    if ctx.webhook_secret:
        verify_signature(ctx.webhook_secret, body, request.headers.get(SIGNATURE_HEADER))
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise WebhookValidationError("Invalid JSON body")

    payload = WebhookPayload.from_dict(data)
    results = await ctx.synchronizer.synchronize(payload, _tenant_id(request))
    return _json([r.to_dict() for r in results])


async def handle_readyz(request: web.Request) -> web.Response:
    """Handle GET /readyz - readiness check."""
    return _json({"status": "UP"})


async def run_http_server(context: AppContext, config: HttpConfig | None = None) -> None:
    """Run the HTTP server until cancelled.

    Args:
        context: Shared collaborators
        config: Bind address
    """
    config = config or HttpConfig()
    app = create_http_app(context)

    runner = web.AppRunner(app)
    await runner.setup()

    site = web.TCPSite(runner, config.host, config.port)
    await site.start()

    logger.info(f"HTTP server running on http://{config.host}:{config.port}")

    # Keep running until cancelled
    try:
        while True:
            await asyncio.sleep(3600)
    except asyncio.CancelledError:
        pass
    finally:
        await runner.cleanup()
