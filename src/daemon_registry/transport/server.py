"""FastAPI JSON-RPC adapter for the daemon registry.

This module is a thin transport over :class:`DaemonRegistry`:

- ``POST /`` and ``POST /mcp`` accept JSON-RPC 2.0 ``tools/list`` and ``tools/call``
- ``GET /health`` is a liveness check

Tool results are returned as MCP text content holding pretty-printed JSON.

Example:
    >>> from daemon_registry.config import RegistrySettings
    >>> from daemon_registry.registry import DaemonRegistry
    >>> from daemon_registry.transport.server import create_app
    >>>
    >>> app = create_app(DaemonRegistry.from_settings(RegistrySettings.from_env()))
    >>> # uvicorn.run(app, host="0.0.0.0", port=8787)
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from daemon_registry import __version__
from daemon_registry.discovery.protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSONRPC_VERSION,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    SERVER_ERROR,
    TOOLS_LIST_METHOD,
)
from daemon_registry.errors import DocumentUnavailableError
from daemon_registry.models.enums import ActivityType, DaemonStatus
from daemon_registry.observability import get_logger, request_context
from daemon_registry.registry.facade import DaemonRegistry
from daemon_registry.transport.tools import REGISTRY_TOOLS

logger = get_logger(__name__)

TOOLS_CALL_METHOD = "tools/call"
SERVICE_NAME = "daemon-registry"
UNKNOWN_CLIENT = "unknown"


class InvalidParamsError(Exception):
    """Tool arguments were missing or malformed (JSON-RPC -32602)."""


def client_key_from_request(request: Request) -> str:
    """Client identity for rate limiting: CF-Connecting-IP, first X-Forwarded-For hop, peer."""
    cf_ip = request.headers.get("CF-Connecting-IP")
    if cf_ip:
        return cf_ip.strip()
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is not None:
        return str(request.client.host)
    return UNKNOWN_CLIENT


def rpc_result(result: dict[str, Any], request_id: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "result": result, "id": request_id}


def rpc_error(code: int, message: str, request_id: Any) -> dict[str, Any]:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "error": {"code": code, "message": message},
        "id": request_id,
    }


def text_content(payload: Any) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": json.dumps(payload, indent=2)}]}


def _require_str(arguments: dict[str, Any], name: str) -> str:
    value = arguments.get(name)
    if not isinstance(value, str) or not value:
        raise InvalidParamsError(f"Missing required field: {name}")
    return value


def _optional_str(arguments: dict[str, Any], name: str) -> str | None:
    value = arguments.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidParamsError(f"Field {name} must be a string")
    return value


ToolHandler = Callable[[dict[str, Any], str], Awaitable[Any]]


class RegistryRpcHandler:
    """Dispatches JSON-RPC bodies to registry operations."""

    def __init__(self, registry: DaemonRegistry) -> None:
        self._registry = registry
        self._tools: dict[str, ToolHandler] = {
            "daemon_registry_list": self._list,
            "daemon_registry_search": self._search,
            "daemon_registry_announce": self._announce,
            "daemon_registry_health_check": self._health_check,
            "daemon_registry_activity": self._activity,
            "daemon_registry_capabilities": self._capabilities,
            "daemon_registry_random": self._random,
            "daemon_registry_profile": self._profile,
            "get_status": self._status,
        }

    async def _list(self, arguments: dict[str, Any], client_key: str) -> Any:
        listing = await self._registry.list_entries()
        data = listing.model_dump(mode="json", exclude_none=True)
        return {
            "count": len(listing.entries),
            "daemons": data["entries"],
            "updated": data["updated"],
        }

    async def _search(self, arguments: dict[str, Any], client_key: str) -> Any:
        query = _optional_str(arguments, "query")
        tag = _optional_str(arguments, "tag")
        raw_status = _optional_str(arguments, "status")
        try:
            status = DaemonStatus(raw_status) if raw_status else None
        except ValueError:
            raise InvalidParamsError(f"Unknown status: {raw_status}") from None
        entries = await self._registry.search(query=query, tag=tag, status=status)
        return {
            "query": query,
            "tag": tag,
            "status": raw_status,
            "count": len(entries),
            "daemons": [e.model_dump(mode="json", exclude_none=True) for e in entries],
        }

    async def _announce(self, arguments: dict[str, Any], client_key: str) -> Any:
        if not arguments.get("url") or not arguments.get("owner"):
            raise InvalidParamsError("Missing required fields: url and owner")
        request = {
            "id": arguments.get("id"),
            "url": arguments.get("url"),
            "owner": arguments.get("owner"),
            "role": arguments.get("role"),
            "focus": arguments.get("focus") or [],
            "protocol": arguments.get("protocol") or "unknown",
            "mcp_url": arguments.get("mcp_url"),
            "tags": arguments.get("tags") or [],
        }
        result = await self._registry.announce(request, client_key)
        return result.model_dump(mode="json", exclude_none=True)

    async def _health_check(self, arguments: dict[str, Any], client_key: str) -> Any:
        result = await self._registry.health_check(_require_str(arguments, "url"))
        return result.model_dump(mode="json", exclude_none=True)

    async def _activity(self, arguments: dict[str, Any], client_key: str) -> Any:
        limit = arguments.get("limit")
        if limit is not None and (isinstance(limit, bool) or not isinstance(limit, (int, float))):
            raise InvalidParamsError("Field limit must be a number")
        raw_type = _optional_str(arguments, "type")
        try:
            event_type = ActivityType(raw_type) if raw_type else None
        except ValueError:
            raise InvalidParamsError(f"Unknown event type: {raw_type}") from None
        page = await self._registry.activity(
            limit=int(limit) if limit is not None else None, event_type=event_type
        )
        return page.model_dump(mode="json", exclude_none=True)

    async def _capabilities(self, arguments: dict[str, Any], client_key: str) -> Any:
        result = await self._registry.discover_capabilities(_require_str(arguments, "url"))
        return result.model_dump(mode="json", exclude_none=True)

    async def _random(self, arguments: dict[str, Any], client_key: str) -> Any:
        entry = await self._registry.random_entry()
        if entry is None:
            return {"error": "No daemons in registry"}
        return {
            "message": "Here's a random daemon to explore!",
            "daemon": entry.model_dump(
                mode="json",
                include={"id", "url", "owner", "role", "focus", "status", "mcp_url"},
                exclude_none=True,
            ),
            "tip": "Use daemon_registry_capabilities to see what tools this daemon supports",
        }

    async def _profile(self, arguments: dict[str, Any], client_key: str) -> Any:
        url = _require_str(arguments, "url")
        sections = await self._registry.fetch_sections(url)
        return {"url": url, "sections": sections}

    async def _status(self, arguments: dict[str, Any], client_key: str) -> Any:
        status = await self._registry.status()
        return {
            "status": "ok",
            "version": __version__,
            "service": SERVICE_NAME,
            "registry": status.model_dump(mode="json"),
            "tools_count": len(REGISTRY_TOOLS),
        }

    async def dispatch(self, body: dict[str, Any], client_key: str) -> dict[str, Any]:
        """Handle one JSON-RPC request body and return the response body."""
        request_id = body.get("id")
        method = body.get("method")

        if method == TOOLS_LIST_METHOD:
            return rpc_result({"tools": REGISTRY_TOOLS}, request_id)
        if method != TOOLS_CALL_METHOD:
            return rpc_error(METHOD_NOT_FOUND, f"Method not found: {method}", request_id)

        params = body.get("params") or {}
        if not isinstance(params, dict):
            return rpc_error(INVALID_PARAMS, "params must be an object", request_id)
        tool_name = params.get("name")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            return rpc_error(INVALID_PARAMS, "arguments must be an object", request_id)

        handler = self._tools.get(tool_name) if isinstance(tool_name, str) else None
        if handler is None:
            return rpc_error(METHOD_NOT_FOUND, f"Unknown tool: {tool_name}", request_id)

        with request_context(client_key=client_key, tool=tool_name):
            logger.debug("registry.rpc.tool_call", arguments=arguments)
            try:
                payload = await handler(arguments, client_key)
            except InvalidParamsError as e:
                logger.info("registry.rpc.invalid_params", error=str(e))
                return rpc_error(INVALID_PARAMS, str(e), request_id)
            except DocumentUnavailableError as e:
                return rpc_error(SERVER_ERROR, e.message, request_id)
            except Exception:
                logger.exception("registry.rpc.internal_error")
                return rpc_error(INTERNAL_ERROR, "Internal error", request_id)
        return rpc_result(text_content(payload), request_id)


def create_app(registry: DaemonRegistry, *, sweep_enabled: bool = False) -> FastAPI:
    """Create the FastAPI application.

    Args:
        registry: Registry facade the tools call into.
        sweep_enabled: Run the per-minute health sweep for the app's lifetime.
    """
    handler = RegistryRpcHandler(registry)

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
        stop = asyncio.Event()
        task: asyncio.Task[None] | None = None
        if sweep_enabled:
            task = asyncio.create_task(registry.sweep.run_periodic(stop))
        try:
            yield
        finally:
            stop.set()
            if task is not None:
                await task

    app = FastAPI(
        title="Daemon Registry",
        description="Discovery registry for daemon endpoints (JSON-RPC 2.0)",
        version=__version__,
        lifespan=_lifespan,
    )
    app.state.registry = registry

    async def handle_rpc(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JSONResponse(rpc_error(PARSE_ERROR, "Parse error", None))
        if not isinstance(body, dict):
            return JSONResponse(rpc_error(INVALID_REQUEST, "Invalid request", None))
        return JSONResponse(await handler.dispatch(body, client_key_from_request(request)))

    app.add_api_route("/", handle_rpc, methods=["POST"])
    app.add_api_route("/mcp", handle_rpc, methods=["POST"])

    @app.get("/health")
    async def health() -> JSONResponse:
        """Liveness check: always OK if the process is running."""
        return JSONResponse({"status": "ok", "service": SERVICE_NAME})

    return app
