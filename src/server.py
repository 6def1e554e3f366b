"""
MCP Server exposing Légifrance search, built on FastMCP v2.

This module creates and runs the MCP server with:
- One tool: searchLegifrance, listed and executed by the ToolDispatcher (src/tools.py)
- One resource: legifrance://openapi, the bundled API description
- Logging of every tools/list and tools/call with outcome and duration
- Health and readiness HTTP endpoints (streamable-http transport only)
- stdio transport by default, streamable HTTP when MCP_TRANSPORT says so

Architecture:
    tools/list and tools/call are answered by ToolRequestHandlers, installed
    on the protocol server under FastMCP. The dispatcher is the only source
    of the tool descriptor and of the call errors:

    1. ToolRequestHandlers assigns a request id and starts a timer
    2. ToolDispatcher.call_tool() validates the name and the arguments
    3. The dispatcher gets a token from the TokenProvider and calls /search
    4. The handler logs the outcome and the duration
    5. An McpError raised by the dispatcher is answered as a JSON-RPC error,
       keeping its code and data

    Components are built once in serve() and wired together explicitly:
    Settings -> TokenProvider -> ToolDispatcher -> FastMCP server.

Running the server:
    uv run python -m src.server

    With MCP_TRANSPORT=streamable-http it listens on http://0.0.0.0:8080 with:
    - MCP endpoint at /mcp (Streamable HTTP)
    - Health check at /health
    - Readiness check at /ready
"""

import asyncio
import json
import sys
import time
import uuid

import httpx
from fastmcp import FastMCP
from mcp.shared.exceptions import McpError
from mcp.types import (
    CallToolRequest,
    ListToolsRequest,
    ListToolsResult,
    ServerResult,
)
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from src.auth import AuthenticationError, TokenProvider
from src.config import ConfigurationError, Settings, load_settings
from src.log import configure_logging, get_logger
from src.openapi import OPENAPI_RESOURCE_URI, load_openapi_spec
from src.tools import ToolDispatcher

SERVER_NAME = "legifrance-server"
SERVER_VERSION = "0.1.0"

logger = get_logger("server")


# ---------------------------------------------------------------------------
# tools/list and tools/call handlers
# ---------------------------------------------------------------------------
# These replace FastMCP's tool handlers on the protocol server. The advertised
# descriptor is the dispatcher's, and a dispatcher McpError reaches the client
# as a JSON-RPC error with its code and data.
#
# Each call gets a short id so that the oauth/api log lines emitted while
# it runs can be correlated with its outcome.


class ToolRequestHandlers:
    """Answers tools/list and tools/call from the dispatcher, with logging."""

    def __init__(self, dispatcher: ToolDispatcher):
        self._dispatcher = dispatcher

    def install(self, mcp: FastMCP) -> None:
        handlers = mcp._mcp_server.request_handlers
        handlers[ListToolsRequest] = self.list_tools
        handlers[CallToolRequest] = self.call_tool

    async def list_tools(self, request: ListToolsRequest) -> ServerResult:
        tools = self._dispatcher.list_tools()
        logger.info(
            "Tools listed",
            extra={"log_data": {"event": "tool_list", "tools": [t.name for t in tools]}},
        )
        return ServerResult(ListToolsResult(tools=tools))

    async def call_tool(self, request: CallToolRequest) -> ServerResult:
        request_id = str(uuid.uuid4())[:8]
        tool_name = request.params.name
        started = time.perf_counter()

        try:
            result = await self._dispatcher.call_tool(tool_name, request.params.arguments)
        except McpError as exc:
            logger.warning(
                "Tool call failed",
                extra={
                    "log_data": {
                        "event": "tool_call",
                        "request_id": request_id,
                        "tool": tool_name,
                        "outcome": "error",
                        "code": exc.error.code,
                        "error": exc.error.message,
                        "duration_ms": _elapsed_ms(started),
                    }
                },
            )
            raise

        logger.info(
            "Tool call completed",
            extra={
                "log_data": {
                    "event": "tool_call",
                    "request_id": request_id,
                    "tool": tool_name,
                    "outcome": "success",
                    "duration_ms": _elapsed_ms(started),
                }
            },
        )
        return ServerResult(result)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 1)


# ---------------------------------------------------------------------------
# Server factory
# ---------------------------------------------------------------------------


def create_server(dispatcher: ToolDispatcher, token_provider: TokenProvider) -> FastMCP:
    """
    Build the FastMCP server around an already wired dispatcher.

    The token provider is only used by the readiness probe.
    """
    mcp = FastMCP(
        name=SERVER_NAME,
        version=SERVER_VERSION,
        instructions=(
            "Search French case law (Légifrance, JURI collection). "
            "Call searchLegifrance with a free-text query; the raw JSON search "
            "results are returned, newest decisions first, 10 per call."
        ),
    )
    ToolRequestHandlers(dispatcher).install(mcp)

    @mcp.resource(
        OPENAPI_RESOURCE_URI,
        name="legifrance_openapi",
        description="OpenAPI description of the Légifrance search operation.",
        mime_type="application/json",
    )
    def legifrance_openapi() -> str:
        return json.dumps(load_openapi_spec(), ensure_ascii=False)

    # -----------------------------------------------------------------------
    # Health and Readiness Endpoints
    # -----------------------------------------------------------------------
    # Plain HTTP endpoints (not MCP protocol) for container probes. Only
    # served by the streamable-http transport.

    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> Response:
        """Liveness probe: is the server process alive and responsive?"""
        return JSONResponse({"status": "healthy"})

    @mcp.custom_route("/ready", methods=["GET"])
    async def readiness_check(request: Request) -> Response:
        """Readiness probe: has the server authenticated with Légifrance?"""
        if not token_provider.has_token:
            return JSONResponse(
                {"status": "not_ready", "reason": "not authenticated"},
                status_code=503,
            )
        return JSONResponse({"status": "ready"})

    return mcp


# ---------------------------------------------------------------------------
# Server entry point
# ---------------------------------------------------------------------------


async def serve(settings: Settings) -> None:
    """Wire the components, authenticate once if configured, run the transport."""
    async with httpx.AsyncClient(timeout=settings.http_timeout) as http_client:
        token_provider = TokenProvider(settings, http_client)
        dispatcher = ToolDispatcher(settings, token_provider, http_client)
        mcp = create_server(dispatcher, token_provider)

        if settings.authenticate_on_startup:
            await token_provider.get_token()
            logger.info("Successfully authenticated with Legifrance API")

        if settings.transport == "stdio":
            logger.info("Legifrance MCP server running on stdio")
            await mcp.run_async(transport="stdio")
        else:
            logger.info(
                "Starting MCP server on %s:%d (transport=streamable-http)",
                settings.host,
                settings.port,
            )
            await mcp.run_async(
                transport="streamable-http",
                host=settings.host,
                port=settings.port,
                log_level=settings.log_level,
            )


def main() -> None:
    configure_logging()
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        logger.error("Failed to start Legifrance MCP server: %s", exc.message)
        sys.exit(1)

    configure_logging(settings.log_level)
    try:
        asyncio.run(serve(settings))
    except AuthenticationError as exc:
        logger.error(
            "Failed to start Legifrance MCP server: %s",
            exc.message,
            extra={"log_data": {"status": exc.status_code}},
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
