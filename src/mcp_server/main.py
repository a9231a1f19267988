"""MCP Server - stdio entrypoint.

Exposes the registered tools over the Model Context Protocol. The server has
no tool logic of its own: it lists tools from the registry and hands every
call to the router.
"""

import asyncio
import json
import sys
import uuid
from typing import Any, Optional, Sequence

import httpx
import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from pydantic import ValidationError

from shared.config import Settings, load_settings
from shared.logging import get_logger, setup_logging
from shared.models import JsonContent, ToolCall, ToolResult
from mcp_server.audit import AuditLogger
from mcp_server.registry import ToolRegistry
from mcp_server.router import ToolRouter
from simple_api import SimpleAPIClient, register_simple_api, resolve_auth

logger = get_logger(__name__)

SERVER_NAME = "iobroker-simple-api-mcp-server"
SERVER_VERSION = "1.0.0"


def render_content(result: ToolResult) -> list[types.TextContent]:
    """
    Convert a ToolResult into MCP content blocks.

    MCP has no JSON block type, so JSON content is sent as its serialized
    text. Text content is passed through unchanged.
    """
    blocks = []
    for item in result.content:
        if isinstance(item, JsonContent):
            text = json.dumps(item.data, ensure_ascii=False)
        else:
            text = item.text
        blocks.append(types.TextContent(type="text", text=text))
    return blocks


def create_server(router: ToolRouter) -> Server:
    """Create the MCP server bound to a router and its registry."""
    server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [types.Tool(**tool) for tool in router.registry.get_tools_for_mcp()]

    # The registry validates arguments so rejected calls are audited
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Optional[dict[str, Any]]) -> list[types.TextContent]:
        call = ToolCall(
            tool_name=name,
            arguments=arguments or {},
            request_id=str(uuid.uuid4()),
        )
        result = await router.execute(call)
        return render_content(result)

    return server


def create_router(
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> ToolRouter:
    """
    Wire settings, authentication and tools into a router.

    Args:
        settings: Process settings
        http_client: HTTP client for the Simple API; one is created when omitted
        audit_logger: Audit logger; built from settings when omitted

    Returns:
        Router with all tools registered
    """
    auth = resolve_auth(
        settings.auth_type,
        settings.user,
        settings.password,
        settings.token,
    )
    client = SimpleAPIClient(
        settings.host,
        auth,
        http_client=http_client,
        timeout=settings.http_timeout,
    )

    registry = ToolRegistry()
    register_simple_api(registry, client, include_docs=settings.enable_docs_tool)

    return ToolRouter(
        registry=registry,
        audit_logger=audit_logger or AuditLogger(log_path=settings.audit_log_path),
    )


async def serve(settings: Settings) -> None:
    """Run the MCP server on stdio until the client disconnects."""
    audit_logger = AuditLogger(log_path=settings.audit_log_path)

    async with httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout)) as http_client:
        router = create_router(settings, http_client=http_client, audit_logger=audit_logger)
        server = create_server(router)

        logger.info(
            "Starting MCP server",
            name=SERVER_NAME,
            host=settings.host,
            tool_count=len(router.registry),
        )

        try:
            async with stdio_server() as (read_stream, write_stream):
                await server.run(
                    read_stream,
                    write_stream,
                    server.create_initialization_options(),
                )
        finally:
            logger.info("Shutting down MCP server")
            await audit_logger.flush()


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Run the MCP server."""
    try:
        settings = load_settings(sys.argv[1:] if argv is None else argv)
    except ValidationError as e:
        setup_logging()
        logger.critical("Invalid configuration", error=str(e))
        sys.exit(1)

    setup_logging(settings.log_level, json_output=settings.json_logs)

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.critical("Fatal error in MCP server", error=str(e), exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
