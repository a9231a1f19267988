"""ioBroker Simple API domain.

Contains:
- Authentication strategy resolution
- The HTTP request executor
- Tool definitions and handlers
- The static usage guide tool
"""

from typing import TYPE_CHECKING

from shared.logging import get_logger
from simple_api.auth import resolve_auth
from simple_api.client import (
    OperationFailed,
    SimpleAPIClient,
    SimpleAPIError,
    TransportError,
    UpstreamBodyError,
)
from simple_api.docs import docs_tool
from simple_api.tools import SimpleAPIAdapter

if TYPE_CHECKING:
    from mcp_server.registry import ToolRegistry

logger = get_logger(__name__)


def register_simple_api(
    registry: "ToolRegistry",
    client: SimpleAPIClient,
    include_docs: bool = True,
) -> SimpleAPIAdapter:
    """
    Register the Simple API tools with a registry.

    Registering twice into the same registry raises ValueError, since tool
    names must be unique.
    """
    adapter = SimpleAPIAdapter(client)

    if include_docs:
        registry.register(docs_tool())
    registry.register_many(adapter.tools)

    logger.info(
        "Simple API tools registered",
        tool_count=len(adapter.tools) + int(include_docs),
        host=client.host,
        auth_type=client.auth.type,
    )
    return adapter


__all__ = [
    "OperationFailed",
    "SimpleAPIAdapter",
    "SimpleAPIClient",
    "SimpleAPIError",
    "TransportError",
    "UpstreamBodyError",
    "docs_tool",
    "register_simple_api",
    "resolve_auth",
]
