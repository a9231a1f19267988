"""MCP Server - Tool registry, dispatch and auditing.

The MCP server registers tools, validates arguments, routes calls to their
handlers and audits all executions.
"""

from mcp_server.registry import (
    ToolError,
    ToolNotFoundError,
    ToolRegistry,
    ToolValidationError,
)
from mcp_server.router import ToolRouter
from mcp_server.audit import AuditLogger

__all__ = [
    "ToolRegistry",
    "ToolRouter",
    "ToolError",
    "ToolNotFoundError",
    "ToolValidationError",
    "AuditLogger",
]
