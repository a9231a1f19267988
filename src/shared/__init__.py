"""Shared utilities and data models for the Simple-API MCP server."""

from shared.models import (
    AuthStrategy,
    RequestSpec,
    ToolCall,
    ToolDefinition,
    ToolParameter,
    ToolResult,
)
from shared.config import Settings, load_settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "AuthStrategy",
    "RequestSpec",
    "ToolCall",
    "ToolDefinition",
    "ToolParameter",
    "ToolResult",
    "Settings",
    "load_settings",
    "get_logger",
    "setup_logging",
]
