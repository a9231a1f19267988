"""Tool Registry for the MCP server.

Manages registration, lookup and input validation of tools.
Tools are registered once at startup and never change afterwards.
"""

from typing import Any, Optional

from shared.logging import get_logger
from shared.models import ToolDefinition
from shared.schema import validate_schema

logger = get_logger(__name__)


class ToolError(Exception):
    """Base exception for registry and dispatch errors."""
    pass


class ToolNotFoundError(ToolError):
    """No tool with the requested name is registered."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool '{tool_name}' not found")
        self.tool_name = tool_name


class ToolValidationError(ToolError):
    """Tool arguments do not match the tool's input schema."""

    def __init__(self, tool_name: str, errors: list[str]) -> None:
        super().__init__(f"Invalid arguments for {tool_name}: {'; '.join(errors)}")
        self.tool_name = tool_name
        self.errors = errors


class ToolRegistry:
    """
    Central registry for all MCP tools.

    Responsibilities:
    - Register tools, rejecting duplicate names
    - Lookup tools by name
    - Validate tool arguments against their schemas
    - Describe tools for the MCP ``tools/list`` request
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self._tools

    def register(self, tool: ToolDefinition) -> None:
        """
        Register a tool in the registry.

        Args:
            tool: Tool definition to register

        Raises:
            ValueError: If the tool name is already registered or the tool
                has no handler
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")

        if tool.handler is None:
            raise ValueError(f"Tool '{tool.name}' has no handler")

        self._tools[tool.name] = tool

        logger.debug(
            "Tool registered",
            tool=tool.name,
            execution_type=tool.execution_type.value
        )

    def register_many(self, tools: list[ToolDefinition]) -> None:
        """Register multiple tools at once."""
        for tool in tools:
            self.register(tool)

    def get(self, tool_name: str) -> Optional[ToolDefinition]:
        """
        Get a tool by its name.

        Args:
            tool_name: Registered tool name

        Returns:
            ToolDefinition if found, None otherwise
        """
        return self._tools.get(tool_name)

    def list_tools(self, tag: Optional[str] = None) -> list[ToolDefinition]:
        """
        List all registered tools in registration order.

        Args:
            tag: Only return tools carrying this tag

        Returns:
            List of tool definitions
        """
        tools = list(self._tools.values())

        if tag:
            tools = [t for t in tools if tag in t.tags]

        return tools

    def validate_input(
        self,
        tool_name: str,
        arguments: dict[str, Any]
    ) -> tuple[bool, list[str]]:
        """
        Validate arguments against a tool's input schema.

        Args:
            tool_name: Registered tool name
            arguments: Arguments to validate

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        tool = self.get(tool_name)
        if not tool:
            return False, [f"Tool '{tool_name}' not found"]

        return validate_schema(arguments, tool.input_schema)

    def get_tools_for_mcp(self) -> list[dict[str, Any]]:
        """
        Describe all tools for the MCP ``tools/list`` response.

        Returns:
            List of dicts with name, description and inputSchema
        """
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "inputSchema": tool.input_schema or {
                    "type": "object",
                    "properties": {},
                    "required": []
                }
            }
            for tool in self._tools.values()
        ]
