"""Tool Router for the MCP server.

Dispatches tool calls to their handlers.
Handles lookup, validation, timing and auditing.
"""

import time
from typing import Optional

from shared.logging import bind_context, clear_context, get_logger
from shared.models import ToolCall, ToolCallStatus, ToolResult
from mcp_server.audit import AuditLogger
from mcp_server.registry import ToolNotFoundError, ToolRegistry, ToolValidationError

logger = get_logger(__name__)


class ToolRouter:
    """
    Routes tool calls to the registered handlers.

    Responsibilities:
    - Reject unknown tools
    - Validate arguments before any handler runs
    - Execute the handler
    - Audit all executions

    Failures are audited and then re-raised unchanged; the MCP layer turns
    them into error results.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        audit_logger: Optional[AuditLogger] = None
    ) -> None:
        self.registry = registry
        self.audit_logger = audit_logger or AuditLogger(enabled=False)

    async def execute(self, call: ToolCall) -> ToolResult:
        """
        Execute a tool call.

        Args:
            call: Tool call request

        Returns:
            Tool execution result

        Raises:
            ToolNotFoundError: If no tool has the requested name
            ToolValidationError: If the arguments do not match the schema
            Exception: Whatever the handler raised
        """
        start_time = time.perf_counter()
        tool_name = call.tool_name

        bind_context(request_id=call.request_id, tool=tool_name)
        try:
            logger.debug("Executing tool")

            tool = self.registry.get(tool_name)
            if not tool:
                error = ToolNotFoundError(tool_name)
                await self.audit_logger.log(call, ToolCallStatus.NOT_FOUND, error=str(error))
                raise error

            is_valid, errors = self.registry.validate_input(tool_name, call.arguments)
            if not is_valid:
                error = ToolValidationError(tool_name, errors)
                await self.audit_logger.log(
                    call, ToolCallStatus.VALIDATION_ERROR, tool, error=str(error)
                )
                raise error

            try:
                result = await tool.handler(call.arguments)
            except Exception as e:
                elapsed = (time.perf_counter() - start_time) * 1000
                logger.error("Tool execution failed", error=str(e), error_type=type(e).__name__)
                await self.audit_logger.log(
                    call, ToolCallStatus.ERROR, tool, error=str(e), execution_time_ms=elapsed
                )
                raise

            result.execution_time_ms = (time.perf_counter() - start_time) * 1000
            await self.audit_logger.log(
                call, ToolCallStatus.SUCCESS, tool, execution_time_ms=result.execution_time_ms
            )
            return result
        finally:
            clear_context()
