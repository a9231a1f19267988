"""Audit logging for the MCP server.

Logs all tool executions for debugging and traceability.
Captures: tool, arguments (redacted), timestamp, outcome, duration.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import aiofiles

from shared.logging import get_logger
from shared.models import (
    AuditEntry,
    ToolCall,
    ToolCallStatus,
    ToolDefinition,
)

logger = get_logger(__name__)


class AuditLogger:
    """
    Audit logger for MCP tool executions.

    Every execution is logged as a structured event. When a log path is
    configured, entries are also appended to that file as JSON lines.
    """

    # Argument keys that are never written to the audit log
    SENSITIVE_PARAMS = {"pass", "password", "token", "secret", "api_key", "apikey", "credential"}

    def __init__(
        self,
        log_path: Optional[str] = None,
        enabled: bool = True,
        buffer_size: int = 100
    ) -> None:
        self.log_path = Path(log_path) if log_path else None
        self.enabled = enabled
        self.buffer_size = buffer_size
        self._buffer: list[AuditEntry] = []
        self._lock = asyncio.Lock()

        if self.log_path:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def _redact_sensitive(self, params: dict[str, Any]) -> dict[str, Any]:
        """Redact sensitive arguments from audit entries."""
        redacted = {}
        for key, value in params.items():
            if key.lower() in self.SENSITIVE_PARAMS:
                redacted[key] = "[REDACTED]"
            elif isinstance(value, dict):
                redacted[key] = self._redact_sensitive(value)
            else:
                redacted[key] = value
        return redacted

    def create_entry(
        self,
        call: ToolCall,
        status: ToolCallStatus,
        tool: Optional[ToolDefinition] = None,
        error: Optional[str] = None,
        execution_time_ms: float = 0,
    ) -> AuditEntry:
        """
        Create an audit entry from tool execution data.

        Args:
            call: Tool call request
            status: Outcome of the call
            tool: Tool definition, None when the tool was not found
            error: Error message for failed calls
            execution_time_ms: Call duration

        Returns:
            Audit entry
        """
        return AuditEntry(
            id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            tool_name=call.tool_name,
            execution_type=tool.execution_type if tool else None,
            arguments=self._redact_sensitive(call.arguments),
            status=status,
            error=error,
            execution_time_ms=execution_time_ms,
            request_id=call.request_id,
        )

    async def log(
        self,
        call: ToolCall,
        status: ToolCallStatus,
        tool: Optional[ToolDefinition] = None,
        error: Optional[str] = None,
        execution_time_ms: float = 0,
    ) -> None:
        """Log a tool execution."""
        if not self.enabled:
            return

        entry = self.create_entry(call, status, tool, error, execution_time_ms)

        logger.info(
            "Tool executed",
            audit_id=entry.id,
            tool=entry.tool_name,
            status=entry.status.value,
            error=entry.error,
            execution_time_ms=round(entry.execution_time_ms, 2),
            request_id=entry.request_id,
        )

        if self.log_path is None:
            return

        async with self._lock:
            self._buffer.append(entry)

            if len(self._buffer) >= self.buffer_size:
                await self._flush()

    async def _flush(self) -> None:
        """Flush buffered entries to file."""
        if not self._buffer or self.log_path is None:
            return

        entries_to_write = self._buffer.copy()
        self._buffer.clear()

        try:
            async with aiofiles.open(self.log_path, "a") as f:
                for entry in entries_to_write:
                    await f.write(entry.model_dump_json() + "\n")
        except OSError as e:
            logger.error("Failed to write audit log", path=str(self.log_path), error=str(e))
            # Keep entries for the next flush
            self._buffer.extend(entries_to_write)

    async def flush(self) -> None:
        """Public method to flush audit buffer."""
        async with self._lock:
            await self._flush()
