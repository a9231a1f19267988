"""Core data models for the Simple-API MCP server.

This module defines the shared data structures used across the server:
authentication strategies, tool definitions, tool results and the
transient request description handed to the HTTP layer.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Awaitable, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class AuthType(str, Enum):
    """Authentication strategies understood by the Simple API."""
    NONE = "none"
    QUERY = "query"
    BASIC = "basic"
    BEARER = "bearer"


class NoAuth(BaseModel):
    """Unauthenticated access."""
    model_config = ConfigDict(frozen=True)

    type: Literal["none"] = "none"


class QueryAuth(BaseModel):
    """Credentials sent as ``user``/``pass`` query parameters."""
    model_config = ConfigDict(frozen=True)

    type: Literal["query"] = "query"
    user: str
    password: str = Field(repr=False)


class BasicAuth(BaseModel):
    """Credentials sent as an ``Authorization: Basic`` header."""
    model_config = ConfigDict(frozen=True)

    type: Literal["basic"] = "basic"
    user: str
    password: str = Field(repr=False)


class BearerAuth(BaseModel):
    """Token sent as an ``Authorization: Bearer`` header."""
    model_config = ConfigDict(frozen=True)

    type: Literal["bearer"] = "bearer"
    token: str = Field(repr=False)


AuthStrategy = Annotated[
    Union[NoAuth, QueryAuth, BasicAuth, BearerAuth],
    Field(discriminator="type"),
]


class ExecutionType(str, Enum):
    """Type of tool execution - read operations vs write operations."""
    READ = "read"
    WRITE = "write"


class ToolParameter(BaseModel):
    """
    Definition of a single tool parameter.

    ``type`` is a JSON Schema type name, or a list of names for a union
    (e.g. ``["string", "number", "boolean"]``).
    """
    model_config = ConfigDict(frozen=True)

    name: str
    type: Union[str, list[str]]
    description: str
    required: bool = True
    enum: Optional[list[Any]] = None
    items: Optional[dict[str, Any]] = None
    additional_properties: Optional[dict[str, Any]] = None


class TextContent(BaseModel):
    """Plain text content item."""
    type: Literal["text"] = "text"
    text: str


class JsonContent(BaseModel):
    """Structured JSON content item."""
    type: Literal["json"] = "json"
    data: Any = None


ContentItem = Annotated[Union[TextContent, JsonContent], Field(discriminator="type")]


class ToolResult(BaseModel):
    """
    Result of a tool execution.

    Failures are raised, never returned, so a ToolResult always
    represents a successful call.
    """
    tool_name: str
    content: list[ContentItem] = Field(default_factory=list)
    execution_time_ms: float = 0

    @classmethod
    def text(cls, tool_name: str, text: str) -> "ToolResult":
        return cls(tool_name=tool_name, content=[TextContent(text=text)])

    @classmethod
    def json_data(cls, tool_name: str, data: Any) -> "ToolResult":
        return cls(tool_name=tool_name, content=[JsonContent(data=data)])


ToolHandler = Callable[[dict[str, Any]], Awaitable[ToolResult]]


class ToolDefinition(BaseModel):
    """
    Complete definition of an MCP tool.

    Tools are declarative and registered once. The handler receives the
    validated arguments and returns a ToolResult.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., description="Unique tool name")
    description: str = Field(..., description="Clear description for LLM usage")
    version: str = Field(default="1.0.0")

    parameters: list[ToolParameter] = Field(default_factory=list)
    input_schema: dict[str, Any] = Field(
        default_factory=dict,
        description="JSON Schema for input validation"
    )

    execution_type: ExecutionType = Field(default=ExecutionType.READ)
    tags: list[str] = Field(default_factory=list)

    handler: Optional[ToolHandler] = Field(default=None, exclude=True, repr=False)


class RequestSpec(BaseModel):
    """A single outbound request to the Simple API."""
    model_config = ConfigDict(frozen=True)

    host: str
    path: str
    method: Literal["GET", "POST"] = "GET"
    body: Optional[Any] = None
    auth: AuthStrategy = Field(default_factory=NoAuth)


class ToolCall(BaseModel):
    """A request to execute a specific tool."""
    tool_name: str = Field(..., description="Registered tool name")
    arguments: dict[str, Any] = Field(default_factory=dict)
    request_id: str = Field(..., description="Unique request identifier")


class ToolCallStatus(str, Enum):
    """Outcome of a tool call, as recorded by the audit log."""
    SUCCESS = "success"
    ERROR = "error"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"


class AuditEntry(BaseModel):
    """
    Audit log entry for tool executions.

    Captures tool, arguments, timestamp and outcome.
    """
    id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    tool_name: str
    execution_type: Optional[ExecutionType] = None
    arguments: dict[str, Any] = Field(default_factory=dict)

    status: ToolCallStatus
    error: Optional[str] = None
    execution_time_ms: float = 0

    request_id: str
