"""Tests for MCP Server components."""

import json
import uuid

import httpx
import mcp.types as types
import pytest

from shared.config import Settings
from shared.models import (
    ExecutionType,
    JsonContent,
    ToolCall,
    ToolCallStatus,
    ToolDefinition,
    ToolParameter,
    ToolResult,
)
from shared.schema import create_tool_schema


async def echo_handler(arguments):
    return ToolResult.json_data("echo", arguments)


def make_tool(name: str = "echo", handler=echo_handler, **kwargs) -> ToolDefinition:
    parameters = [ToolParameter(name="stateID", type="string", description="State ID")]
    return ToolDefinition(
        name=name,
        description="Echo the arguments",
        parameters=parameters,
        input_schema=create_tool_schema(parameters),
        handler=handler,
        **kwargs,
    )


def make_call(tool_name: str, **arguments) -> ToolCall:
    return ToolCall(tool_name=tool_name, arguments=arguments, request_id=str(uuid.uuid4()))


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate settings from the developer's environment and config files."""
    for name in ("IOB_HOST", "IOB_AUTH_TYPE", "IOB_USER", "IOB_PASS", "IOB_TOKEN",
                 "IOB_TIMEOUT", "IOB_ENABLE_DOCS_TOOL", "IOB_AUDIT_LOG_PATH", "IOB_CONFIG_PATH"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class Backend:
    def __init__(self, status_code: int = 200, json_body=None, text: str = "true") -> None:
        self.status_code = status_code
        self.json_body = json_body
        self.text = text
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.json_body is not None:
            return httpx.Response(self.status_code, json=self.json_body)
        return httpx.Response(self.status_code, text=self.text)


def make_router(backend, audit_logger=None, **settings_kwargs):
    from mcp_server.main import create_router

    settings = Settings(host="http://iobroker:8082", **settings_kwargs)
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(backend))
    return create_router(settings, http_client=http_client, audit_logger=audit_logger)


class TestToolRegistry:
    """Tests for the ToolRegistry."""

    def test_register_tool(self):
        """Test registering a tool."""
        from mcp_server.registry import ToolRegistry

        registry = ToolRegistry()
        registry.register(make_tool())

        assert registry.get("echo") is not None
        assert "echo" in registry
        assert len(registry) == 1

    def test_register_duplicate_tool_raises(self):
        """Test that registering duplicate tool raises error."""
        from mcp_server.registry import ToolRegistry

        registry = ToolRegistry()
        registry.register(make_tool())

        with pytest.raises(ValueError, match="already registered"):
            registry.register(make_tool())

    def test_register_without_handler_raises(self):
        from mcp_server.registry import ToolRegistry

        registry = ToolRegistry()

        with pytest.raises(ValueError, match="no handler"):
            registry.register(make_tool(handler=None))

    def test_list_tools_keeps_order_and_filters_by_tag(self):
        from mcp_server.registry import ToolRegistry

        registry = ToolRegistry()
        registry.register_many([
            make_tool("b", tags=["states"]),
            make_tool("a", tags=["objects"]),
            make_tool("c", tags=["states"]),
        ])

        assert [t.name for t in registry.list_tools()] == ["b", "a", "c"]
        assert [t.name for t in registry.list_tools(tag="states")] == ["b", "c"]

    def test_validate_input(self):
        """Test input validation against schema."""
        from mcp_server.registry import ToolRegistry

        registry = ToolRegistry()
        registry.register(make_tool())

        is_valid, errors = registry.validate_input("echo", {"stateID": "a.b"})
        assert is_valid
        assert errors == []

        is_valid, errors = registry.validate_input("echo", {})
        assert not is_valid
        assert "'stateID' is a required property" in errors[0]

        is_valid, errors = registry.validate_input("echo", {"stateID": 5})
        assert not is_valid
        assert errors[0].startswith("stateID:")

    def test_get_tools_for_mcp(self):
        from mcp_server.registry import ToolRegistry

        registry = ToolRegistry()
        registry.register(make_tool())

        (described,) = registry.get_tools_for_mcp()

        assert described["name"] == "echo"
        assert described["description"] == "Echo the arguments"
        assert described["inputSchema"]["required"] == ["stateID"]

    def test_simple_api_registration(self):
        """All Simple API tools plus the usage guide are registered."""
        from mcp_server.registry import ToolRegistry
        from simple_api import SimpleAPIClient, register_simple_api

        registry = ToolRegistry()
        register_simple_api(registry, SimpleAPIClient("http://iobroker:8082"))

        assert len(registry) == 12
        assert registry.list_tools()[0].name == "api-docs"
        assert {t.name for t in registry.list_tools() if t.execution_type == ExecutionType.WRITE} == {
            "setState",
            "toggleState",
            "setBulkStates",
        }

        with pytest.raises(ValueError, match="already registered"):
            register_simple_api(registry, SimpleAPIClient("http://iobroker:8082"))

    def test_simple_api_registration_without_docs(self):
        from mcp_server.registry import ToolRegistry
        from simple_api import SimpleAPIClient, register_simple_api

        registry = ToolRegistry()
        register_simple_api(registry, SimpleAPIClient("http://iobroker:8082"), include_docs=False)

        assert len(registry) == 11
        assert "api-docs" not in registry


class TestToolRouter:
    """Tests for the ToolRouter."""

    @pytest.mark.asyncio
    async def test_execute_success(self):
        from mcp_server.registry import ToolRegistry
        from mcp_server.router import ToolRouter

        registry = ToolRegistry()
        registry.register(make_tool())
        router = ToolRouter(registry)

        result = await router.execute(make_call("echo", stateID="a.b"))

        assert result.content == [JsonContent(data={"stateID": "a.b"})]
        assert result.execution_time_ms >= 0

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        from mcp_server.registry import ToolNotFoundError, ToolRegistry
        from mcp_server.router import ToolRouter

        router = ToolRouter(ToolRegistry())

        with pytest.raises(ToolNotFoundError, match="nope"):
            await router.execute(make_call("nope"))

    @pytest.mark.asyncio
    async def test_invalid_arguments_skip_handler(self):
        from mcp_server.registry import ToolRegistry, ToolValidationError
        from mcp_server.router import ToolRouter

        called = []

        async def handler(arguments):
            called.append(arguments)
            return ToolResult.text("echo", "ok")

        registry = ToolRegistry()
        registry.register(make_tool(handler=handler))
        router = ToolRouter(registry)

        with pytest.raises(ToolValidationError) as exc_info:
            await router.execute(make_call("echo"))

        assert exc_info.value.tool_name == "echo"
        assert called == []

    @pytest.mark.asyncio
    async def test_invalid_arguments_send_no_request(self, clean_env):
        from mcp_server.registry import ToolValidationError

        backend = Backend()
        router = make_router(backend)

        with pytest.raises(ToolValidationError):
            await router.execute(make_call("setState", stateID="light.kitchen"))

        with pytest.raises(ToolValidationError):
            await router.execute(make_call("setState", stateID="light.kitchen", value=[1]))

        with pytest.raises(ToolValidationError):
            await router.execute(make_call("getObjects", pattern="*", type="gadget"))

        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_handler_error_is_reraised_and_audited(self, tmp_path):
        from mcp_server.audit import AuditLogger
        from mcp_server.registry import ToolRegistry
        from mcp_server.router import ToolRouter

        async def failing(arguments):
            raise RuntimeError("backend exploded")

        audit_path = tmp_path / "audit.jsonl"
        registry = ToolRegistry()
        registry.register(make_tool(handler=failing))
        router = ToolRouter(registry, AuditLogger(log_path=str(audit_path)))

        with pytest.raises(RuntimeError, match="backend exploded"):
            await router.execute(make_call("echo", stateID="a"))
        await router.audit_logger.flush()

        (line,) = audit_path.read_text().splitlines()
        entry = json.loads(line)
        assert entry["status"] == ToolCallStatus.ERROR.value
        assert entry["error"] == "backend exploded"

    @pytest.mark.asyncio
    async def test_concurrent_calls_are_independent(self, clean_env):
        import asyncio

        backend = Backend(json_body={"val": 1})
        router = make_router(backend)

        results = await asyncio.gather(*[
            router.execute(make_call("getState", stateID=f"state.{i}")) for i in range(5)
        ])

        assert len(results) == 5
        paths = sorted(r.url.raw_path.decode() for r in backend.requests)
        assert paths == [f"/get/state.{i}" for i in range(5)]


class TestAuditLogger:
    """Tests for the AuditLogger."""

    def test_redact_sensitive(self):
        from mcp_server.audit import AuditLogger

        audit = AuditLogger()
        redacted = audit._redact_sensitive({
            "stateID": "a",
            "pass": "secret",
            "nested": {"Token": "t", "value": 1},
        })

        assert redacted == {
            "stateID": "a",
            "pass": "[REDACTED]",
            "nested": {"Token": "[REDACTED]", "value": 1},
        }

    def test_create_entry(self):
        from mcp_server.audit import AuditLogger

        audit = AuditLogger()
        call = make_call("setState", stateID="a", value=1)
        entry = audit.create_entry(call, ToolCallStatus.SUCCESS, make_tool(
            "setState", execution_type=ExecutionType.WRITE
        ), execution_time_ms=3.5)

        assert entry.tool_name == "setState"
        assert entry.execution_type == ExecutionType.WRITE
        assert entry.request_id == call.request_id
        assert entry.execution_time_ms == 3.5
        assert entry.timestamp.tzinfo is not None

    @pytest.mark.asyncio
    async def test_writes_json_lines(self, tmp_path):
        from mcp_server.audit import AuditLogger

        audit_path = tmp_path / "logs" / "audit.jsonl"
        audit = AuditLogger(log_path=str(audit_path), buffer_size=2)

        await audit.log(make_call("echo", stateID="a"), ToolCallStatus.SUCCESS)
        assert not audit_path.exists()

        await audit.log(make_call("nope"), ToolCallStatus.NOT_FOUND, error="Tool 'nope' not found")

        lines = audit_path.read_text().splitlines()
        assert [json.loads(line)["status"] for line in lines] == ["success", "not_found"]

    @pytest.mark.asyncio
    async def test_disabled(self, tmp_path):
        from mcp_server.audit import AuditLogger

        audit_path = tmp_path / "audit.jsonl"
        audit = AuditLogger(log_path=str(audit_path), enabled=False)

        await audit.log(make_call("echo"), ToolCallStatus.SUCCESS)
        await audit.flush()

        assert not audit_path.exists()


class TestRenderContent:
    """Tests for MCP content conversion."""

    def test_json_serialized(self):
        from mcp_server.main import render_content

        blocks = render_content(ToolResult.json_data("getState", {"val": "Küche", "ack": True}))

        assert blocks == [types.TextContent(type="text", text='{"val": "Küche", "ack": true}')]

    def test_text_passed_through(self):
        from mcp_server.main import render_content

        blocks = render_content(ToolResult.text("getPlainValue", '"on"'))

        assert blocks[0].text == '"on"'

    def test_identical_results_render_identically(self):
        from mcp_server.main import render_content

        data = {"b": [1, 2], "a": {"x": None}}
        first = render_content(ToolResult.json_data("getStates", data))
        second = render_content(ToolResult.json_data("getStates", data))

        assert first == second


class TestMCPServer:
    """Tests for the MCP protocol binding."""

    def test_supported_sdk_version(self):
        """The server is built on the 1.x low-level decorator API."""
        from importlib.metadata import version

        assert int(version("mcp").split(".")[0]) == 1

    @pytest.mark.asyncio
    async def test_invalid_arguments_are_audited(self, clean_env, tmp_path):
        from mcp_server.audit import AuditLogger
        from mcp_server.main import create_server

        audit_path = tmp_path / "audit.jsonl"
        audit_logger = AuditLogger(log_path=str(audit_path))
        backend = Backend()
        router = make_router(backend, audit_logger=audit_logger)
        server = create_server(router)

        result = await server.request_handlers[types.CallToolRequest](
            types.CallToolRequest(
                method="tools/call",
                params=types.CallToolRequestParams(
                    name="setState", arguments={"stateID": "light.kitchen"}
                ),
            )
        )
        await audit_logger.flush()

        assert result.root.isError
        assert "Invalid arguments for setState" in result.root.content[0].text
        assert backend.requests == []
        (line,) = audit_path.read_text().splitlines()
        assert json.loads(line)["status"] == ToolCallStatus.VALIDATION_ERROR.value

    def test_invalid_configuration_exits(self, clean_env, monkeypatch):
        from mcp_server.main import main

        monkeypatch.setattr("mcp_server.main.setup_logging", lambda *args, **kwargs: None)

        with pytest.raises(SystemExit) as exc_info:
            main(["--timeout=abc"])

        assert exc_info.value.code == 1

    @pytest.mark.asyncio
    async def test_list_tools(self, clean_env):
        from mcp_server.main import create_server

        server = create_server(make_router(Backend()))

        result = await server.request_handlers[types.ListToolsRequest](
            types.ListToolsRequest(method="tools/list")
        )

        tools = {tool.name: tool for tool in result.root.tools}
        assert len(tools) == 12
        assert tools["getObjects"].inputSchema["required"] == ["pattern"]

    @pytest.mark.asyncio
    async def test_call_tool(self, clean_env):
        from mcp_server.main import create_server

        backend = Backend(json_body={"val": 21.5, "ack": True})
        server = create_server(make_router(backend, auth_type="query", user="a", password="b"))

        result = await server.request_handlers[types.CallToolRequest](
            types.CallToolRequest(
                method="tools/call",
                params=types.CallToolRequestParams(
                    name="getState", arguments={"stateID": "hm-rpc.0.temp"}
                ),
            )
        )

        assert not result.root.isError
        assert json.loads(result.root.content[0].text) == {"val": 21.5, "ack": True}
        assert backend.requests[0].url.raw_path == b"/get/hm-rpc.0.temp?user=a&pass=b"

    @pytest.mark.asyncio
    async def test_call_tool_failure_is_error_result(self, clean_env):
        from mcp_server.main import create_server

        server = create_server(make_router(Backend(status_code=404)))

        result = await server.request_handlers[types.CallToolRequest](
            types.CallToolRequest(
                method="tools/call",
                params=types.CallToolRequestParams(
                    name="toggleState", arguments={"stateID": "light.kitchen"}
                ),
            )
        )

        assert result.root.isError
        assert "light.kitchen" in result.root.content[0].text

    @pytest.mark.asyncio
    async def test_api_docs(self, clean_env):
        from mcp_server.main import create_server

        backend = Backend()
        server = create_server(make_router(backend))

        result = await server.request_handlers[types.CallToolRequest](
            types.CallToolRequest(
                method="tools/call",
                params=types.CallToolRequestParams(name="api-docs", arguments={}),
            )
        )

        assert not result.root.isError
        assert "Relative Time Patterns" in result.root.content[0].text
        assert backend.requests == []
