"""ioBroker Simple API tools.

Maps each tool to a single Simple API request:
- Tool definitions with parameter schemas and descriptions
- Handlers building the request path from validated arguments
- Response shaping into text or JSON content
"""

import json
from typing import Any, Optional
from urllib.parse import quote

import httpx

from shared.logging import get_logger
from shared.models import (
    ExecutionType,
    ToolDefinition,
    ToolHandler,
    ToolParameter,
    ToolResult,
)
from shared.schema import create_tool_schema
from simple_api.client import OperationFailed, SimpleAPIClient, UpstreamBodyError
from simple_api.docs import OBJECT_TYPES, RELATIVE_TIME_HELP

logger = get_logger(__name__)

# Characters encodeURIComponent leaves alone besides the unreserved set
URI_COMPONENT_SAFE = "!*'()"

STATE_VALUE_TYPES = ["string", "number", "boolean"]


def encode_component(value: Any, safe: str = URI_COMPONENT_SAFE) -> str:
    """Percent-encode a value for use in a path segment or query value."""
    return quote(format_value(value), safe=safe)


def format_value(value: Any) -> str:
    """Render a scalar the way ioBroker expects it in a URL."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_query(params: list[tuple[str, Any]]) -> str:
    """Build a query string, skipping parameters whose value is None."""
    return "&".join(
        f"{name}={encode_component(value)}" for name, value in params if value is not None
    )


class SimpleAPIAdapter:
    """
    Simple API adapter.

    Provides tools for:
    - Reading and writing single states
    - Bulk reads and writes
    - Object, enum and state discovery by pattern
    - History search and queries

    All handlers share one SimpleAPIClient, and with it the host and
    authentication strategy.
    """

    def __init__(self, client: SimpleAPIClient) -> None:
        self.client = client
        self._tools: dict[str, ToolDefinition] = {}
        self._define_tools()

    @property
    def tools(self) -> list[ToolDefinition]:
        """Return all tool definitions, in registration order."""
        return list(self._tools.values())

    def get_tool(self, name: str) -> Optional[ToolDefinition]:
        """Get a tool definition by name."""
        return self._tools.get(name)

    def _add_tool(
        self,
        name: str,
        description: str,
        parameters: list[ToolParameter],
        handler: ToolHandler,
        execution_type: ExecutionType = ExecutionType.READ,
        tags: Optional[list[str]] = None,
    ) -> None:
        self._tools[name] = ToolDefinition(
            name=name,
            description=description,
            parameters=parameters,
            input_schema=create_tool_schema(parameters),
            execution_type=execution_type,
            tags=tags or [],
            handler=handler,
        )

    def _define_tools(self) -> None:
        """Define all Simple API tools."""

        self._add_tool(
            "getPlainValue",
            """This function retrieves the plain value of a specific ioBroker state.

Parameters:
  - stateID (string): The ID of the state to retrieve.

The function returns the plain value of the specified state.""",
            [
                ToolParameter(
                    name="stateID",
                    type="string",
                    description="The ID of the state to retrieve the plain value for.",
                ),
            ],
            self._get_plain_value,
            tags=["states"],
        )

        self._add_tool(
            "getState",
            """This function retrieves the value and additional information of a specific ioBroker state.

Parameters:
  - stateID (string): The ID of the state to retrieve.

The function returns the value and additional information of the specified state in JSON format.""",
            [
                ToolParameter(
                    name="stateID",
                    type="string",
                    description="The ID of the state to retrieve.",
                ),
            ],
            self._get_state,
            tags=["states"],
        )

        self._add_tool(
            "setState",
            """This function sets the value of a specific ioBroker state.

Parameters:
  - stateID (string): The ID of the state to set.
  - value (string | number | boolean): The value to set for the state.

The function returns true if the value was successfully set.""",
            [
                ToolParameter(
                    name="stateID",
                    type="string",
                    description="The ID of the state to set.",
                ),
                ToolParameter(
                    name="value",
                    type=STATE_VALUE_TYPES,
                    description="The value to set for the state.",
                ),
            ],
            self._set_state,
            execution_type=ExecutionType.WRITE,
            tags=["states"],
        )

        self._add_tool(
            "toggleState",
            """This function toggles the value of a specific ioBroker state (e.g., switches between true and false).

Parameters:
  - stateID (string): The ID of the state to toggle.

The function returns true if the state was successfully toggled.""",
            [
                ToolParameter(
                    name="stateID",
                    type="string",
                    description="The ID of the state to toggle.",
                ),
            ],
            self._toggle_state,
            execution_type=ExecutionType.WRITE,
            tags=["states"],
        )

        self._add_tool(
            "getBulkStates",
            """This function retrieves the values and additional information for multiple ioBroker states.

Parameters:
  - stateIDs (string): A comma-separated list of state IDs to retrieve.

The function returns the values and additional information for the specified states in JSON format.""",
            [
                ToolParameter(
                    name="stateIDs",
                    type="string",
                    description="A comma-separated list of state IDs to retrieve.",
                ),
            ],
            self._get_bulk_states,
            tags=["states", "bulk"],
        )

        self._add_tool(
            "setBulkStates",
            """This function sets the values of multiple ioBroker states.

Parameters:
  - states (object): A JSON object where the keys are state IDs and the values are the values to set.

The function returns true if the values were successfully set.""",
            [
                ToolParameter(
                    name="states",
                    type="object",
                    description=(
                        "A JSON object where the keys are state IDs and the values "
                        "are the values to set."
                    ),
                    additional_properties={"type": STATE_VALUE_TYPES},
                ),
            ],
            self._set_bulk_states,
            execution_type=ExecutionType.WRITE,
            tags=["states", "bulk"],
        )

        self._add_tool(
            "getStates",
            """This function retrieves the values and additional information for ioBroker states that match a specific pattern.

Parameters:
  - pattern (string): A pattern to match state IDs (e.g., *.state).

The function returns the values and additional information for the matching states in JSON format.""",
            [
                ToolParameter(
                    name="pattern",
                    type="string",
                    description="A pattern to match state IDs (e.g., *.state).",
                ),
            ],
            self._get_states,
            tags=["states"],
        )

        self._add_tool(
            "getEnums",
            """This function retrieves all enums from the ioBroker system.

The function uses the pattern "enum.*" and ensures that only objects of type "enum" are returned.

The function returns all enums in JSON format.""",
            [],
            self._get_enums,
            tags=["objects"],
        )

        self._add_tool(
            "getObjects",
            """This function retrieves ioBroker objects that match a specific pattern and optionally filters them by type.

Parameters:
  - pattern (string): A pattern to match object IDs (e.g., *.object).
  - type (string, optional): An optional type to filter objects. Available types include:
    - state, channel, device, enum, adapter, instance, host, meta, config, script, user, group.

The function returns the objects matching the pattern and type in JSON format.""",
            [
                ToolParameter(
                    name="pattern",
                    type="string",
                    description="A pattern to match object IDs (e.g., *.object).",
                ),
                ToolParameter(
                    name="type",
                    type="string",
                    required=False,
                    enum=OBJECT_TYPES,
                    description="""An optional type to filter objects. Available types:
  - state: Represents a single value or property.
  - channel: Groups related states together.
  - device: Represents a physical or virtual device.
  - enum: Represents a category or group of objects.
  - adapter: Represents an ioBroker adapter instance.
  - instance: Represents a specific instance of an adapter.
  - host: Represents the ioBroker host system.
  - meta: Represents metadata, such as files or auxiliary data.
  - config: Represents configuration data.
  - script: Represents a script created in ioBroker.
  - user: Represents a user in the ioBroker system.
  - group: Represents a group of users in the ioBroker system.""",
                ),
            ],
            self._get_objects,
            tags=["objects"],
        )

        self._add_tool(
            "search",
            """This function retrieves a list of data points (state IDs) that match a specific pattern.

Behavior:
  - If a data source (e.g., History, SQL) is configured, only data points known to the data source are listed.
  - If the option 'List all data points' is enabled or no data source is configured, all data points are listed.

Parameters:
  - pattern (string): A pattern to match data point IDs (e.g., system.adapter.admin.0*).

The function returns the matching data points in JSON format.""",
            [
                ToolParameter(
                    name="pattern",
                    type="string",
                    description="A pattern to match data point IDs (e.g., system.adapter.admin.0*).",
                ),
            ],
            self._search,
            tags=["history"],
        )

        self._add_tool(
            "query",
            f"""This function retrieves historical or current data for specified data points (state IDs) over a given time period or based on relative time patterns.

Behavior:
  - If a data source (e.g., History, SQL) is configured, historical data for the specified period is retrieved.
  - If no data source is configured or the 'noHistory' parameter is set to true, only the current value of the data points is retrieved.

Parameters:
  - stateIDs (string): A comma-separated list of state IDs to query.
  - dateFrom (string, optional): The start date/time for the query (ISO 8601 or relative time pattern).
  - dateTo (string, optional): The end date/time for the query (ISO 8601 or relative time pattern).
  - noHistory (boolean, optional): If true, retrieves only the current value of the data points.

{RELATIVE_TIME_HELP}

Note:
  - You can use the 'search' tool to find relevant state IDs to use in this query.

The function returns the matching data points and their values in JSON format.""",
            [
                ToolParameter(
                    name="stateIDs",
                    type="string",
                    description=(
                        "A comma-separated list of state IDs to query (e.g., "
                        "system.host.iobroker-dev.load,system.host.iobroker-dev.memHeapUsed)."
                    ),
                ),
                ToolParameter(
                    name="dateFrom",
                    type="string",
                    required=False,
                    description=(
                        "The start date/time for the query. Can be an ISO 8601 date "
                        "(e.g., 2019-06-08T01:00:00.000Z) or a relative time pattern "
                        "(e.g., -1h, today)."
                    ),
                ),
                ToolParameter(
                    name="dateTo",
                    type="string",
                    required=False,
                    description=(
                        "The end date/time for the query. Can be an ISO 8601 date "
                        "(e.g., 2019-06-08T01:00:10.000Z) or a relative time pattern "
                        "(e.g., now, today)."
                    ),
                ),
                ToolParameter(
                    name="noHistory",
                    type="boolean",
                    required=False,
                    description=(
                        "If true, retrieves only the current value of the data points "
                        "instead of historical data."
                    ),
                ),
            ],
            self._query,
            tags=["history"],
        )

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------

    async def _call(
        self,
        operation: str,
        path: str,
        failure: str,
        method: str = "GET",
        body: Any = None,
    ) -> httpx.Response:
        """Send a request and raise OperationFailed on a non-2xx status."""
        response = await self.client.request(path, method=method, body=body)

        if not response.is_success:
            logger.warning(
                "Simple API returned an error",
                operation=operation,
                status=response.status_code,
            )
            raise OperationFailed(
                operation,
                f"{failure} (HTTP {response.status_code})",
                status_code=response.status_code,
            )

        return response

    def _read_json(self, operation: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise UpstreamBodyError(
                operation, f"Invalid JSON in {operation} response: {e}"
            ) from e

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _get_plain_value(self, arguments: dict[str, Any]) -> ToolResult:
        state_id = arguments["stateID"]
        response = await self._call(
            "getPlainValue",
            f"/getPlainValue/{encode_component(state_id)}",
            f"Failed to fetch plain value for stateID: {state_id}",
        )
        return ToolResult.text("getPlainValue", response.text)

    async def _get_state(self, arguments: dict[str, Any]) -> ToolResult:
        state_id = arguments["stateID"]
        response = await self._call(
            "getState",
            f"/get/{encode_component(state_id)}",
            f"Failed to fetch state information for stateID: {state_id}",
        )
        return ToolResult.json_data("getState", self._read_json("getState", response))

    async def _set_state(self, arguments: dict[str, Any]) -> ToolResult:
        state_id = arguments["stateID"]
        query = build_query([("value", arguments["value"])])
        response = await self._call(
            "setState",
            f"/set/{encode_component(state_id)}?{query}",
            f"Failed to set value for stateID: {state_id}",
        )
        return ToolResult.text("setState", response.text)

    async def _toggle_state(self, arguments: dict[str, Any]) -> ToolResult:
        state_id = arguments["stateID"]
        response = await self._call(
            "toggleState",
            f"/toggle/{encode_component(state_id)}",
            f"Failed to toggle state for stateID: {state_id}",
        )
        return ToolResult.text("toggleState", response.text)

    async def _get_bulk_states(self, arguments: dict[str, Any]) -> ToolResult:
        state_ids = arguments["stateIDs"]
        # Commas separate the IDs inside the path segment
        path = f"/getBulk/{encode_component(state_ids, safe=URI_COMPONENT_SAFE + ',')}"
        response = await self._call(
            "getBulkStates",
            path,
            f"Failed to fetch bulk state information for stateIDs: {state_ids}",
        )
        return ToolResult.json_data("getBulkStates", self._read_json("getBulkStates", response))

    async def _set_bulk_states(self, arguments: dict[str, Any]) -> ToolResult:
        states = arguments["states"]
        response = await self._call(
            "setBulkStates",
            "/setBulk",
            f"Failed to set bulk state values for stateIDs: {','.join(states)}",
            method="POST",
            body=states,
        )
        return ToolResult.text("setBulkStates", response.text)

    async def _get_states(self, arguments: dict[str, Any]) -> ToolResult:
        pattern = arguments["pattern"]
        response = await self._call(
            "getStates",
            f"/states?{build_query([('pattern', pattern)])}",
            f"Failed to fetch states matching pattern: {pattern}",
        )
        return ToolResult.json_data("getStates", self._read_json("getStates", response))

    async def _get_enums(self, arguments: dict[str, Any]) -> ToolResult:
        response = await self._call(
            "getEnums",
            f"/objects?{build_query([('pattern', 'enum.*'), ('type', 'enum')])}",
            "Failed to fetch enums matching pattern: enum.*",
        )
        return ToolResult.json_data("getEnums", self._read_json("getEnums", response))

    async def _get_objects(self, arguments: dict[str, Any]) -> ToolResult:
        pattern = arguments["pattern"]
        object_type = arguments.get("type") or None

        failure = f"Failed to fetch objects matching pattern: {pattern}"
        if object_type:
            failure += f" and type: {object_type}"

        response = await self._call(
            "getObjects",
            f"/objects?{build_query([('pattern', pattern), ('type', object_type)])}",
            failure,
        )
        return ToolResult.json_data("getObjects", self._read_json("getObjects", response))

    async def _search(self, arguments: dict[str, Any]) -> ToolResult:
        pattern = arguments["pattern"]
        response = await self._call(
            "search",
            f"/search?{build_query([('pattern', pattern)])}",
            f"Failed to perform search for pattern: {pattern}",
        )
        return ToolResult.json_data("search", self._read_json("search", response))

    async def _query(self, arguments: dict[str, Any]) -> ToolResult:
        state_ids = arguments["stateIDs"]
        query = build_query([
            ("stateIDs", state_ids),
            # Empty strings count as not given
            ("dateFrom", arguments.get("dateFrom") or None),
            ("dateTo", arguments.get("dateTo") or None),
            ("noHistory", True if arguments.get("noHistory") else None),
        ])
        response = await self._call(
            "query",
            f"/query?{query}",
            f"Failed to perform query for stateIDs: {state_ids}",
        )
        return ToolResult.json_data("query", self._read_json("query", response))
