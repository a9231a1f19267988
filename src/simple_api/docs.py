"""Static usage guide exposed as the ``api-docs`` tool."""

from typing import Any

from shared.models import ToolDefinition, ToolResult

DOCS_TOOL_NAME = "api-docs"

OBJECT_TYPES = [
    "state",
    "channel",
    "device",
    "enum",
    "adapter",
    "instance",
    "host",
    "meta",
    "config",
    "script",
    "user",
    "group",
]

RELATIVE_TIME_HELP = """Relative Time Patterns:
  - hour, thisHour, or this hour: Start of the current hour.
  - last hour or lastHour: Start of the previous hour.
  - today: Start of the current day.
  - yesterday: Start of the previous day.
  - week, thisWeek, or this week: Start of the current week.
  - lastWeek or last week: Start of the previous week.
  - month, thisMonth, or this month: Start of the current month.
  - lastMonth or last month: Start of the previous month.
  - year, thisYear, or this year: Start of the current year.
  - lastYear or last year: Start of the previous year.
  - -Nd: N days ago.
  - -NM: N months ago.
  - -Ny: N years ago.
  - -Nh: N hours ago.
  - -Nm: N minutes ago.
  - -Ns: N seconds ago."""

API_DOCS = f"""ioBroker Simple API - usage guide

ioBroker keeps two kinds of data:
  - objects describe the system (devices, channels, states, enums, adapters, ...)
  - states hold the current value of a data point (e.g. a sensor reading or a switch)

Object and state IDs are dot-separated paths such as
"hm-rpc.0.ABC123.1.STATE" or "javascript.0.myVariable". Patterns use "*" as a
wildcard: "hm-rpc.0.*" matches everything below that adapter instance.

Finding things:
  - getEnums lists the categories (rooms, functions) and their members.
  - getObjects(pattern, type?) lists objects, optionally filtered by type:
    {", ".join(OBJECT_TYPES)}.
  - getStates(pattern) returns the current values of all matching states.
  - search(pattern) lists data points known to the configured history source.

Reading values:
  - getPlainValue(stateID) returns only the value as plain text.
  - getState(stateID) returns the value plus metadata (ack, timestamp, ...).
  - getBulkStates(stateIDs) reads several comma-separated states in one call.

Changing values:
  - setState(stateID, value) writes a string, number or boolean.
  - toggleState(stateID) flips a boolean state.
  - setBulkStates(states) writes several states from an object of ID -> value.

History:
  - query(stateIDs, dateFrom?, dateTo?, noHistory?) returns recorded values.
    dateFrom/dateTo take an ISO 8601 timestamp (e.g. 2019-06-08T01:00:00.000Z)
    or a relative time pattern; they are passed to ioBroker unchanged.

{RELATIVE_TIME_HELP}

Typical workflow: getEnums to find the room, getObjects to find the device's
states, getState to check the current value, then setState or toggleState.
"""


async def _api_docs(arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.text(DOCS_TOOL_NAME, API_DOCS)


def docs_tool() -> ToolDefinition:
    """Tool definition returning the static usage guide."""
    return ToolDefinition(
        name=DOCS_TOOL_NAME,
        description=(
            "Returns a usage guide for the ioBroker Simple API tools: how IDs and "
            "patterns work, which tool to use for what, and the relative time "
            "patterns accepted by the query tool."
        ),
        input_schema={"type": "object", "properties": {}, "required": []},
        tags=["docs"],
        handler=_api_docs,
    )
