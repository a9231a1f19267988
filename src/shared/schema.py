"""JSON Schema validation utilities."""

from typing import Any, Iterable

from jsonschema import Draft7Validator

from shared.models import ToolParameter


def validate_schema(data: Any, schema: dict[str, Any]) -> tuple[bool, list[str]]:
    """
    Validate data against a JSON Schema.

    Args:
        data: The data to validate
        schema: JSON Schema to validate against

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    if not schema:
        return True, []

    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.path))

    if not errors:
        return True, []

    error_messages = [
        f"{'.'.join(str(p) for p in e.path)}: {e.message}" if e.path else e.message
        for e in errors
    ]

    return False, error_messages


TYPE_MAPPING = {
    "string": "string",
    "str": "string",
    "integer": "integer",
    "int": "integer",
    "number": "number",
    "float": "number",
    "boolean": "boolean",
    "bool": "boolean",
    "array": "array",
    "list": "array",
    "object": "object",
    "dict": "object",
}


def _schema_type(type_name: str | list[str]) -> str | list[str]:
    if isinstance(type_name, list):
        return [TYPE_MAPPING.get(t, "string") for t in type_name]
    return TYPE_MAPPING.get(type_name, "string")


def create_tool_schema(parameters: Iterable[ToolParameter]) -> dict[str, Any]:
    """
    Create a JSON Schema from a list of parameter definitions.

    Property order follows the parameter order. Parameters marked
    ``required`` end up in the schema's ``required`` list.

    Args:
        parameters: Parameter definitions with name, type, description

    Returns:
        JSON Schema dictionary
    """
    properties: dict[str, Any] = {}
    required: list[str] = []

    for param in parameters:
        param_schema: dict[str, Any] = {
            "type": _schema_type(param.type),
            "description": param.description,
        }

        if param.enum is not None:
            param_schema["enum"] = param.enum

        if param.items is not None:
            param_schema["items"] = param.items

        if param.additional_properties is not None:
            param_schema["additionalProperties"] = param.additional_properties

        properties[param.name] = param_schema
        if param.required:
            required.append(param.name)

    return {
        "type": "object",
        "properties": properties,
        "required": required,
    }
