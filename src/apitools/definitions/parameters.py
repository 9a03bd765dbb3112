"""
JSON Schema for tool call arguments.

The schema is advertised to the agent framework before any call, and the
framework validates arguments against it. The executor trusts that and does
not re-check argument types.
"""

from collections.abc import Mapping
from typing import Any

from apitools.definitions.models import ParameterDeclaration


def build_parameter_schema(
    parameters: Mapping[str, ParameterDeclaration] | None,
) -> dict[str, Any]:
    """
    Build a JSON Schema object from parameter declarations.

    Only parameters declared ``required: true`` are listed as required.
    A string parameter with a non-empty enum becomes a closed value set;
    enums on other types are ignored.

    Args:
        parameters: Declarations keyed by parameter name (None or empty allowed)

    Returns:
        A JSON Schema dict of type "object"
    """
    schema: dict[str, Any] = {
        "type": "object",
        "properties": {},
        "additionalProperties": False,
    }
    if not parameters:
        return schema

    required: list[str] = []
    for name, param in parameters.items():
        schema["properties"][name] = _property_schema(param)
        if param.required:
            required.append(name)

    if required:
        schema["required"] = required
    return schema


def _property_schema(param: ParameterDeclaration) -> dict[str, Any]:
    prop: dict[str, Any] = {"type": param.type}
    if param.type == "string" and param.enum:
        prop["enum"] = list(param.enum)
    if param.description:
        prop["description"] = param.description
    if param.default is not None:
        prop["default"] = param.default
    return prop
