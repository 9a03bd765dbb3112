"""
Tool definitions: schema, loading and argument schemas.

Example:
    >>> from apitools.definitions import DefinitionLoader, build_parameter_schema
    >>> report = DefinitionLoader("./agent").load()
    >>> schema = build_parameter_schema(report.definitions[0].parameters)
"""

from apitools.definitions.loader import (
    DefinitionLoader,
    InvalidDefinition,
    LoadReport,
    ValidDefinition,
    Violation,
    load_definition_file,
    load_tool_definitions,
    parse_definition_text,
    validate_definition,
)
from apitools.definitions.models import (
    ParameterDeclaration,
    RequestBody,
    RequestTemplate,
    ResponseTemplates,
    ToolDefinition,
)
from apitools.definitions.parameters import build_parameter_schema

__all__ = [
    "DefinitionLoader",
    "InvalidDefinition",
    "LoadReport",
    "ValidDefinition",
    "Violation",
    "load_definition_file",
    "load_tool_definitions",
    "parse_definition_text",
    "validate_definition",
    "ParameterDeclaration",
    "RequestBody",
    "RequestTemplate",
    "ResponseTemplates",
    "ToolDefinition",
    "build_parameter_schema",
]
