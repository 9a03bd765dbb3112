"""
Tool definition schema.

This module defines the Pydantic models for a declarative API tool file:
- ParameterDeclaration: One call argument the tool accepts
- RequestBody / RequestTemplate: How the HTTP request is built
- ResponseTemplates: How results are rendered for the caller
- ToolDefinition: The complete, immutable definition

Design Decisions:
    - All models are frozen (immutable after loading)
    - Unknown keys are ignored so files may carry host-specific extras
    - Tool names are lowercase identifiers usable as function names
    - Parameter enums are advertised for string parameters only
"""

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


TOOL_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
ParameterType = Literal["string", "number", "integer", "boolean"]
BodyType = Literal["json", "form", "text"]


# =============================================================================
# Parameters
# =============================================================================


class ParameterDeclaration(BaseModel):
    """
    A single call argument.

    Attributes:
        type: Primitive type (string, number, integer, boolean)
        description: Human-readable description shown to the agent
        required: Whether the caller must supply it (default: optional)
        enum: Closed set of allowed values (advertised for strings only)
        default: Advertised default value
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: ParameterType = Field(..., description="Primitive type of the parameter")
    description: str | None = Field(default=None, description="Description shown to the agent")
    required: bool = Field(default=False, description="Whether the parameter must be supplied")
    enum: list[str | int | float | bool] | None = Field(default=None, description="Allowed values")
    default: str | int | float | bool | None = Field(default=None, description="Advertised default")


# =============================================================================
# Request / Response
# =============================================================================


class RequestBody(BaseModel):
    """
    Body template.

    Attributes:
        type: Serialization kind (json, form, text)
        content: Templated content; any YAML value
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: BodyType = Field(..., description="Serialization kind")
    content: Any = Field(default=None, description="Templated body content")


class RequestTemplate(BaseModel):
    """
    How to build the HTTP request.

    Attributes:
        method: HTTP verb
        url: URL template
        headers: Header templates
        body: Optional body template
        timeout_ms: Requested timeout (clamped by the executor)
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    method: HttpMethod = Field(..., description="HTTP verb")
    url: str = Field(..., description="URL template")
    headers: dict[str, str] = Field(default_factory=dict, description="Header templates")
    body: RequestBody | None = Field(default=None, description="Body template")
    timeout_ms: int | None = Field(default=None, description="Requested timeout in ms", gt=0)


class ResponseTemplates(BaseModel):
    """Templates rendered after the call."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    summary: str | None = Field(default=None, description="Rendered on a 2xx response")
    error_template: str | None = Field(default=None, description="Rendered on a non-2xx response")


# =============================================================================
# Tool Definition
# =============================================================================


class ToolDefinition(BaseModel):
    """
    A declarative, HTTP-backed tool.

    Attributes:
        name: Unique lowercase identifier
        description: What the tool does, shown to the agent
        parameters: Call argument declarations
        request: Request template
        response: Optional rendering templates
        requires_env: Environment variables that must be set before calling
        allowed_hosts: Hostnames or *.domain patterns the request may target
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(..., description="Unique tool identifier", min_length=1, max_length=64)
    description: str = Field(..., description="What the tool does")
    parameters: dict[str, ParameterDeclaration] = Field(
        default_factory=dict,
        description="Call argument declarations",
    )
    request: RequestTemplate = Field(..., description="Request template")
    response: ResponseTemplates = Field(
        default_factory=ResponseTemplates,
        description="Rendering templates",
    )
    requires_env: list[str] = Field(
        default_factory=list,
        description="Environment variables that must be set",
    )
    allowed_hosts: list[str] = Field(
        ...,
        description="Hostnames or *.domain patterns",
        min_length=1,
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate tool name format (lowercase letters, digits, underscores)."""
        if not TOOL_NAME_PATTERN.match(v):
            msg = (
                f"Invalid tool name: {v}. "
                "Must start with a lowercase letter and contain only lowercase "
                "letters, numbers and underscores."
            )
            raise ValueError(msg)
        return v

    @field_validator("allowed_hosts")
    @classmethod
    def validate_allowed_hosts(cls, v: list[str]) -> list[str]:
        """Reject blank entries; normalize to lowercase."""
        hosts = [host.strip().lower() for host in v]
        if any(not host or host == "*." for host in hosts):
            msg = "allowed_hosts entries must be non-empty hostnames or *.domain patterns"
            raise ValueError(msg)
        return hosts

    @property
    def label(self) -> str:
        """Display label derived from the name."""
        return self.name.replace("_", " ")
