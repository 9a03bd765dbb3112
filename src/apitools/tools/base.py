"""
Base classes for the tool interface.

This module defines the core abstractions handed to an agent host:
- ExecutionResult: Normalized envelope returned by every invocation
- ToolContext: Per-call context supplied by the host
- Tool: Abstract base class for agent-callable tools

Design Principles:
    - Tools are stateless - per-call state lives in ToolContext
    - Tools receive arguments already validated against parameters_schema
    - Tools return ExecutionResult - expected failures never raise
"""

import json
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ExecutionResult:
    """
    Outcome of one tool invocation.

    A non-2xx upstream response is still a completed exchange: success is
    False but status and data are populated.

    Attributes:
        success: True only for a 2xx response
        status: HTTP status code, when a response was received
        data: Parsed response payload (JSON value or text)
        error: Human-readable failure message
        summary: Rendered success summary, when declared
    """

    success: bool
    status: int | None = None
    data: Any = None
    error: str | None = None
    summary: str | None = None

    @classmethod
    def fail(cls, error: str) -> "ExecutionResult":
        """Create a failed result that never reached a response."""
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dict, omitting unset fields. A response always carries data, even null."""
        result: dict[str, Any] = {"success": self.success}
        if self.status is not None:
            result["status"] = self.status
            result["data"] = self.data
        elif self.data is not None:
            result["data"] = self.data
        if self.error is not None:
            result["error"] = self.error
        if self.summary is not None:
            result["summary"] = self.summary
        return result

    def to_json(self) -> str:
        """Serialize to a JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def to_content_blocks(self) -> list[dict[str, str]]:
        """Wrap as text content blocks for tool-calling protocols."""
        return [{"type": "text", "text": self.to_json()}]


@dataclass
class ToolContext:
    """
    Per-call context passed to tools by the host.

    Attributes:
        agent_id: Identifier of the calling agent (for logging only)
        extra_env: Call-scoped environment overrides
        metadata: Additional host-specific metadata
    """

    agent_id: str | None = None
    extra_env: Mapping[str, str] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)


class Tool(ABC):
    """
    Abstract base class for agent-callable tools.

    Subclasses must implement:
    - name property: The tool's unique identifier
    - parameters_schema property: JSON Schema for call arguments
    - execute(): Performs the call
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The unique identifier for this tool."""
        ...

    @property
    def description(self) -> str:
        """Human-readable description of what the tool does."""
        return f"Tool: {self.name}"

    @property
    def label(self) -> str:
        """Display label for host UIs."""
        return self.name.replace("_", " ")

    @property
    @abstractmethod
    def parameters_schema(self) -> dict[str, Any]:
        """JSON Schema describing valid call arguments."""
        ...

    @abstractmethod
    async def execute(self, args: Mapping[str, Any], context: ToolContext | None = None) -> ExecutionResult:
        """
        Execute the tool.

        Note:
            - Do NOT raise for expected failures
            - Use ExecutionResult.fail() instead
        """
        ...

    def __repr__(self) -> str:
        """String representation of the tool."""
        return f"<Tool: {self.name}>"
