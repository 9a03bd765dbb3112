"""
Per-agent registry of API tools.

A host fills one registry per agent with register_api_tools(), advertises
specs() to the model, and resolves each call by the name the model used.
Names are unique: a second tool under a taken name is refused with
DuplicateToolError, so the tool a model was shown is the one it calls.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from apitools.errors import DuplicateToolError, ToolNotFoundError

if TYPE_CHECKING:
    from apitools.tools.api import ApiTool


class ToolRegistry:
    """Name-keyed collection of ApiTools."""

    def __init__(self) -> None:
        self._tools: dict[str, ApiTool] = {}

    def register(self, tool: ApiTool) -> None:
        """
        Add a tool under its definition name.

        Raises:
            DuplicateToolError: If the name is already registered
        """
        if tool.name in self._tools:
            raise DuplicateToolError(tool=tool.name)
        self._tools[tool.name] = tool

    def get(self, name: str) -> ApiTool:
        """
        Look up the tool a model called.

        Raises:
            ToolNotFoundError: If no tool with that name is registered
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(tool=name)
        return tool

    def list_tools(self) -> list[str]:
        """Registered tool names, sorted."""
        return sorted(self._tools)

    def specs(self) -> list[dict[str, Any]]:
        """Tool specs in name order, ready to advertise to a model."""
        return [self._tools[name].to_spec() for name in self.list_tools()]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __repr__(self) -> str:
        return f"<ToolRegistry: [{', '.join(self.list_tools())}]>"
