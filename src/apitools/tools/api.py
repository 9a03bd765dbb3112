"""
Agent-facing tools built from definitions.

This is the seam between apitools and an agent host: each valid definition
in an agent directory becomes an ApiTool carrying its name, description and
parameter schema, and executing through a shared ApiToolExecutor.

Registration never returns a bare None. Callers get either ToolsAvailable
with a non-empty tool list or NoTools with the reason nothing was produced.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from apitools.definitions.loader import DefinitionLoader
from apitools.definitions.models import ToolDefinition
from apitools.definitions.parameters import build_parameter_schema
from apitools.errors import DuplicateToolError
from apitools.tools.base import ExecutionResult, Tool, ToolContext
from apitools.tools.http import ApiToolExecutor
from apitools.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class ApiTool(Tool):
    """
    A tool backed by a declarative definition.

    Example:
        tool = ApiTool(definition)
        result = await tool.execute({"message": "hello"})
    """

    def __init__(self, definition: ToolDefinition, executor: ApiToolExecutor | None = None) -> None:
        self.definition = definition
        self.executor = executor or ApiToolExecutor()
        self._schema = build_parameter_schema(definition.parameters)

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def description(self) -> str:
        return self.definition.description

    @property
    def label(self) -> str:
        return self.definition.label

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return self._schema

    async def execute(self, args: Mapping[str, Any], context: ToolContext | None = None) -> ExecutionResult:
        context = context or ToolContext()
        logger.debug("api-tools: executing %s for agent %s", self.name, context.agent_id or "unknown")
        return await self.executor.execute(self.definition, args, context.extra_env)

    def to_spec(self) -> dict[str, Any]:
        """Describe the tool in the shape most tool-calling hosts expect."""
        return {
            "name": self.name,
            "label": self.label,
            "description": self.description,
            "parameters": self.parameters_schema,
        }


# =============================================================================
# Registration Outcomes
# =============================================================================


@dataclass(frozen=True)
class ToolsAvailable:
    """At least one tool was built."""

    tools: list[ApiTool] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [tool.name for tool in self.tools]


@dataclass(frozen=True)
class NoTools:
    """Nothing to register, and why."""

    reason: str


ToolsOutcome = ToolsAvailable | NoTools


def build_api_tools(
    agent_dir: Path | str | None,
    executor: ApiToolExecutor | None = None,
    agent_id: str | None = None,
) -> ToolsOutcome:
    """
    Build ApiTools for every valid definition in an agent directory.

    Args:
        agent_dir: Agent directory (None when the host has none)
        executor: Shared executor (a default one is created if omitted)
        agent_id: Used in log messages only

    Returns:
        ToolsAvailable or NoTools
    """
    if not agent_dir:
        return NoTools(reason="no agent directory")

    executor = executor or ApiToolExecutor()
    loader = DefinitionLoader(agent_dir, executor.settings.tools_dirname)
    report = loader.load()

    for invalid in report.rejected:
        logger.warning(
            "api-tools: skipping %s: %s",
            invalid.source,
            "; ".join(str(v) for v in invalid.violations),
        )

    if not report.definitions:
        return NoTools(reason=f"no valid tool definitions in {loader.tools_dir}")

    tools = [ApiTool(definition, executor) for definition in report.definitions]
    logger.info(
        "api-tools: loaded %d tool(s) for agent %s: %s",
        len(tools),
        agent_id or "unknown",
        ", ".join(tool.name for tool in tools),
    )
    return ToolsAvailable(tools=tools)


def register_api_tools(
    registry: ToolRegistry,
    agent_dir: Path | str | None,
    executor: ApiToolExecutor | None = None,
    agent_id: str | None = None,
) -> ToolsOutcome:
    """
    Build tools for an agent directory and add them to a registry.

    A tool whose name the registry already holds is skipped with a warning;
    the earlier registration keeps the name. The returned outcome lists only
    the tools this call added.
    """
    outcome = build_api_tools(agent_dir, executor, agent_id)
    if isinstance(outcome, NoTools):
        return outcome

    added = []
    for tool in outcome.tools:
        try:
            registry.register(tool)
        except DuplicateToolError as e:
            logger.warning("api-tools: skipping %s: %s", tool.name, e.message)
            continue
        added.append(tool)

    if not added:
        return NoTools(reason="every tool name is already registered")
    return ToolsAvailable(tools=added)
