"""
Tools module for apitools.

Architecture:
    - Tool: Abstract base class for agent-callable tools
    - ApiTool: A Tool backed by a declarative definition
    - ApiToolExecutor: Guarded HTTP execution of one definition
    - ToolRegistry: Name-based lookup for a host
    - ExecutionResult: The envelope every call returns

Egress policy is enforced inside the executor, after template resolution
and before any connection is opened.
"""

from apitools.tools.api import (
    ApiTool,
    NoTools,
    ToolsAvailable,
    build_api_tools,
    register_api_tools,
)
from apitools.tools.base import ExecutionResult, Tool, ToolContext
from apitools.tools.http import ApiToolExecutor, execute_api_tool, execute_api_tool_sync
from apitools.tools.registry import ToolRegistry

__all__ = [
    "ApiTool",
    "ApiToolExecutor",
    "ExecutionResult",
    "NoTools",
    "Tool",
    "ToolContext",
    "ToolRegistry",
    "ToolsAvailable",
    "build_api_tools",
    "execute_api_tool",
    "execute_api_tool_sync",
    "register_api_tools",
]
