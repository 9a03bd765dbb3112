"""
Placeholder interpolation for tool definitions.

Only three lookups are supported: {{env.NAME}}, {{params.NAME}} and
{{response.NAME}}. There is no expression language, no attribute access and
no evaluation of any kind; anything else between braces is left untouched so
that unrelated template syntax in a request body survives intact.
"""

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from apitools.errors import TemplateResolutionError


TEMPLATE_PATTERN = re.compile(r"\{\{([a-zA-Z_]+)\.([a-zA-Z_][a-zA-Z0-9_]*)\}\}")


@dataclass(frozen=True)
class TemplateContext:
    """
    Lookup scopes for one invocation.

    Attributes:
        env: Merged environment snapshot
        params: Call arguments
        response: Parsed response payload (only after the call)
    """

    env: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, Any] = field(default_factory=dict)
    response: Mapping[str, Any] | None = None

    def with_response(self, response: Mapping[str, Any]) -> "TemplateContext":
        """Return a copy of this context with the response scope attached."""
        return TemplateContext(env=self.env, params=self.params, response=response)


def to_text(value: Any) -> str:
    """Render a substituted value as text. None renders like a missing key."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def interpolate_string(template: str, ctx: TemplateContext, strict_env: bool = True) -> str:
    """
    Resolve every placeholder in a string.

    Args:
        template: The string containing placeholders
        ctx: Lookup scopes
        strict_env: Fail on a missing env variable instead of substituting ""

    Returns:
        The resolved string

    Raises:
        TemplateResolutionError: strict_env is set and an env variable is missing
    """

    def replace(match: re.Match[str]) -> str:
        scope, key = match.group(1), match.group(2)
        if scope == "env":
            value = ctx.env.get(key)
            if value is None and strict_env:
                raise TemplateResolutionError(key=key)
            return to_text(value)
        if scope == "params":
            return to_text(ctx.params.get(key))
        if scope == "response":
            if ctx.response is None:
                return ""
            return to_text(ctx.response.get(key))
        return match.group(0)

    return TEMPLATE_PATTERN.sub(replace, template)


def interpolate_deep(value: Any, ctx: TemplateContext, strict_env: bool = True) -> Any:
    """Apply interpolate_string to every string leaf, keeping the shape."""
    if isinstance(value, str):
        return interpolate_string(value, ctx, strict_env)
    if isinstance(value, list):
        return [interpolate_deep(item, ctx, strict_env) for item in value]
    if isinstance(value, tuple):
        return tuple(interpolate_deep(item, ctx, strict_env) for item in value)
    if isinstance(value, Mapping):
        return {key: interpolate_deep(item, ctx, strict_env) for key, item in value.items()}
    return value
