"""
Runtime configuration and decision models for apitools.

This module defines the Pydantic models that are not part of a tool file:
- ExecutorSettings: Limits and switches applied to every HTTP call
- EgressDecision: The result of checking a URL against egress rules

Design Decisions:
    - Settings are frozen and reject unknown keys (typos fail loudly)
    - The timeout ceiling can be lowered by configuration but never raised
    - Settings load from YAML, the same format as tool files
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from apitools import __version__


# Absolute bounds on request timeouts, in milliseconds
DEFAULT_TIMEOUT_MS = 30_000
MAX_TIMEOUT_MS = 60_000

DEFAULT_MAX_RESPONSE_BYTES = 10 * 1024 * 1024  # 10 MB


# =============================================================================
# Settings
# =============================================================================


class ExecutorSettings(BaseModel):
    """
    Settings applied by the executor to every call.

    Attributes:
        default_timeout_ms: Timeout used when a definition declares none
        max_timeout_ms: Ceiling for any effective timeout
        max_response_bytes: Largest response body accepted
        resolve_dns: Resolve the target host and block private addresses
        tools_dirname: Subdirectory of the agent dir holding tool files
        user_agent: Default User-Agent header (definitions may override)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_timeout_ms: int = Field(
        default=DEFAULT_TIMEOUT_MS,
        description="Timeout used when a definition declares none",
        gt=0,
        le=MAX_TIMEOUT_MS,
    )
    max_timeout_ms: int = Field(
        default=MAX_TIMEOUT_MS,
        description="Ceiling for any effective timeout",
        gt=0,
        le=MAX_TIMEOUT_MS,
    )
    max_response_bytes: int = Field(
        default=DEFAULT_MAX_RESPONSE_BYTES,
        description="Maximum response body size (0 = no body accepted)",
        ge=0,
    )
    resolve_dns: bool = Field(
        default=False,
        description="Resolve hostnames before the request and block private addresses",
    )
    tools_dirname: str = Field(
        default="api-tools",
        description="Subdirectory of the agent directory holding tool files",
        min_length=1,
    )
    user_agent: str = Field(
        default=f"apitools/{__version__}",
        description="Default User-Agent header",
    )

    @model_validator(mode="after")
    def check_default_within_ceiling(self) -> "ExecutorSettings":
        """The default timeout must not exceed the configured ceiling."""
        if self.default_timeout_ms > self.max_timeout_ms:
            msg = (
                f"default_timeout_ms ({self.default_timeout_ms}) exceeds "
                f"max_timeout_ms ({self.max_timeout_ms})"
            )
            raise ValueError(msg)
        return self


# =============================================================================
# Decisions
# =============================================================================


class EgressDecision(BaseModel):
    """
    Result of evaluating a URL against egress rules.

    Attributes:
        allowed: Whether the request may proceed
        reason: Human-readable explanation of the decision
        rule_matched: Which rule caused this decision
        hostname: Hostname extracted from the URL (empty if unparseable)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed: bool = Field(..., description="Whether the request may proceed")
    reason: str = Field(..., description="Human-readable explanation of the decision")
    rule_matched: str | None = Field(default=None, description="Which rule caused this decision")
    hostname: str = Field(default="", description="Hostname extracted from the URL")

    @classmethod
    def allow(cls, reason: str, rule: str | None = None, hostname: str = "") -> "EgressDecision":
        """Create an ALLOW decision."""
        return cls(allowed=True, reason=reason, rule_matched=rule, hostname=hostname)

    @classmethod
    def deny(cls, reason: str, rule: str | None = None, hostname: str = "") -> "EgressDecision":
        """Create a DENY decision."""
        return cls(allowed=False, reason=reason, rule_matched=rule, hostname=hostname)


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def load_settings(path: Path | str) -> ExecutorSettings:
    """
    Load executor settings from a YAML file.

    An empty file yields the defaults.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the YAML doesn't match the schema
    """
    path = Path(path)
    with path.open() as f:
        data = yaml.safe_load(f)

    return ExecutorSettings.model_validate(data or {})


def load_settings_from_string(content: str) -> ExecutorSettings:
    """Load executor settings from a YAML string."""
    data = yaml.safe_load(content)
    return ExecutorSettings.model_validate(data or {})
