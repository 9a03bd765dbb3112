"""
Exception hierarchy for apitools.

All apitools exceptions inherit from ApiToolsError, allowing callers to catch
every library-specific failure with a single except clause.

Exception Categories:
    - DefinitionInvalidError: A tool file failed structural validation
    - MissingEnvironmentError: Required environment variables are absent
    - TemplateResolutionError: Strict template resolution hit a missing variable
    - EgressBlockedError: The target URL/host is not reachable under policy
    - NetworkError / RequestTimeoutError: Transport-level failures
    - ToolNotFoundError: Registry lookup miss
    - DuplicateToolError: A registry already holds a tool with that name

Inside the executor these are raised and caught at the boundary, where they
are converted to a failed ExecutionResult. Only the loader and registry let
them reach the caller.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Definition errors: 1xxx
ERROR_DEFINITION_INVALID = 1001
ERROR_DEFINITION_PARSE = 1002
ERROR_DEFINITION_DUPLICATE = 1003

# Resolution errors: 2xxx
ERROR_MISSING_ENVIRONMENT = 2001
ERROR_TEMPLATE_RESOLUTION = 2002

# Egress errors: 3xxx
ERROR_EGRESS_INVALID_URL = 3001
ERROR_EGRESS_PRIVATE_HOST = 3002
ERROR_EGRESS_HOST_NOT_ALLOWED = 3003
ERROR_EGRESS_DNS = 3004

# Transport errors: 4xxx
ERROR_NETWORK = 4001
ERROR_TIMEOUT = 4002
ERROR_RESPONSE_TOO_LARGE = 4003

# Registry errors: 5xxx
ERROR_TOOL_NOT_FOUND = 5001
ERROR_TOOL_DUPLICATE = 5002


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class ApiToolsError(Exception):
    """
    Base exception for all apitools errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Definition Errors
# =============================================================================


@dataclass
class DefinitionInvalidError(ApiToolsError):
    """
    Raised when a tool definition file cannot be accepted.

    Attributes:
        source: File name (or other label) the definition came from
        violations: Individual problems found, one string each
    """

    source: str = ""
    violations: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            detail = "; ".join(self.violations) or "invalid definition"
            self.message = f"{self.source}: {detail}"
        if self.code == 0:
            self.code = ERROR_DEFINITION_INVALID
        self.context.update({
            "source": self.source,
            "violations": list(self.violations),
        })


# =============================================================================
# Resolution Errors
# =============================================================================


@dataclass
class MissingEnvironmentError(ApiToolsError):
    """Raised when variables listed in requires_env are not set."""

    missing: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Missing required environment variables: {', '.join(self.missing)}"
        if self.code == 0:
            self.code = ERROR_MISSING_ENVIRONMENT
        if not self.suggestion:
            self.suggestion = "Export the variables or pass them as call-scoped overrides"
        self.context["missing"] = list(self.missing)


@dataclass
class TemplateResolutionError(ApiToolsError):
    """Raised when a strict {{env.KEY}} placeholder has no value."""

    key: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Missing required environment variable: {self.key}"
        if self.code == 0:
            self.code = ERROR_TEMPLATE_RESOLUTION
        self.context["key"] = self.key


# =============================================================================
# Egress Errors
# =============================================================================


@dataclass
class EgressBlockedError(ApiToolsError):
    """
    Base class for requests refused before reaching the network.

    Attributes:
        url: The resolved URL that was refused
        hostname: Hostname extracted from the URL (if any)
        rule: Which egress rule caused the refusal
    """

    url: str = ""
    hostname: str = ""
    rule: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Blocked: {self.url}"
        self.context.update({
            "url": self.url,
            "hostname": self.hostname,
            "rule": self.rule,
        })


@dataclass
class InvalidUrlError(EgressBlockedError):
    """Raised when the resolved URL is not an absolute http(s) URL."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid URL: {self.url}"
        if self.code == 0:
            self.code = ERROR_EGRESS_INVALID_URL
        super().__post_init__()


@dataclass
class PrivateHostBlockedError(EgressBlockedError):
    """Raised when the target host is private, internal or a metadata endpoint."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Blocked: requests to private/internal hosts not allowed ({self.hostname})"
            )
        if self.code == 0:
            self.code = ERROR_EGRESS_PRIVATE_HOST
        super().__post_init__()


@dataclass
class HostNotAllowedError(EgressBlockedError):
    """Raised when the target host is not covered by allowed_hosts."""

    allowed_hosts: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Blocked: host '{self.hostname}' not in allowed_hosts "
                f"[{', '.join(self.allowed_hosts)}]"
            )
        if self.code == 0:
            self.code = ERROR_EGRESS_HOST_NOT_ALLOWED
        if not self.suggestion:
            self.suggestion = "Add the host (or a *.domain pattern) to allowed_hosts"
        super().__post_init__()
        self.context["allowed_hosts"] = list(self.allowed_hosts)


@dataclass
class DnsResolutionError(EgressBlockedError):
    """Raised when the DNS guard cannot resolve the target host."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"DNS resolution failed for {self.hostname}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_EGRESS_DNS
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Transport Errors
# =============================================================================


@dataclass
class NetworkError(ApiToolsError):
    """Raised when the HTTP exchange fails at the transport level."""

    url: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Request failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_NETWORK
        self.context.update({
            "url": self.url,
            "underlying_error": self.underlying_error,
        })


@dataclass
class RequestTimeoutError(NetworkError):
    """Raised when the request exceeds its effective timeout."""

    timeout_ms: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Request timed out after {self.timeout_ms}ms"
        if self.code == 0:
            self.code = ERROR_TIMEOUT
        super().__post_init__()
        self.context["timeout_ms"] = self.timeout_ms


@dataclass
class ResponseTooLargeError(NetworkError):
    """Raised when the response body exceeds max_response_bytes."""

    actual_size: int = 0
    max_size: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Response too large: {self.actual_size} bytes (max: {self.max_size})"
        if self.code == 0:
            self.code = ERROR_RESPONSE_TOO_LARGE
        super().__post_init__()
        self.context.update({
            "actual_size": self.actual_size,
            "max_size": self.max_size,
        })


# =============================================================================
# Registry Errors
# =============================================================================


@dataclass
class ToolNotFoundError(ApiToolsError):
    """Raised when a tool is not registered."""

    tool: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Tool not found: {self.tool}"
        if self.code == 0:
            self.code = ERROR_TOOL_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Check the tool name or run `apitools validate` on the agent directory"
        self.context["tool"] = self.tool


@dataclass
class DuplicateToolError(ApiToolsError):
    """Raised when a second tool is registered under a taken name."""

    tool: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Tool already registered: {self.tool}"
        if self.code == 0:
            self.code = ERROR_TOOL_DUPLICATE
        if not self.suggestion:
            self.suggestion = "Rename one of the tools; names must be unique per registry"
        self.context["tool"] = self.tool
