"""
Guarded HTTP execution for declarative API tools.

One invocation is a linear pipeline with early exits:
    1. Check requires_env against the merged environment
    2. Resolve the URL template (strict env)
    3. Evaluate egress (private hosts, then allowed_hosts; optional DNS guard)
    4. Resolve header templates (strict env)
    5. Interpolate and serialize the body (json / form / text)
    6. Clamp the timeout and send exactly one request under a deadline
    7. Parse the response (JSON or text) and render summary/error templates

Security Note:
    Redirects are never followed; a 3xx is returned to the caller as-is, so a
    redirect cannot carry the request to a host the policy never saw.
    Resolved header values may contain secrets and are never logged.

Any failure before a response is received becomes a failed ExecutionResult.
execute() does not raise.
"""

import asyncio
import json
import logging
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import urlencode

import httpx

from apitools.definitions.models import RequestBody, ToolDefinition
from apitools.env import EnvironmentProvider, ProcessEnvironment, merge_environment
from apitools.errors import (
    ApiToolsError,
    MissingEnvironmentError,
    NetworkError,
    RequestTimeoutError,
    ResponseTooLargeError,
)
from apitools.policy.egress import EgressPolicy, resolve_hostname
from apitools.schema import MAX_TIMEOUT_MS, ExecutorSettings
from apitools.template import TemplateContext, interpolate_deep, interpolate_string, to_text
from apitools.tools.base import ExecutionResult

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


# =============================================================================
# Request Building
# =============================================================================


def check_required_env(requires: list[str], env: Mapping[str, str]) -> None:
    """
    Verify every required variable is set and non-empty.

    Raises:
        MissingEnvironmentError: Listing all missing names at once
    """
    missing = [name for name in requires if not env.get(name)]
    if missing:
        raise MissingEnvironmentError(missing=missing)


def effective_timeout_ms(definition: ToolDefinition, settings: ExecutorSettings) -> int:
    """Declared timeout (or the default), never above the ceiling."""
    requested = definition.request.timeout_ms or settings.default_timeout_ms
    return min(requested, settings.max_timeout_ms, MAX_TIMEOUT_MS)


def resolve_headers(headers: Mapping[str, str], ctx: TemplateContext) -> dict[str, str]:
    """Resolve header templates in strict mode."""
    return {name: interpolate_string(value, ctx) for name, value in headers.items()}


def _has_header(headers: Mapping[str, str], name: str) -> bool:
    name = name.lower()
    return any(key.lower() == name for key in headers)


def encode_body(body: RequestBody, ctx: TemplateContext, headers: dict[str, str]) -> str:
    """
    Interpolate and serialize a body template.

    Adds a default Content-Type to headers for json and form bodies when no
    content type was declared.
    """
    content = interpolate_deep(body.content, ctx)

    if body.type == "json":
        if not _has_header(headers, "content-type"):
            headers["Content-Type"] = JSON_CONTENT_TYPE
        return json.dumps(content)

    if body.type == "form":
        fields: dict[str, str] = {}
        if isinstance(content, Mapping):
            fields = {str(key): to_text(value) for key, value in content.items()}
        if not _has_header(headers, "content-type"):
            headers["Content-Type"] = FORM_CONTENT_TYPE
        return urlencode(fields)

    return to_text(content)


# =============================================================================
# Response Handling
# =============================================================================


def is_json_content_type(content_type: str) -> bool:
    """application/json, or any structured-syntax +json type."""
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == JSON_CONTENT_TYPE or media_type.endswith("+json")


def parse_response_payload(content_type: str, body: bytes, encoding: str | None = None) -> Any:
    """Parse a response body as JSON when declared so, otherwise as text."""
    text = body.decode(encoding or "utf-8", errors="replace")
    if is_json_content_type(content_type):
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            logger.warning("api-tools: response declared %s but is not valid JSON", content_type)
    return text


def response_scope(payload: Any) -> dict[str, Any]:
    """Response scope for summary rendering."""
    if isinstance(payload, Mapping):
        return dict(payload)
    return {"value": payload}


def error_scope(status: int, payload: Any) -> dict[str, Any]:
    """Response scope for error rendering; payload keys win over status."""
    scope: dict[str, Any] = {"status": status}
    if isinstance(payload, Mapping):
        scope.update(payload)
    else:
        scope["message"] = payload
    return scope


# =============================================================================
# Executor
# =============================================================================


class ApiToolExecutor:
    """
    Executes tool definitions as guarded HTTP requests.

    The executor holds no per-call state and can serve concurrent calls.

    Attributes:
        settings: Limits applied to every call
        env_provider: Source of the ambient environment

    Example:
        executor = ApiToolExecutor()
        result = await executor.execute(definition, {"message": "hi"})
        if result.success:
            print(result.summary or result.data)
    """

    def __init__(
        self,
        settings: ExecutorSettings | None = None,
        env_provider: EnvironmentProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        resolver: Callable[[str], list[str]] = resolve_hostname,
    ) -> None:
        """
        Args:
            settings: Executor settings (defaults if omitted)
            env_provider: Environment source (process environment if omitted)
            transport: httpx transport override, e.g. httpx.MockTransport
            resolver: Hostname resolver used by the DNS guard
        """
        self.settings = settings or ExecutorSettings()
        self.env_provider = env_provider or ProcessEnvironment()
        self._transport = transport
        self._resolver = resolver

    async def execute(
        self,
        definition: ToolDefinition,
        args: Mapping[str, Any],
        extra_env: Mapping[str, str] | None = None,
    ) -> ExecutionResult:
        """
        Execute one call.

        Args:
            definition: The tool to call
            args: Call arguments, already validated by the host
            extra_env: Call-scoped environment overrides

        Returns:
            ExecutionResult (never raises for call failures)
        """
        try:
            return await self._execute(definition, args, extra_env)
        except ApiToolsError as e:
            logger.warning("api-tools: %s failed: %s", definition.name, e.message)
            return ExecutionResult.fail(e.message)
        except Exception as e:
            logger.exception("api-tools: %s failed unexpectedly", definition.name)
            return ExecutionResult.fail(f"Unexpected error: {e}")

    async def _execute(
        self,
        definition: ToolDefinition,
        args: Mapping[str, Any],
        extra_env: Mapping[str, str] | None,
    ) -> ExecutionResult:
        request = definition.request

        env = merge_environment(self.env_provider, extra_env)
        check_required_env(definition.requires_env, env)

        ctx = TemplateContext(env=env, params=dict(args))
        url = interpolate_string(request.url, ctx)

        policy = EgressPolicy(definition.allowed_hosts, resolver=self._resolver)
        hostname = policy.enforce(url)
        if self.settings.resolve_dns:
            await asyncio.to_thread(policy.verify_resolution, url, hostname)

        headers = resolve_headers(request.headers, ctx)
        content = None
        if request.body is not None:
            content = encode_body(request.body, ctx, headers)

        timeout_ms = effective_timeout_ms(definition, self.settings)

        logger.debug(
            "api-tools: %s %s %s (timeout %dms)",
            definition.name,
            request.method,
            hostname,
            timeout_ms,
        )
        status, payload = await self._send(request.method, url, headers, content, timeout_ms)
        success = 200 <= status < 300
        logger.info("api-tools: %s -> %d", definition.name, status)

        summary = None
        error = None
        templates = definition.response
        if success and templates.summary:
            summary = interpolate_string(
                templates.summary,
                ctx.with_response(response_scope(payload)),
                strict_env=False,
            )
        if not success:
            if templates.error_template:
                error = interpolate_string(
                    templates.error_template,
                    ctx.with_response(error_scope(status, payload)),
                    strict_env=False,
                )
            else:
                error = f"Request failed with status {status}"

        return ExecutionResult(
            success=success,
            status=status,
            data=payload,
            error=error,
            summary=summary,
        )

    async def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        content: str | None,
        timeout_ms: int,
    ) -> tuple[int, Any]:
        """Send the request under a deadline and return (status, payload)."""
        timeout_seconds = timeout_ms / 1000
        try:
            async with asyncio.timeout(timeout_seconds):
                async with httpx.AsyncClient(
                    timeout=timeout_seconds,
                    follow_redirects=False,
                    headers={"User-Agent": self.settings.user_agent},
                    transport=self._transport,
                ) as client:
                    async with client.stream(method, url, headers=headers, content=content) as response:
                        body = await self._read_body(response, url)
                        payload = parse_response_payload(
                            response.headers.get("content-type", ""),
                            body,
                            response.charset_encoding,
                        )
                        return response.status_code, payload
        except (TimeoutError, httpx.TimeoutException) as e:
            raise RequestTimeoutError(url=url, timeout_ms=timeout_ms) from e
        except httpx.RequestError as e:
            raise NetworkError(url=url, underlying_error=str(e) or type(e).__name__) from e

    async def _read_body(self, response: httpx.Response, url: str) -> bytes:
        """Read the body, stopping once it exceeds max_response_bytes."""
        max_bytes = self.settings.max_response_bytes

        content_length = response.headers.get("content-length")
        if content_length:
            try:
                declared = int(content_length)
            except ValueError:
                declared = 0  # Invalid content-length header, rely on streaming check
            if declared > max_bytes:
                raise ResponseTooLargeError(url=url, actual_size=declared, max_size=max_bytes)

        chunks = []
        total = 0
        async for chunk in response.aiter_bytes():
            total += len(chunk)
            if total > max_bytes:
                raise ResponseTooLargeError(url=url, actual_size=total, max_size=max_bytes)
            chunks.append(chunk)
        return b"".join(chunks)


# =============================================================================
# Convenience Functions
# =============================================================================


async def execute_api_tool(
    definition: ToolDefinition,
    args: Mapping[str, Any],
    extra_env: Mapping[str, str] | None = None,
    executor: ApiToolExecutor | None = None,
) -> ExecutionResult:
    """Execute a definition with a default (or supplied) executor."""
    executor = executor or ApiToolExecutor()
    return await executor.execute(definition, args, extra_env)


def execute_api_tool_sync(
    definition: ToolDefinition,
    args: Mapping[str, Any],
    extra_env: Mapping[str, str] | None = None,
    executor: ApiToolExecutor | None = None,
) -> ExecutionResult:
    """Blocking variant of execute_api_tool, for code outside an event loop."""
    return asyncio.run(execute_api_tool(definition, args, extra_env, executor))
