"""
Pytest configuration and fixtures for apitools tests.

This module provides shared fixtures used across unit, integration,
and security tests. No test touches the real network: HTTP is served by
httpx.MockTransport handlers.
"""

import json
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any, Generator

import httpx
import pytest

from apitools.definitions.models import ToolDefinition
from apitools.env import StaticEnvironment
from apitools.schema import ExecutorSettings
from apitools.tools.http import ApiToolExecutor


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def agent_dir(temp_dir: Path) -> Path:
    """An agent directory with an empty api-tools/ subdirectory."""
    agent = temp_dir / "agent"
    (agent / "api-tools").mkdir(parents=True)
    return agent


@pytest.fixture
def write_tool(agent_dir: Path) -> Callable[[str, str], Path]:
    """Write a tool file into the agent's api-tools/ directory."""

    def _write(filename: str, content: str) -> Path:
        path = agent_dir / "api-tools" / filename
        path.write_text(content)
        return path

    return _write


@pytest.fixture
def send_message_yaml() -> str:
    """A complete, valid tool file."""
    return """
name: send_message
description: Post a message to the team channel
parameters:
  text:
    type: string
    description: Message body
    required: true
  priority:
    type: string
    enum: [low, high]
    default: low
request:
  method: POST
  url: https://api.example.com/v1/messages
  headers:
    Authorization: "Bearer {{env.EXAMPLE_TOKEN}}"
  body:
    type: json
    content:
      text: "{{params.text}}"
  timeout_ms: 5000
response:
  summary: "Posted {{response.text}}"
requires_env: [EXAMPLE_TOKEN]
allowed_hosts: [api.example.com]
"""


def build_definition(**overrides: Any) -> ToolDefinition:
    """Build a ToolDefinition from a minimal valid base plus overrides."""
    data: dict[str, Any] = {
        "name": "test_tool",
        "description": "A test tool",
        "request": {"method": "GET", "url": "https://api.example.com/items"},
        "allowed_hosts": ["api.example.com"],
    }
    request = overrides.pop("request", None)
    if request is not None:
        data["request"] = {**data["request"], **request}
    data.update(overrides)
    return ToolDefinition.model_validate(data)


@pytest.fixture
def make_definition() -> Callable[..., ToolDefinition]:
    """Factory for definitions: a minimal valid base plus overrides."""
    return build_definition


def echo_handler(request: httpx.Request) -> httpx.Response:
    """Echo a JSON request body back; otherwise describe the request."""
    if request.headers.get("content-type", "").startswith("application/json") and request.content:
        return httpx.Response(200, json=json.loads(request.content))
    return httpx.Response(
        200,
        json={
            "method": request.method,
            "url": str(request.url),
            "body": request.content.decode(),
            "headers": dict(request.headers),
        },
    )


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], Any] = echo_handler) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> Any:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


@pytest.fixture
def make_transport() -> Callable[..., RecordingTransport]:
    """Factory for recording transports; echoes requests by default."""
    return RecordingTransport


@pytest.fixture
def make_executor() -> Callable[..., ApiToolExecutor]:
    """Factory for executors with a static environment and mock transport."""

    def _make(
        transport: httpx.AsyncBaseTransport | None = None,
        env: dict[str, str] | None = None,
        settings: ExecutorSettings | None = None,
        **kwargs: Any,
    ) -> ApiToolExecutor:
        return ApiToolExecutor(
            settings=settings,
            env_provider=StaticEnvironment(env or {}),
            transport=transport or RecordingTransport(),
            **kwargs,
        )

    return _make
