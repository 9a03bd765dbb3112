"""
Environment providers.

The executor never reads os.environ directly. It asks an EnvironmentProvider
for a snapshot, so tests can supply a fixed environment without touching the
real process state.
"""

import os
from collections.abc import Mapping
from typing import Protocol, runtime_checkable


@runtime_checkable
class EnvironmentProvider(Protocol):
    """Anything that can produce a read-only environment snapshot."""

    def snapshot(self) -> Mapping[str, str]:
        """Return the current variables as a mapping."""
        ...


class ProcessEnvironment:
    """Reads the real process environment at call time."""

    def snapshot(self) -> Mapping[str, str]:
        return dict(os.environ)

    def __repr__(self) -> str:
        return "<ProcessEnvironment>"


class StaticEnvironment:
    """A fixed environment, mainly for tests and embedding hosts."""

    def __init__(self, variables: Mapping[str, str] | None = None) -> None:
        self._variables = dict(variables or {})

    def snapshot(self) -> Mapping[str, str]:
        return dict(self._variables)

    def __repr__(self) -> str:
        names = ", ".join(sorted(self._variables))
        return f"<StaticEnvironment: [{names}]>"


def merge_environment(
    provider: EnvironmentProvider,
    overrides: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Overlay call-scoped overrides on top of the provider's snapshot."""
    merged = dict(provider.snapshot())
    if overrides:
        merged.update(overrides)
    return merged
