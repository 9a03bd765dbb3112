"""
Definition loader.

This module turns a directory of YAML tool files into ToolDefinitions:
- Lists <agent_dir>/api-tools/*.yaml and *.yml (sorted, non-recursive)
- Parses each file with yaml.safe_load
- Validates each parsed tree against the ToolDefinition schema
- Reports every rejected file with its list of violations

Design Decisions:
    - Validation returns a tagged outcome instead of raising, so rejection
      reasons are values the caller can inspect
    - One bad file never prevents its siblings from loading
    - A missing tools directory is an empty result, not an error
    - Nothing is cached; every load() call re-scans the directory
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from apitools.definitions.models import ToolDefinition
from apitools.errors import (
    ERROR_DEFINITION_DUPLICATE,
    ERROR_DEFINITION_INVALID,
    ERROR_DEFINITION_PARSE,
    DefinitionInvalidError,
)

logger = logging.getLogger(__name__)

DEFAULT_TOOLS_DIRNAME = "api-tools"
TOOL_FILE_SUFFIXES = (".yaml", ".yml")


# =============================================================================
# Validation Outcomes
# =============================================================================


@dataclass(frozen=True)
class Violation:
    """One problem found in a definition file."""

    field: str
    message: str

    def __str__(self) -> str:
        if not self.field:
            return self.message
        return f"{self.field}: {self.message}"


@dataclass(frozen=True)
class ValidDefinition:
    """A definition that passed validation."""

    definition: ToolDefinition
    source: str = ""

    @property
    def valid(self) -> bool:
        return True


@dataclass(frozen=True)
class InvalidDefinition:
    """A definition that was rejected, with every violation found."""

    source: str
    violations: list[Violation] = field(default_factory=list)
    code: int = 0

    @property
    def valid(self) -> bool:
        return False

    def to_error(self) -> DefinitionInvalidError:
        """Convert to an exception for callers that want to raise."""
        return DefinitionInvalidError(
            source=self.source,
            violations=[str(v) for v in self.violations],
            code=self.code,
        )


DefinitionOutcome = ValidDefinition | InvalidDefinition


def _violations_from(error: ValidationError) -> list[Violation]:
    """Flatten a pydantic ValidationError into violations."""
    violations = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        message = item["msg"]
        # Field-validator messages arrive prefixed with "Value error, "
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        violations.append(Violation(field=location, message=message))
    return violations


def validate_definition(data: Any, source: str = "<definition>") -> DefinitionOutcome:
    """
    Validate one parsed tool file.

    Args:
        data: The parsed YAML tree
        source: Label used in diagnostics (usually the file name)

    Returns:
        ValidDefinition or InvalidDefinition
    """
    if not isinstance(data, dict):
        return InvalidDefinition(
            source=source,
            violations=[Violation(field="", message="definition is not a mapping")],
            code=ERROR_DEFINITION_INVALID,
        )

    try:
        definition = ToolDefinition.model_validate(data)
    except ValidationError as e:
        return InvalidDefinition(
            source=source,
            violations=_violations_from(e),
            code=ERROR_DEFINITION_INVALID,
        )

    return ValidDefinition(definition=definition, source=source)


def parse_definition_text(content: str, source: str = "<definition>") -> DefinitionOutcome:
    """Parse YAML text and validate it."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        return InvalidDefinition(
            source=source,
            violations=[Violation(field="", message=f"Invalid YAML: {e}")],
            code=ERROR_DEFINITION_PARSE,
        )
    return validate_definition(data, source)


def load_definition_file(path: Path | str) -> ToolDefinition:
    """
    Load a single tool file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        DefinitionInvalidError: If the file is not a valid definition
    """
    path = Path(path)
    outcome = parse_definition_text(path.read_text(encoding="utf-8"), path.name)
    if isinstance(outcome, InvalidDefinition):
        raise outcome.to_error()
    return outcome.definition


# =============================================================================
# Directory Loader
# =============================================================================


@dataclass(frozen=True)
class LoadReport:
    """
    Result of scanning a tools directory.

    Attributes:
        definitions: Valid definitions, in file-name order
        rejected: Files that failed, with their violations
    """

    definitions: list[ToolDefinition] = field(default_factory=list)
    rejected: list[InvalidDefinition] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [d.name for d in self.definitions]

    def get(self, name: str) -> ToolDefinition | None:
        """Find a loaded definition by name."""
        for definition in self.definitions:
            if definition.name == name:
                return definition
        return None


class DefinitionLoader:
    """
    Loads tool definitions from an agent directory.

    Attributes:
        agent_dir: The agent directory
        tools_dir: The subdirectory scanned for tool files

    Example:
        >>> report = DefinitionLoader("./agent").load()
        >>> [d.name for d in report.definitions]
        ['create_issue', 'send_message']
    """

    def __init__(self, agent_dir: Path | str, tools_dirname: str = DEFAULT_TOOLS_DIRNAME) -> None:
        self.agent_dir = Path(agent_dir)
        self.tools_dir = self.agent_dir / tools_dirname

    def list_files(self) -> list[Path]:
        """List candidate tool files, sorted by name."""
        if not self.tools_dir.is_dir():
            return []
        try:
            entries = list(self.tools_dir.iterdir())
        except OSError as e:
            logger.warning("api-tools: cannot read %s: %s", self.tools_dir, e)
            return []
        return sorted(
            (p for p in entries if p.is_file() and p.suffix in TOOL_FILE_SUFFIXES),
            key=lambda p: p.name,
        )

    def load(self) -> LoadReport:
        """Scan the tools directory and validate every file."""
        definitions: list[ToolDefinition] = []
        rejected: list[InvalidDefinition] = []
        seen: dict[str, str] = {}

        for path in self.list_files():
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                rejected.append(InvalidDefinition(
                    source=path.name,
                    violations=[Violation(field="", message=f"Cannot read file: {e}")],
                    code=ERROR_DEFINITION_PARSE,
                ))
                continue

            outcome = parse_definition_text(content, path.name)
            if isinstance(outcome, InvalidDefinition):
                rejected.append(outcome)
                continue

            name = outcome.definition.name
            if name in seen:
                rejected.append(InvalidDefinition(
                    source=path.name,
                    violations=[Violation(
                        field="name",
                        message=f"duplicate tool name '{name}' (already defined in {seen[name]})",
                    )],
                    code=ERROR_DEFINITION_DUPLICATE,
                ))
                continue

            seen[name] = path.name
            definitions.append(outcome.definition)

        return LoadReport(definitions=definitions, rejected=rejected)


def load_tool_definitions(
    agent_dir: Path | str,
    tools_dirname: str = DEFAULT_TOOLS_DIRNAME,
) -> list[ToolDefinition]:
    """
    Load valid definitions, logging a warning for each rejected file.

    Args:
        agent_dir: The agent directory containing the tools subdirectory
        tools_dirname: Name of the tools subdirectory

    Returns:
        The valid definitions (possibly empty)
    """
    report = DefinitionLoader(agent_dir, tools_dirname).load()
    for invalid in report.rejected:
        logger.warning(
            "api-tools: skipping %s: %s",
            invalid.source,
            "; ".join(str(v) for v in invalid.violations),
        )
    return report.definitions
