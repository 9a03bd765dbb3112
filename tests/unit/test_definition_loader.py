"""
Unit tests for the definition loader.

Tests cover:
- Loading valid definitions from api-tools/
- Rejection of invalid files without affecting siblings
- Tagged validation outcomes with violation lists
- Missing directory, non-YAML files, duplicate names
- Re-scanning on every load
"""

import logging
from pathlib import Path

import pytest

from apitools.definitions.loader import (
    DefinitionLoader,
    InvalidDefinition,
    ValidDefinition,
    load_definition_file,
    load_tool_definitions,
    parse_definition_text,
    validate_definition,
)
from apitools.definitions.parameters import build_parameter_schema
from apitools.errors import (
    ERROR_DEFINITION_DUPLICATE,
    ERROR_DEFINITION_INVALID,
    ERROR_DEFINITION_PARSE,
    DefinitionInvalidError,
)


VALID = """
name: {name}
description: Tool {name}
request:
  method: GET
  url: https://api.example.com/{name}
allowed_hosts: [api.example.com]
"""


class TestValidateDefinition:
    """Tests for the tagged validation outcome."""

    def test_valid(self) -> None:
        outcome = validate_definition({
            "name": "ok",
            "description": "fine",
            "request": {"method": "GET", "url": "https://api.example.com"},
            "allowed_hosts": ["api.example.com"],
        }, "ok.yaml")
        assert isinstance(outcome, ValidDefinition)
        assert outcome.valid is True
        assert outcome.definition.name == "ok"
        assert outcome.source == "ok.yaml"

    def test_not_a_mapping(self) -> None:
        outcome = validate_definition(["a", "b"], "list.yaml")
        assert isinstance(outcome, InvalidDefinition)
        assert outcome.valid is False
        assert "not a mapping" in str(outcome.violations[0])
        assert outcome.code == ERROR_DEFINITION_INVALID

    def test_none_document(self) -> None:
        assert isinstance(validate_definition(None, "empty.yaml"), InvalidDefinition)

    def test_all_violations_listed(self) -> None:
        """Every problem is reported, not only the first."""
        outcome = validate_definition({
            "name": "Bad-Name",
            "request": {"method": "FETCH"},
            "allowed_hosts": [],
        }, "bad.yaml")
        assert isinstance(outcome, InvalidDefinition)
        fields = {v.field for v in outcome.violations}
        assert "name" in fields
        assert "description" in fields
        assert "request.method" in fields
        assert "request.url" in fields
        assert "allowed_hosts" in fields
        assert outcome.code == ERROR_DEFINITION_INVALID

    def test_parameter_violation_location(self) -> None:
        outcome = validate_definition({
            "name": "p",
            "description": "d",
            "parameters": {"count": {"type": "float"}},
            "request": {"method": "GET", "url": "https://api.example.com"},
            "allowed_hosts": ["api.example.com"],
        })
        assert isinstance(outcome, InvalidDefinition)
        assert outcome.violations[0].field == "parameters.count.type"

    def test_value_error_prefix_stripped(self) -> None:
        outcome = validate_definition({
            "name": "UPPER",
            "description": "d",
            "request": {"method": "GET", "url": "https://api.example.com"},
            "allowed_hosts": ["api.example.com"],
        })
        assert isinstance(outcome, InvalidDefinition)
        assert outcome.violations[0].message.startswith("Invalid tool name")

    def test_to_error(self) -> None:
        outcome = validate_definition({}, "empty.yaml")
        assert isinstance(outcome, InvalidDefinition)
        error = outcome.to_error()
        assert isinstance(error, DefinitionInvalidError)
        assert error.source == "empty.yaml"
        assert error.violations

    def test_non_string_enum_accepted(self) -> None:
        """An enum on a non-string parameter loads; it is just not advertised."""
        outcome = parse_definition_text(
            VALID.format(name="levels")
            + "parameters:\n  level:\n    type: integer\n    enum: [1, 2, 3]\n",
            "levels.yaml",
        )
        assert isinstance(outcome, ValidDefinition)
        assert outcome.definition.parameters["level"].enum == [1, 2, 3]
        assert "enum" not in build_parameter_schema(outcome.definition.parameters)["properties"]["level"]

    def test_invalid_yaml(self) -> None:
        outcome = parse_definition_text("name: [unclosed", "broken.yaml")
        assert isinstance(outcome, InvalidDefinition)
        assert outcome.code == ERROR_DEFINITION_PARSE
        assert "Invalid YAML" in outcome.violations[0].message


class TestDefinitionLoader:
    """Tests for DefinitionLoader."""

    def test_missing_directory_is_empty(self, temp_dir: Path) -> None:
        report = DefinitionLoader(temp_dir / "nowhere").load()
        assert report.definitions == []
        assert report.rejected == []

    def test_empty_directory(self, agent_dir: Path) -> None:
        assert DefinitionLoader(agent_dir).load().definitions == []

    def test_loads_valid_files(self, agent_dir: Path, write_tool) -> None:
        write_tool("b.yaml", VALID.format(name="beta"))
        write_tool("a.yml", VALID.format(name="alpha"))
        report = DefinitionLoader(agent_dir).load()
        assert report.names == ["alpha", "beta"]

    def test_invalid_file_does_not_block_siblings(self, agent_dir: Path, write_tool) -> None:
        """A bad file is excluded; its siblings still load."""
        write_tool("good.yaml", VALID.format(name="good"))
        write_tool("no_hosts.yaml", """
name: no_hosts
description: Missing hosts
request:
  method: GET
  url: https://api.example.com
allowed_hosts: []
""")
        write_tool("no_desc.yaml", """
name: no_desc
request:
  method: GET
  url: https://api.example.com
allowed_hosts: [api.example.com]
""")
        write_tool("bad_method.yaml", """
name: bad_method
description: Bad method
request:
  method: FETCH
  url: https://api.example.com
allowed_hosts: [api.example.com]
""")
        write_tool("no_url.yaml", """
name: no_url
description: No URL
request:
  method: GET
allowed_hosts: [api.example.com]
""")
        write_tool("no_name.yaml", """
description: No name
request:
  method: GET
  url: https://api.example.com
allowed_hosts: [api.example.com]
""")
        write_tool("broken.yaml", "name: [unclosed")

        report = DefinitionLoader(agent_dir).load()
        assert report.names == ["good"]
        assert sorted(r.source for r in report.rejected) == [
            "bad_method.yaml",
            "broken.yaml",
            "no_desc.yaml",
            "no_hosts.yaml",
            "no_name.yaml",
            "no_url.yaml",
        ]

    def test_non_yaml_files_ignored(self, agent_dir: Path, write_tool) -> None:
        write_tool("notes.txt", "not a tool")
        write_tool("tool.json", "{}")
        write_tool("real.yaml", VALID.format(name="real"))
        report = DefinitionLoader(agent_dir).load()
        assert report.names == ["real"]
        assert report.rejected == []

    def test_subdirectories_ignored(self, agent_dir: Path, write_tool) -> None:
        (agent_dir / "api-tools" / "nested.yaml").mkdir()
        write_tool("real.yaml", VALID.format(name="real"))
        assert DefinitionLoader(agent_dir).load().names == ["real"]

    def test_duplicate_name_rejected(self, agent_dir: Path, write_tool) -> None:
        """The first file (by name) wins; later duplicates are rejected."""
        write_tool("a.yaml", VALID.format(name="same"))
        write_tool("b.yaml", VALID.format(name="same"))
        report = DefinitionLoader(agent_dir).load()
        assert report.names == ["same"]
        assert len(report.rejected) == 1
        assert report.rejected[0].source == "b.yaml"
        assert report.rejected[0].code == ERROR_DEFINITION_DUPLICATE
        assert "a.yaml" in report.rejected[0].violations[0].message

    def test_rescans_every_call(self, agent_dir: Path, write_tool) -> None:
        """No cache: changes on disk show up on the next load."""
        loader = DefinitionLoader(agent_dir)
        assert loader.load().names == []
        write_tool("new.yaml", VALID.format(name="new"))
        assert loader.load().names == ["new"]
        (agent_dir / "api-tools" / "new.yaml").unlink()
        assert loader.load().names == []

    def test_custom_tools_dirname(self, temp_dir: Path) -> None:
        (temp_dir / "tools").mkdir()
        (temp_dir / "tools" / "x.yaml").write_text(VALID.format(name="x"))
        assert DefinitionLoader(temp_dir, "tools").load().names == ["x"]

    def test_report_get(self, agent_dir: Path, write_tool) -> None:
        write_tool("x.yaml", VALID.format(name="x"))
        report = DefinitionLoader(agent_dir).load()
        assert report.get("x") is not None
        assert report.get("y") is None

    def test_full_definition(self, agent_dir: Path, write_tool, send_message_yaml: str) -> None:
        write_tool("send_message.yaml", send_message_yaml)
        definition = DefinitionLoader(agent_dir).load().definitions[0]
        assert definition.request.method == "POST"
        assert definition.request.body is not None
        assert definition.request.body.type == "json"
        assert definition.request.body.content == {"text": "{{params.text}}"}
        assert definition.parameters["text"].required is True
        assert definition.parameters["priority"].enum == ["low", "high"]
        assert definition.requires_env == ["EXAMPLE_TOKEN"]


class TestLoadToolDefinitions:
    """Tests for the logging convenience wrapper."""

    def test_logs_rejections(self, agent_dir: Path, write_tool, caplog: pytest.LogCaptureFixture) -> None:
        write_tool("good.yaml", VALID.format(name="good"))
        write_tool("bad.yaml", "name: Bad\n")
        with caplog.at_level(logging.WARNING, logger="apitools.definitions.loader"):
            definitions = load_tool_definitions(agent_dir)
        assert [d.name for d in definitions] == ["good"]
        assert "bad.yaml" in caplog.text


class TestLoadDefinitionFile:
    """Tests for single-file loading."""

    def test_valid_file(self, write_tool) -> None:
        path = write_tool("one.yaml", VALID.format(name="one"))
        assert load_definition_file(path).name == "one"

    def test_invalid_file_raises(self, write_tool) -> None:
        path = write_tool("bad.yaml", "name: Bad\n")
        with pytest.raises(DefinitionInvalidError) as exc_info:
            load_definition_file(path)
        assert exc_info.value.source == "bad.yaml"
