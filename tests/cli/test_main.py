"""Tests for CLI main module."""

import json as _json
import os as _os
import pathlib as _pathlib

import click.testing as _click_testing
import pytest as _pytest

import skill_mcp
import skill_mcp.cli as cli
import skill_mcp.skills as skills
import tests.conftest as conftest


@_pytest.fixture
def project(tmp_path: _pathlib.Path) -> _pathlib.Path:
    root = tmp_path / "project"
    skills_path = skills.get_project_skills_path(root)
    conftest.write_mcp_skill(skills_path, "db", description="Database access")
    conftest.write_skill(skills_path, "notes", description="Take notes", body="Write it down.")
    return root


@_pytest.fixture
def runner(tmp_path: _pathlib.Path) -> _click_testing.CliRunner:
    """Runner isolated from the user's home, config and skill paths."""
    env = {
        k: v
        for k, v in _os.environ.items()
        if not k.startswith(conftest.ENV_PREFIXES_TO_CLEAR)
    }
    env["HOME"] = str(tmp_path / "home")
    env["SKILL_MCP_CONFIG_DIR"] = str(tmp_path / "user-config")
    env["SKILL_MCP_MCP__CLOSE_GRACE_PERIOD"] = "1"
    env["SKILL_MCP_LOGGING__LEVEL"] = "error"
    return _click_testing.CliRunner(env=env)


def _invoke(runner: _click_testing.CliRunner, project: _pathlib.Path, *args: str):
    return runner.invoke(cli.cli, ["--project-root", str(project), *args])


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_help_lists_commands(self, runner: _click_testing.CliRunner) -> None:
        result = runner.invoke(cli.cli, ["--help"])
        assert result.exit_code == 0
        for cmd in ["list", "servers", "show", "invoke"]:
            assert cmd in result.output, f"Command '{cmd}' missing from help"

    def test_version(self, runner: _click_testing.CliRunner) -> None:
        result = runner.invoke(cli.cli, ["--version"])
        assert result.exit_code == 0
        assert skill_mcp.__version__ in result.output

    def test_bad_config_exits_1(
        self, runner: _click_testing.CliRunner, project: _pathlib.Path
    ) -> None:
        config_path = project / ".skill-mcp" / "config.yaml"
        config_path.write_text("mcp: [broken\n")
        result = _invoke(runner, project, "list")
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "invalid YAML" in result.output


class TestListCommands:
    """Tests for list and servers."""

    def test_list_table(self, runner: _click_testing.CliRunner, project: _pathlib.Path) -> None:
        result = _invoke(runner, project, "list")
        assert result.exit_code == 0
        assert "Skill Discovery Paths:" in result.output
        assert "db" in result.output
        assert "notes" in result.output
        assert "project" in result.output

    def test_list_json(self, runner: _click_testing.CliRunner, project: _pathlib.Path) -> None:
        result = _invoke(runner, project, "list", "--json")
        assert result.exit_code == 0
        data = _json.loads(result.output)
        assert data["skill_count"] == 2
        by_name = {s["name"]: s for s in data["skills"]}
        assert by_name["db"]["mcp_servers"] == ["fake"]
        assert by_name["notes"]["mcp_servers"] == []

    def test_list_empty(self, runner: _click_testing.CliRunner, tmp_path: _pathlib.Path) -> None:
        result = _invoke(runner, tmp_path / "empty", "list")
        assert result.exit_code == 0
        assert "No skills found." in result.output

    def test_servers(self, runner: _click_testing.CliRunner, project: _pathlib.Path) -> None:
        result = _invoke(runner, project, "servers")
        assert result.exit_code == 0
        assert "fake" in result.output
        assert "db" in result.output

    def test_servers_json(self, runner: _click_testing.CliRunner, project: _pathlib.Path) -> None:
        result = _invoke(runner, project, "servers", "--json")
        assert result.exit_code == 0
        assert _json.loads(result.output) == [{"server": "fake", "skill": "db"}]


class TestToolCommands:
    """Tests for show and invoke (these spawn the fake server)."""

    def test_show_plain_skill(
        self, runner: _click_testing.CliRunner, project: _pathlib.Path
    ) -> None:
        result = _invoke(runner, project, "show", "notes")
        assert result.exit_code == 0
        assert "## Skill: notes" in result.output
        assert "Write it down." in result.output

    def test_show_mcp_skill(self, runner: _click_testing.CliRunner, project: _pathlib.Path) -> None:
        result = _invoke(runner, project, "show", "db")
        assert result.exit_code == 0
        assert "## Available MCP Servers" in result.output
        assert "#### `echo`" in result.output

    def test_show_unknown_skill(
        self, runner: _click_testing.CliRunner, project: _pathlib.Path
    ) -> None:
        result = _invoke(runner, project, "show", "nope")
        assert result.exit_code == 1
        assert 'Skill "nope" not found. Available skills: db, notes' in result.output

    def test_invoke_tool(self, runner: _click_testing.CliRunner, project: _pathlib.Path) -> None:
        result = _invoke(
            runner, project, "invoke", "fake", "--tool", "add", "--arguments", '{"a": 1, "b": 2}'
        )
        assert result.exit_code == 0
        assert _json.loads(result.output)["content"][0]["text"] == "3"

    def test_invoke_resource_with_grep(
        self, runner: _click_testing.CliRunner, project: _pathlib.Path
    ) -> None:
        result = _invoke(
            runner, project, "invoke", "fake", "--resource", "memory://notes", "--grep", "contents of"
        )
        assert result.exit_code == 0
        assert result.output.strip() == '"text": "contents of memory://notes"'

    def test_invoke_without_operation(
        self, runner: _click_testing.CliRunner, project: _pathlib.Path
    ) -> None:
        result = _invoke(runner, project, "invoke", "fake")
        assert result.exit_code == 1
        assert "Missing operation." in result.output

    def test_invoke_unknown_server(
        self, runner: _click_testing.CliRunner, project: _pathlib.Path
    ) -> None:
        result = _invoke(runner, project, "invoke", "ghost", "--tool", "x")
        assert result.exit_code == 1
        assert 'MCP server "ghost" not found.' in result.output
