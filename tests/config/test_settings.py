"""
Tests for Settings loading.

Tests verify precedence: constructor > environment > project YAML > user
YAML > defaults.
"""

import os as _os
import pathlib as _pathlib

import pydantic as _pydantic
import pytest as _pytest

import skill_mcp.config as config
import skill_mcp.config.settings as settings_module


def _write_yaml(path: _pathlib.Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class TestDefaults:
    """Tests for default values."""

    def test_mcp_defaults(self, clean_settings: config.Settings) -> None:
        assert clean_settings.mcp.handshake_timeout == 30.0
        assert clean_settings.mcp.request_timeout == 60.0
        assert clean_settings.mcp.close_grace_period == 5.0
        assert clean_settings.mcp.client_name == "skill-mcp"
        assert clean_settings.mcp.client_version is None

    def test_skills_defaults(self, clean_settings: config.Settings) -> None:
        assert clean_settings.skills.search_paths == []
        assert clean_settings.skills.include_global
        assert clean_settings.skills.include_project

    def test_logging_default(self, clean_settings: config.Settings) -> None:
        assert clean_settings.logging.level == "warning"

    def test_no_extra_fields(self, clean_settings: config.Settings) -> None:
        assert clean_settings.get_extra_fields() == {}


class TestEnvironment:
    """Tests for SKILL_MCP_* environment variables."""

    def test_nested_env_override(self, isolated_env) -> None:
        with isolated_env:
            _os.environ["SKILL_MCP_MCP__REQUEST_TIMEOUT"] = "12.5"
            _os.environ["SKILL_MCP_SKILLS__INCLUDE_GLOBAL"] = "false"
            settings = config.Settings.construct_without_dotenv()
        assert settings.mcp.request_timeout == 12.5
        assert settings.skills.include_global is False

    def test_invalid_env_value_rejected(self, isolated_env) -> None:
        with isolated_env:
            _os.environ["SKILL_MCP_MCP__REQUEST_TIMEOUT"] = "-1"
            with _pytest.raises(_pydantic.ValidationError):
                config.Settings.construct_without_dotenv()

    def test_constructor_wins(self, isolated_env) -> None:
        with isolated_env:
            _os.environ["SKILL_MCP_LOGGING__LEVEL"] = "error"
            settings = config.Settings.construct_without_dotenv(logging={"level": "debug"})
        assert settings.logging.level == "debug"


class TestYamlLayers:
    """Tests for the user and project config files."""

    def test_user_config(self, isolated_env, tmp_path: _pathlib.Path) -> None:
        _write_yaml(
            tmp_path / "user-config" / "config.yaml",
            "mcp:\n  request_timeout: 15\nlogging:\n  level: info\n",
        )
        with isolated_env:
            settings = config.Settings.load(tmp_path / "project")
        assert settings.mcp.request_timeout == 15.0
        assert settings.logging.level == "info"

    def test_project_overrides_user_per_key(
        self, isolated_env, tmp_path: _pathlib.Path
    ) -> None:
        _write_yaml(
            tmp_path / "user-config" / "config.yaml",
            "mcp:\n  request_timeout: 15\n  handshake_timeout: 7\n",
        )
        project = tmp_path / "project"
        _write_yaml(project / ".skill-mcp" / "config.yaml", "mcp:\n  request_timeout: 20\n")
        with isolated_env:
            settings = config.Settings.load(project)
        assert settings.mcp.request_timeout == 20.0
        assert settings.mcp.handshake_timeout == 7.0

    def test_env_beats_yaml(self, isolated_env, tmp_path: _pathlib.Path) -> None:
        project = tmp_path / "project"
        _write_yaml(project / ".skill-mcp" / "config.yaml", "mcp:\n  request_timeout: 20\n")
        with isolated_env:
            _os.environ["SKILL_MCP_MCP__REQUEST_TIMEOUT"] = "3"
            settings = config.Settings.load(project)
        assert settings.mcp.request_timeout == 3.0

    def test_skill_search_paths_from_yaml(self, isolated_env, tmp_path: _pathlib.Path) -> None:
        project = tmp_path / "project"
        _write_yaml(
            project / ".skill-mcp" / "config.yaml",
            "skills:\n  search_paths:\n    - /opt/skills\n  include_global: false\n",
        )
        with isolated_env:
            settings = config.Settings.load(project)
        assert settings.skills.search_paths == ["/opt/skills"]
        assert settings.skills.include_global is False

    def test_unknown_keys_preserved(self, isolated_env, tmp_path: _pathlib.Path) -> None:
        project = tmp_path / "project"
        _write_yaml(
            project / ".skill-mcp" / "config.yaml",
            "mcpp:\n  typo: true\nmcp:\n  request_timout: 5\n",
        )
        with isolated_env:
            settings = config.Settings.load(project)
        assert settings.get_extra_fields() == {"mcpp": {"typo": True}}
        assert settings.mcp.get_extra_fields() == {"request_timout": 5}
        assert settings.mcp.has_extra_fields()

    def test_malformed_yaml_raises(self, isolated_env, tmp_path: _pathlib.Path) -> None:
        project = tmp_path / "project"
        _write_yaml(project / ".skill-mcp" / "config.yaml", "mcp: [unclosed\n")
        with isolated_env, _pytest.raises(config.ConfigFileError) as exc_info:
            config.Settings.load(project)
        assert "invalid YAML" in str(exc_info.value)

    def test_project_root_not_leaked(self, isolated_env, tmp_path: _pathlib.Path) -> None:
        with isolated_env:
            config.Settings.load(tmp_path)
        assert settings_module._project_root_var.get() is None
