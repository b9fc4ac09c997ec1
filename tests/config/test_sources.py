"""Tests for the layered YAML settings source and its helpers."""

import os as _os
import pathlib as _pathlib
import unittest.mock as _mock

import pytest as _pytest

import skill_mcp.config as config
import skill_mcp.config.sources as sources


class TestDeepMerge:
    """Tests for deep_merge function."""

    def test_nested_mappings_merged(self) -> None:
        base = {"mcp": {"a": 1, "b": 2}, "x": 1}
        override = {"mcp": {"b": 3}, "y": 2}
        assert sources.deep_merge(base, override) == {"mcp": {"a": 1, "b": 3}, "x": 1, "y": 2}

    def test_lists_replaced(self) -> None:
        base = {"skills": {"search_paths": ["a"]}}
        override = {"skills": {"search_paths": ["b"]}}
        assert sources.deep_merge(base, override) == {"skills": {"search_paths": ["b"]}}

    def test_scalar_replaces_mapping(self) -> None:
        assert sources.deep_merge({"a": {"b": 1}}, {"a": None}) == {"a": None}

    def test_inputs_unchanged(self) -> None:
        base = {"a": {"b": 1}}
        sources.deep_merge(base, {"a": {"c": 2}})
        assert base == {"a": {"b": 1}}


class TestLoadYamlFile:
    """Tests for load_yaml_file function."""

    def test_mapping(self, tmp_path: _pathlib.Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("mcp:\n  request_timeout: 5\n")
        assert sources.load_yaml_file(path) == {"mcp": {"request_timeout": 5}}

    def test_empty_file(self, tmp_path: _pathlib.Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("")
        assert sources.load_yaml_file(path) is None

    def test_non_mapping_rejected(self, tmp_path: _pathlib.Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("- a\n- b\n")
        with _pytest.raises(sources.ConfigFileError) as exc_info:
            sources.load_yaml_file(path)
        assert exc_info.value.path == path
        assert "got list" in str(exc_info.value)

    def test_missing_file(self, tmp_path: _pathlib.Path) -> None:
        with _pytest.raises(sources.ConfigFileError) as exc_info:
            sources.load_yaml_file(tmp_path / "nope.yaml")
        assert "cannot read file" in str(exc_info.value)


class TestLayeredYamlSettingsSource:
    """Tests for LayeredYamlSettingsSource."""

    def test_no_files(self, tmp_path: _pathlib.Path) -> None:
        source = sources.LayeredYamlSettingsSource(
            config.Settings, tmp_path, user_config_path=tmp_path / "missing.yaml"
        )
        assert source() == {}
        assert source.get_loaded_layers() == []

    def test_layers_reported_lowest_first(self, tmp_path: _pathlib.Path) -> None:
        user = tmp_path / "user.yaml"
        user.write_text("logging:\n  level: info\n")
        project_config = sources.get_project_config_path(tmp_path)
        project_config.parent.mkdir()
        project_config.write_text("logging:\n  level: debug\n")

        source = sources.LayeredYamlSettingsSource(
            config.Settings, tmp_path, user_config_path=user
        )

        assert source.get_loaded_layers() == [("user", user), ("project", project_config)]
        assert source() == {"logging": {"level": "debug"}}

    def test_field_value(self, tmp_path: _pathlib.Path) -> None:
        user = tmp_path / "user.yaml"
        user.write_text("mcp:\n  request_timeout: 9\n")
        source = sources.LayeredYamlSettingsSource(config.Settings, user_config_path=user)
        field = config.Settings.model_fields["mcp"]
        assert source.get_field_value(field, "mcp") == ({"request_timeout": 9}, "mcp", True)
        assert source.get_field_value(field, "skills") == (None, "skills", False)


class TestConfigPaths:
    def test_config_dir_env_override(self, tmp_path: _pathlib.Path) -> None:
        with _mock.patch.dict(_os.environ, {sources.ENV_CONFIG_DIR: str(tmp_path)}):
            assert sources.get_user_config_path() == tmp_path / "config.yaml"

    def test_project_config_path(self, tmp_path: _pathlib.Path) -> None:
        assert sources.get_project_config_path(tmp_path) == (
            tmp_path / ".skill-mcp" / "config.yaml"
        )
