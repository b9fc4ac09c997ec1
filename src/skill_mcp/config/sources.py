"""Custom pydantic-settings source for skill-mcp configuration.

Configuration layers (in precedence order, highest first):
1. Environment variables (handled by pydantic-settings)
2. Project config: .skill-mcp/config.yaml in the project root
3. User config: ~/.config/skill-mcp/config.yaml (or SKILL_MCP_CONFIG_DIR)

LayeredYamlSettingsSource handles layers 2-3. Nested mappings are merged
key by key; any other value in a higher layer replaces the lower one.

Environment variables:
- SKILL_MCP_CONFIG_DIR: Override user config directory (default: ~/.config/skill-mcp)
"""

import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic.fields as _pydantic_fields
import pydantic_settings as _pydantic_settings
import yaml as _yaml

# Environment variable for overriding user config directory
ENV_CONFIG_DIR = "SKILL_MCP_CONFIG_DIR"

# Project-level directory holding config.yaml and skills/
PROJECT_DIR_NAME = ".skill-mcp"


class ConfigFileError(Exception):
    """Error loading or parsing a configuration file."""

    def __init__(self, path: _pathlib.Path, message: str) -> None:
        self.path = path
        super().__init__(f"Error in config file {path}: {message}")


def deep_merge(
    base: dict[str, _typing.Any],
    override: _typing.Mapping[str, _typing.Any],
) -> dict[str, _typing.Any]:
    """
    Merge override into a copy of base.

    Mappings present in both are merged recursively; everything else in
    override replaces the value from base.
    """
    merged = dict(base)
    for key, value in override.items():
        existing = merged.get(key)
        if isinstance(existing, dict) and isinstance(value, _typing.Mapping):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = value
    return merged


def load_yaml_file(path: _pathlib.Path) -> dict[str, _typing.Any] | None:
    """
    Load a YAML config file.

    Returns:
        Parsed contents, or None if the file is empty.

    Raises:
        ConfigFileError: If the file cannot be read, is malformed YAML,
            or is not a mapping at the top level.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except PermissionError as e:
        raise ConfigFileError(path, f"permission denied: {e}") from e
    except OSError as e:
        raise ConfigFileError(path, f"cannot read file: {e}") from e

    try:
        parsed = _yaml.safe_load(content)
    except _yaml.YAMLError as e:
        raise ConfigFileError(path, f"invalid YAML: {e}") from e

    if parsed is None:
        return None

    if not isinstance(parsed, dict):
        type_name = type(parsed).__name__
        raise ConfigFileError(
            path,
            f"config must be a YAML mapping (dict), got {type_name}",
        )

    return parsed


class LayeredYamlSettingsSource(_pydantic_settings.PydanticBaseSettingsSource):
    """
    Settings source that merges the user and project YAML config files.

    Missing files are normal and skipped. Malformed files raise
    ConfigFileError so typos are surfaced rather than silently ignored.
    """

    def __init__(
        self,
        settings_cls: type[_pydantic_settings.BaseSettings],
        project_root: _pathlib.Path | None = None,
        *,
        user_config_path: _pathlib.Path | None = None,
    ) -> None:
        """
        Initialize the settings source.

        Args:
            settings_cls: The Settings class being populated.
            project_root: Optional project root path for project-level config.
            user_config_path: Override path for user config file (for testing).
                If not provided, uses SKILL_MCP_CONFIG_DIR or the default XDG path.
        """
        super().__init__(settings_cls)
        self._project_root = project_root
        self._user_config_path = user_config_path
        self._loaded_layers: list[tuple[str, _pathlib.Path]] = []
        self._merged = self._load_config_layers()

    def _load_config_layers(self) -> dict[str, _typing.Any]:
        merged: dict[str, _typing.Any] = {}

        user_path = self._user_config_path or get_user_config_path()
        if user_path.exists():
            content = load_yaml_file(user_path)
            if content:
                merged = deep_merge(merged, content)
                self._loaded_layers.append(("user", user_path))

        if self._project_root is not None:
            project_path = get_project_config_path(self._project_root)
            if project_path.exists():
                content = load_yaml_file(project_path)
                if content:
                    merged = deep_merge(merged, content)
                    self._loaded_layers.append(("project", project_path))

        return merged

    def get_loaded_layers(self) -> list[tuple[str, _pathlib.Path]]:
        """
        Get info about layers that were actually loaded.

        Returns:
            List of (layer_name, path) tuples, lowest precedence first.
        """
        return list(self._loaded_layers)

    def get_field_value(
        self,
        field: _pydantic_fields.FieldInfo,  # noqa: ARG002 - required by pydantic-settings interface
        field_name: str,
    ) -> tuple[_typing.Any, str, bool]:
        value = self._merged.get(field_name)
        if value is None:
            return None, field_name, False
        return value, field_name, isinstance(value, (dict, list))

    def __call__(self) -> dict[str, _typing.Any]:
        """
        Return the merged config as a plain dict for Pydantic validation.

        Unknown keys are included so they land in Settings.model_extra.
        """
        return dict(self._merged)


def get_user_config_dir() -> _pathlib.Path:
    """
    Get the user config directory.

    Respects SKILL_MCP_CONFIG_DIR if set, otherwise uses the XDG path.
    """
    config_dir_env = _os.environ.get(ENV_CONFIG_DIR)
    if config_dir_env:
        return _pathlib.Path(config_dir_env)
    return _pathlib.Path.home() / ".config" / "skill-mcp"


def get_user_config_path() -> _pathlib.Path:
    """Get the path to the user config file."""
    return get_user_config_dir() / "config.yaml"


def get_project_config_path(project_root: _pathlib.Path) -> _pathlib.Path:
    """Get the path to the project config file (.skill-mcp/config.yaml)."""
    return project_root / PROJECT_DIR_NAME / "config.yaml"
