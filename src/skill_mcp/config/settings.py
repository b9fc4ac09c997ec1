"""
Settings configuration using pydantic-settings.

Loads configuration from:
1. Constructor arguments (highest precedence)
2. Environment variables with SKILL_MCP_ prefix
3. .env file (only if SKILL_MCP_ENV_FILE names one)
4. Layered YAML config files:
   - Project config: .skill-mcp/config.yaml (highest)
   - User config: ~/.config/skill-mcp/config.yaml

Nested config uses double underscore delimiter:
  SKILL_MCP_MCP__REQUEST_TIMEOUT=30
  SKILL_MCP_SKILLS__INCLUDE_GLOBAL=false
"""

import contextvars as _contextvars
import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic as _pydantic
import pydantic_settings as _pydantic_settings

import skill_mcp.config.sources as sources
import skill_mcp.config.types as types

# Project root used by the YAML source while Settings.load() is running
_project_root_var: _contextvars.ContextVar[_pathlib.Path | None] = _contextvars.ContextVar(
    "skill_mcp_project_root", default=None
)


def _get_env_file() -> str | None:
    """Determine which .env file to load.

    Only an explicit SKILL_MCP_ENV_FILE that exists is used; otherwise
    configuration comes from environment variables and YAML files alone.
    """
    if env_file := _os.environ.get("SKILL_MCP_ENV_FILE"):
        if _pathlib.Path(env_file).exists():
            return env_file
    return None


class Settings(_pydantic_settings.BaseSettings):
    """
    skill-mcp configuration settings.

    All settings can be overridden via environment variables with SKILL_MCP_ prefix.
    For nested config, use double underscore: SKILL_MCP_MCP__HANDSHAKE_TIMEOUT=10

    Config precedence (highest to lowest):
    1. Constructor arguments
    2. Environment variables (SKILL_MCP_*)
    3. .env file
    4. Project config (.skill-mcp/config.yaml)
    5. User config (~/.config/skill-mcp/config.yaml)
    6. Field defaults
    """

    model_config = _pydantic_settings.SettingsConfigDict(
        env_prefix="SKILL_MCP_",
        env_file=_get_env_file(),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="allow",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[_pydantic_settings.BaseSettings],
        init_settings: _pydantic_settings.PydanticBaseSettingsSource,
        env_settings: _pydantic_settings.PydanticBaseSettingsSource,
        dotenv_settings: _pydantic_settings.PydanticBaseSettingsSource,
        file_secret_settings: _pydantic_settings.PydanticBaseSettingsSource,
    ) -> tuple[_pydantic_settings.PydanticBaseSettingsSource, ...]:
        """
        Configure settings sources with precedence:
        1. init_settings (constructor args), highest
        2. env_settings (SKILL_MCP_* env vars)
        3. dotenv_settings (.env file)
        4. YAML config files (project over user)
        5. defaults via Field definitions, lowest
        """
        project_root = _project_root_var.get() or _pathlib.Path.cwd()

        return (
            init_settings,
            env_settings,
            dotenv_settings,
            sources.LayeredYamlSettingsSource(settings_cls, project_root),
            file_secret_settings,
        )

    @classmethod
    def load(
        cls,
        project_root: _pathlib.Path | str | None = None,
        **kwargs: _typing.Any,
    ) -> "Settings":
        """Create Settings reading project config from the given root (default: cwd)."""
        root = _pathlib.Path(project_root) if project_root is not None else None
        token = _project_root_var.set(root)
        try:
            return cls(**kwargs)
        finally:
            _project_root_var.reset(token)

    @classmethod
    def construct_without_dotenv(cls, **kwargs: _typing.Any) -> "Settings":
        """Create Settings from environment variables only, without loading .env file.

        Useful for test isolation and for reproducing issues without .env
        interference.
        """
        return cls(_env_file=None, **kwargs)  # type: ignore[call-arg]

    # =========================================================================
    # Nested config sections
    # =========================================================================

    mcp: types.McpConfig = _pydantic.Field(default_factory=types.McpConfig)
    """MCP connection settings (timeouts, client identity)."""

    skills: types.SkillsConfig = _pydantic.Field(default_factory=types.SkillsConfig)
    """Skill discovery settings."""

    logging: types.LoggingConfig = _pydantic.Field(default_factory=types.LoggingConfig)
    """Logging settings."""

    def get_extra_fields(self) -> dict[str, _typing.Any]:
        """Return top-level fields that were provided but are not recognized."""
        return dict(self.model_extra) if self.model_extra else {}
