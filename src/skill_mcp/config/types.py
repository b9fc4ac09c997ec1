"""Configuration type definitions for skill-mcp settings.

These are the "config section" types nested within the main Settings class:
- McpConfig: connection timeouts and client identity
- SkillsConfig: extra skill search paths, global/project toggles
- LoggingConfig: log level

All types use `extra="allow"` to preserve unknown fields, so a config file
can be audited for typos with `get_extra_fields()`.
"""

import typing as _typing

import pydantic as _pydantic

import skill_mcp.constants as constants

# =============================================================================
# Base class with introspection
# =============================================================================


class ConfigBase(_pydantic.BaseModel):
    """
    Base class for all config types.

    Unknown fields are preserved rather than silently dropped.
    """

    model_config = _pydantic.ConfigDict(extra="allow")

    def get_extra_fields(self) -> dict[str, _typing.Any]:
        """
        Return fields that were provided but not in the schema.

        Returns:
            Dict of field_name → value for all unrecognized fields.
        """
        return dict(self.model_extra) if self.model_extra else {}

    def has_extra_fields(self) -> bool:
        """Check if this config has any unrecognized fields."""
        return bool(self.model_extra)


# =============================================================================
# MCP Connection Settings
# =============================================================================


class McpConfig(ConfigBase):
    """
    MCP server connection settings.

    YAML section: mcp.*
    """

    handshake_timeout: float = _pydantic.Field(
        default=constants.DEFAULT_HANDSHAKE_TIMEOUT, gt=0
    )
    """Seconds to wait for the initialize exchange after spawning."""

    request_timeout: float = _pydantic.Field(
        default=constants.DEFAULT_REQUEST_TIMEOUT, gt=0
    )
    """Seconds to wait for any single request (servers may override)."""

    close_grace_period: float = _pydantic.Field(
        default=constants.DEFAULT_CLOSE_GRACE_PERIOD, ge=0
    )
    """Seconds a server gets to exit after its stdin is closed before it is killed."""

    client_name: str = "skill-mcp"
    """Client name reported in the initialize request."""

    client_version: str | None = None
    """Client version reported in the initialize request (None: package version)."""


# =============================================================================
# Skill Discovery Settings
# =============================================================================


class SkillsConfig(ConfigBase):
    """
    Skill discovery settings.

    YAML section: skills.*
    """

    search_paths: list[str] = _pydantic.Field(default_factory=list)
    """Additional directories to search for skills."""

    include_global: bool = True
    """Search ~/.config/skill-mcp/skills."""

    include_project: bool = True
    """Search <project>/.skill-mcp/skills."""


# =============================================================================
# Logging Settings
# =============================================================================


class LoggingConfig(ConfigBase):
    """
    Logging settings.

    YAML section: logging.*
    """

    level: _typing.Literal["debug", "info", "warning", "error"] = "warning"
    """Log level used by the command-line interface."""
