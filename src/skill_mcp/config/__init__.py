"""
Configuration module for skill-mcp.

Uses pydantic-settings for environment variable and YAML loading.
"""

from skill_mcp.config.settings import Settings
from skill_mcp.config.sources import ConfigFileError
from skill_mcp.config.types import LoggingConfig, McpConfig, SkillsConfig

__all__ = ["ConfigFileError", "LoggingConfig", "McpConfig", "Settings", "SkillsConfig"]
