"""
Skill registry for managing available skills.

The registry coordinates skill discovery and answers the lookups the tools
need: skills by name, and which skill declares a given MCP server.
"""

from __future__ import annotations

import pathlib as _pathlib
import typing as _typing

import skill_mcp.mcp.config as mcp_config
import skill_mcp.skills.discovery as discovery
import skill_mcp.skills.skill as skill_module

if _typing.TYPE_CHECKING:
    import skill_mcp.config.types as _config_types


class SkillRegistry:
    """
    Registry for managing skills.

    Discovery runs lazily on first use; call discover() to rescan.
    """

    def __init__(
        self,
        project_root: _pathlib.Path | None = None,
        search_paths: list[_pathlib.Path] | None = None,
        config: _config_types.SkillsConfig | None = None,
    ) -> None:
        """
        Initialize the skill registry.

        Args:
            project_root: Project root for skill discovery.
            search_paths: Custom search paths (overrides defaults).
            config: Skill discovery settings.
        """
        self._project_root = project_root
        self._discovery = discovery.SkillDiscovery(project_root, search_paths, config)
        self._skills: dict[str, skill_module.Skill] | None = None

    @classmethod
    def from_skills(cls, skills: _typing.Iterable[skill_module.Skill]) -> SkillRegistry:
        """Build a registry over an explicit list of skills (no discovery)."""
        registry = cls(search_paths=[])
        registry._skills = {skill.name: skill for skill in skills}
        return registry

    def _ensure_discovered(self) -> dict[str, skill_module.Skill]:
        """Ensure skills have been discovered."""
        if self._skills is None:
            self._skills = self._discovery.discover()
        return self._skills

    def discover(self) -> None:
        """Force re-discovery of skills."""
        self._skills = None
        self._ensure_discovered()

    def get_search_paths(self) -> list[_pathlib.Path]:
        return self._discovery.get_search_paths()

    # Skill listing
    def list_skills(self) -> list[skill_module.Skill]:
        """
        List all discovered skills.

        Returns:
            Skills in discovery order.
        """
        return list(self._ensure_discovered().values())

    def get_skill(self, name: str) -> skill_module.Skill | None:
        """
        Get a skill by name.

        Args:
            name: Skill name.

        Returns:
            Skill instance or None if not found.
        """
        return self._ensure_discovered().get(name)

    def has_skill(self, name: str) -> bool:
        return self.get_skill(name) is not None

    # MCP server lookup
    def find_mcp_server(
        self,
        server_name: str,
    ) -> tuple[skill_module.Skill, mcp_config.McpServerConfig] | None:
        """
        Find the skill declaring a server.

        Skills are scanned in order; the first declaration wins.

        Returns:
            (skill, server config), or None if no skill declares it.
        """
        for skill in self.list_skills():
            server_config = skill.mcp_config.get(server_name)
            if server_config is not None:
                return skill, server_config
        return None

    def list_mcp_servers(self) -> list[tuple[str, str]]:
        """
        List every declared server.

        Returns:
            (server name, skill name) pairs in skill order.
        """
        return [
            (server_name, skill.name)
            for skill in self.list_skills()
            for server_name in skill.mcp_config
        ]

    # Serialization
    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        skills = self.list_skills()
        return {
            "project_root": str(self._project_root) if self._project_root else None,
            "skill_count": len(skills),
            "skills": [s.to_dict() for s in skills],
        }
