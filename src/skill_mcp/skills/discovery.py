"""
Skill discovery from standard locations.

Skills are discovered from (lowest to highest priority):
1. ~/.config/skill-mcp/skills/ - User skills (global)
2. $SKILL_MCP_SKILL_PATH - Custom paths (colon-separated)
3. skills.search_paths from settings - Configured paths
4. Project .skill-mcp/skills/ - Project-local skills

Later sources have higher priority (project overrides global).

Within a search directory:
- hidden entries are skipped
- a directory (or symlink to one) is a skill if it holds SKILL.md,
  otherwise <dirname>.md
- a standalone *.md file is a skill named after its stem
"""

from __future__ import annotations

import logging as _logging
import os as _os
import pathlib as _pathlib
import typing as _typing

import skill_mcp.config.sources as config_sources
import skill_mcp.skills.skill as skill_module

if _typing.TYPE_CHECKING:
    import skill_mcp.config.types as _config_types

_logger = _logging.getLogger(__name__)

ENV_SKILL_PATH = "SKILL_MCP_SKILL_PATH"


def get_global_skills_path() -> _pathlib.Path:
    """Get the path to the global skills directory."""
    return _pathlib.Path.home() / ".config" / "skill-mcp" / "skills"


def get_project_skills_path(project_root: _pathlib.Path) -> _pathlib.Path:
    """Get the path to the project-local skills directory."""
    return project_root / config_sources.PROJECT_DIR_NAME / "skills"


def get_skill_search_paths(
    project_root: _pathlib.Path | None = None,
    config: _config_types.SkillsConfig | None = None,
) -> list[_pathlib.Path]:
    """
    Get all skill search paths in priority order.

    Args:
        project_root: Project root directory. If None, project skills
                      are not searched.
        config: Skill discovery settings (extra paths, global/project toggles).

    Returns:
        List of paths to search (lowest to highest priority).
    """
    paths: list[_pathlib.Path] = []

    if config is None or config.include_global:
        paths.append(get_global_skills_path())

    env_path = _os.environ.get(ENV_SKILL_PATH, "")
    for p in env_path.split(":"):
        p = p.strip()
        if p:
            paths.append(_pathlib.Path(p).expanduser())

    if config is not None:
        for p in config.search_paths:
            paths.append(_pathlib.Path(p).expanduser())

    if project_root is not None and (config is None or config.include_project):
        paths.append(get_project_skills_path(project_root))

    return paths


def load_skills_from_dir(
    search_path: _pathlib.Path,
    source: str,
) -> list[skill_module.Skill]:
    """
    Load every skill directly inside one search directory.

    Unreadable skills are skipped with a warning.

    Returns:
        Skills in directory-listing order (sorted by entry name).
    """
    skills: list[skill_module.Skill] = []
    try:
        entries = sorted(search_path.iterdir())
    except OSError as e:
        _logger.warning("Cannot list skill directory %s: %s", search_path, e)
        return skills

    for entry in entries:
        if entry.name.startswith("."):
            continue

        if entry.is_dir():
            resolved = entry.resolve()
            skill_file = resolved / skill_module.SKILL_FILENAME
            if not skill_file.is_file():
                skill_file = resolved / f"{entry.name}.md"
                if not skill_file.is_file():
                    continue
            base_dir = resolved
            default_name = entry.name
        elif entry.is_file() and entry.suffix == ".md":
            skill_file = entry
            base_dir = search_path
            default_name = entry.stem
        else:
            continue

        try:
            skills.append(
                skill_module.load_skill(
                    skill_file,
                    base_dir=base_dir,
                    default_name=default_name,
                    source=source,
                )
            )
        except (OSError, UnicodeDecodeError) as e:
            _logger.warning("Skipping unreadable skill %s: %s", skill_file, e)

    return skills


class SkillDiscovery:
    """
    Discovers skills from standard locations.

    Skills with the same name from later (higher priority) sources replace
    earlier ones.
    """

    def __init__(
        self,
        project_root: _pathlib.Path | None = None,
        search_paths: list[_pathlib.Path] | None = None,
        config: _config_types.SkillsConfig | None = None,
    ) -> None:
        """
        Initialize skill discovery.

        Args:
            project_root: Project root for local skill discovery.
            search_paths: Custom search paths (overrides default locations).
            config: Skill discovery settings.
        """
        self._project_root = project_root
        self._search_paths = search_paths
        self._config = config

    def get_search_paths(self) -> list[_pathlib.Path]:
        """Get the search paths in use."""
        if self._search_paths is not None:
            return self._search_paths
        return get_skill_search_paths(self._project_root, self._config)

    def _get_source_for_path(self, search_path: _pathlib.Path) -> str:
        """Determine the source type for a search path."""
        if search_path == get_global_skills_path():
            return "global"
        if self._project_root and search_path == get_project_skills_path(
            self._project_root
        ):
            return "project"
        return "custom"

    def discover(self) -> dict[str, skill_module.Skill]:
        """
        Discover all skills from search paths.

        Returns:
            Dict mapping skill name to Skill instance.
        """
        skills: dict[str, skill_module.Skill] = {}

        for search_path in self.get_search_paths():
            if not search_path.is_dir():
                continue

            source = self._get_source_for_path(search_path)
            for skill in load_skills_from_dir(search_path, source):
                if skill.name in skills:
                    _logger.debug(
                        "Skill %s from %s overrides %s",
                        skill.name,
                        skill.path,
                        skills[skill.name].path,
                    )
                    # Re-insert so the override takes the later position
                    del skills[skill.name]
                skills[skill.name] = skill

        return skills
