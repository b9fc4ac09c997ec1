"""
Skills: markdown instruction documents, optionally bundling MCP servers.

A skill lives in a directory with a SKILL.md file (or <dirname>.md), or is
a standalone markdown file. MCP servers are declared in the frontmatter
under ``mcp:`` or in a sibling mcp.json.
"""

from skill_mcp.skills.discovery import (
    SkillDiscovery,
    get_global_skills_path,
    get_project_skills_path,
    get_skill_search_paths,
)
from skill_mcp.skills.registry import SkillRegistry
from skill_mcp.skills.skill import (
    Skill,
    SkillFrontmatter,
    load_mcp_json,
    load_skill,
    parse_skill_markdown,
)

__all__ = [
    "Skill",
    "SkillDiscovery",
    "SkillFrontmatter",
    "SkillRegistry",
    "get_global_skills_path",
    "get_project_skills_path",
    "get_skill_search_paths",
    "load_mcp_json",
    "load_skill",
    "parse_skill_markdown",
]
