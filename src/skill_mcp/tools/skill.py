"""
The ``skill`` tool: load a skill's instructions and show its MCP servers.

Loading a skill connects to each server it declares (in the current
session) and lists the tools, resources and prompts they offer, so the
model can follow up with ``skill_mcp``.
"""

from __future__ import annotations

import typing as _typing

import skill_mcp.constants as constants
import skill_mcp.tools.base as base
import skill_mcp.tools.formatting as formatting

if _typing.TYPE_CHECKING:
    import skill_mcp.mcp.manager as _manager
    import skill_mcp.skills.registry as _registry

_DESCRIPTION_NO_SKILLS = (
    "Load a skill to get detailed instructions for a specific task. "
    "No skills are currently available."
)

_DESCRIPTION_PREFIX = """Load a skill to get detailed instructions for a specific task.

Skills provide specialized knowledge and step-by-step guidance.
Use this when a task matches an available skill's description."""


class SkillTool(base.Tool):
    """Load a skill by name."""

    def __init__(
        self,
        registry: _registry.SkillRegistry,
        manager: _manager.SkillMcpManager | None = None,
        session_id_provider: _typing.Callable[[], str] | None = None,
    ) -> None:
        """
        Initialize the skill tool.

        Args:
            registry: Registry of available skills.
            manager: Connection manager. Without one, MCP servers are not listed.
            session_id_provider: Returns the current session id.
        """
        self._registry = registry
        self._manager = manager
        self._session_id_provider = session_id_provider or (
            lambda: constants.DEFAULT_SESSION_ID
        )

    @property
    def name(self) -> str:
        return constants.SKILL_TOOL_NAME

    @property
    def description(self) -> str:
        skills = self._registry.list_skills()
        if not skills:
            return _DESCRIPTION_NO_SKILLS
        return _DESCRIPTION_PREFIX + formatting.format_skills_xml(skills)

    @property
    def input_schema(self) -> dict[str, _typing.Any]:
        return {
            "type": "object",
            "properties": {
                "name": {
                    "type": "string",
                    "description": (
                        "The skill identifier from available_skills "
                        "(e.g., 'code-review' or 'my-skill')"
                    ),
                },
            },
            "required": ["name"],
        }

    async def execute(self, input: dict[str, _typing.Any]) -> base.ToolResult:
        name = self._require_input(input, "name", label="skill name")
        if isinstance(name, base.ToolResult):
            return name

        skill = self._registry.get_skill(name)
        if skill is None:
            available = ", ".join(s.name for s in self._registry.list_skills())
            return base.ToolResult.failure(
                f'Skill "{name}" not found. Available skills: {available or "none"}'
            )

        output = formatting.format_skill(skill)
        if self._manager is not None and skill.mcp_config:
            section = await formatting.render_mcp_capabilities(
                skill, self._manager, self._session_id_provider()
            )
            if section:
                output = f"{output}\n{section}"

        return base.ToolResult(success=True, output=output)
