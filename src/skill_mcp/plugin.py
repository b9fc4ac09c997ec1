"""
Host integration: one object wiring skills, connections, sessions and tools.

A host creates the plugin once, forwards its session lifecycle events to
handle_event(), exposes ``tools`` to the model, and calls shutdown() when
the process exits.
"""

from __future__ import annotations

import logging as _logging
import pathlib as _pathlib
import typing as _typing

import skill_mcp.config as config
import skill_mcp.mcp.manager as manager_module
import skill_mcp.session.lifecycle as lifecycle
import skill_mcp.skills.registry as registry_module
import skill_mcp.tools.base as base
import skill_mcp.tools.skill as skill_tool
import skill_mcp.tools.skill_mcp as skill_mcp_tool

_logger = _logging.getLogger(__name__)


class SkillMcpPlugin:
    """Skills with embedded MCP servers, packaged for a host."""

    def __init__(
        self,
        settings: config.Settings,
        project_root: _pathlib.Path | None = None,
        *,
        registry: registry_module.SkillRegistry | None = None,
        manager: manager_module.SkillMcpManager | None = None,
    ) -> None:
        """
        Initialize the plugin.

        Skills are discovered immediately; a discovery failure leaves the
        plugin with no skills rather than failing the host.

        Args:
            settings: Loaded settings.
            project_root: Project whose .skill-mcp/skills are searched.
            registry: Pre-built registry (skips discovery setup).
            manager: Pre-built connection manager.
        """
        self._settings = settings
        self._project_root = project_root
        self._registry = registry or registry_module.SkillRegistry(
            project_root, config=settings.skills
        )
        try:
            self._registry.discover()
        except Exception:
            _logger.exception("Skill discovery failed; continuing without skills")
            self._registry = registry_module.SkillRegistry.from_skills([])

        self._manager = manager or manager_module.SkillMcpManager(settings.mcp)
        self._sessions = lifecycle.SessionTracker(self._manager)

        current = self._current_session_id
        self._tools: dict[str, base.Tool] = {
            tool.name: tool
            for tool in (
                skill_tool.SkillTool(self._registry, self._manager, current),
                skill_mcp_tool.SkillMcpTool(self._registry, self._manager, current),
            )
        }

    def _current_session_id(self) -> str:
        return self._sessions.current_session_id

    @property
    def settings(self) -> config.Settings:
        return self._settings

    @property
    def registry(self) -> registry_module.SkillRegistry:
        return self._registry

    @property
    def manager(self) -> manager_module.SkillMcpManager:
        return self._manager

    @property
    def sessions(self) -> lifecycle.SessionTracker:
        return self._sessions

    @property
    def tools(self) -> dict[str, base.Tool]:
        """Tools by name ("skill", "skill_mcp")."""
        return dict(self._tools)

    async def handle_event(
        self,
        event_type: lifecycle.SessionEvent | str,
        session_id: str | None = None,
    ) -> None:
        """Forward a host lifecycle event to the session tracker."""
        await self._sessions.handle_event(event_type, session_id)

    async def execute_tool(
        self,
        name: str,
        input: dict[str, _typing.Any],
    ) -> base.ToolResult:
        """Run a tool by name in the current session."""
        tool = self._tools.get(name)
        if tool is None:
            return base.ToolResult.failure(
                f"Unknown tool '{name}'. Available tools: {', '.join(sorted(self._tools))}"
            )
        return await tool.execute(input)

    async def shutdown(self) -> None:
        """Close every MCP connection."""
        await self._manager.disconnect_all()


def create_plugin(
    project_root: _pathlib.Path | str | None = None,
    settings: config.Settings | None = None,
) -> SkillMcpPlugin:
    """
    Create a plugin for a project.

    Args:
        project_root: Project directory (default: current directory).
        settings: Settings to use (default: loaded for the project).
    """
    root = _pathlib.Path(project_root) if project_root is not None else _pathlib.Path.cwd()
    if settings is None:
        settings = config.Settings.load(root)
    return SkillMcpPlugin(settings, root)
