"""
Agent-facing tools: ``skill`` (load a skill) and ``skill_mcp`` (invoke its servers).
"""

from skill_mcp.tools.base import Tool, ToolResult
from skill_mcp.tools.skill import SkillTool
from skill_mcp.tools.skill_mcp import SkillMcpTool

__all__ = ["SkillMcpTool", "SkillTool", "Tool", "ToolResult"]
