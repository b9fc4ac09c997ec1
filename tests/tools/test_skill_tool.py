"""
Tests for the skill tool.

Loading a skill returns its instructions and, for skills that declare MCP
servers, the capabilities of each server in the current session.
"""

from __future__ import annotations

import pathlib as _pathlib

import pytest as _pytest

import skill_mcp.mcp.manager as manager
import skill_mcp.skills as skills
import skill_mcp.tools.skill as skill_tool
import tests.conftest as conftest


class TestSkillToolBasics:
    """Basic tool property tests."""

    def test_tool_name(self, skills_dir: _pathlib.Path) -> None:
        tool = skill_tool.SkillTool(skills.SkillRegistry(search_paths=[skills_dir]))
        assert tool.name == "skill"

    def test_description_without_skills(self, skills_dir: _pathlib.Path) -> None:
        tool = skill_tool.SkillTool(skills.SkillRegistry(search_paths=[skills_dir]))
        assert "No skills are currently available" in tool.description
        assert "<available_skills>" not in tool.description

    def test_description_lists_skills(self, skills_dir: _pathlib.Path) -> None:
        conftest.write_skill(skills_dir, "code-review", description="Review a diff")
        tool = skill_tool.SkillTool(skills.SkillRegistry(search_paths=[skills_dir]))
        assert "<available_skills>" in tool.description
        assert "<name>code-review</name>" in tool.description
        assert "<description>Review a diff</description>" in tool.description

    def test_input_schema_requires_name(self, skills_dir: _pathlib.Path) -> None:
        tool = skill_tool.SkillTool(skills.SkillRegistry(search_paths=[skills_dir]))
        schema = tool.input_schema
        assert schema["required"] == ["name"]
        assert schema["properties"]["name"]["type"] == "string"

    def test_api_format(self, skills_dir: _pathlib.Path) -> None:
        tool = skill_tool.SkillTool(skills.SkillRegistry(search_paths=[skills_dir]))
        api = tool.to_api_format()
        assert api["name"] == "skill"
        assert api["input_schema"] == tool.input_schema


class TestSkillToolExecute:
    """Tests for loading skills."""

    @_pytest.mark.asyncio
    async def test_missing_name(self, skills_dir: _pathlib.Path) -> None:
        tool = skill_tool.SkillTool(skills.SkillRegistry(search_paths=[skills_dir]))
        result = await tool.execute({})
        assert not result.success
        assert result.error == "No skill name provided"

    @_pytest.mark.asyncio
    async def test_unknown_skill_lists_available(self, skills_dir: _pathlib.Path) -> None:
        conftest.write_skill(skills_dir, "alpha")
        conftest.write_skill(skills_dir, "beta")
        tool = skill_tool.SkillTool(skills.SkillRegistry(search_paths=[skills_dir]))
        result = await tool.execute({"name": "gamma"})
        assert not result.success
        assert result.error == 'Skill "gamma" not found. Available skills: alpha, beta'

    @_pytest.mark.asyncio
    async def test_unknown_skill_with_none_available(self, skills_dir: _pathlib.Path) -> None:
        tool = skill_tool.SkillTool(skills.SkillRegistry(search_paths=[skills_dir]))
        result = await tool.execute({"name": "gamma"})
        assert result.error == 'Skill "gamma" not found. Available skills: none'

    @_pytest.mark.asyncio
    async def test_loads_plain_skill(self, skills_dir: _pathlib.Path) -> None:
        skill_dir = conftest.write_skill(skills_dir, "alpha", body="Follow these steps.")
        tool = skill_tool.SkillTool(skills.SkillRegistry(search_paths=[skills_dir]))
        result = await tool.execute({"name": "alpha"})
        assert result.success
        assert result.output == (
            f"## Skill: alpha\n\n**Base directory**: {skill_dir.resolve()}\n\nFollow these steps."
        )

    @_pytest.mark.asyncio
    async def test_servers_not_listed_without_manager(self, skills_dir: _pathlib.Path) -> None:
        conftest.write_mcp_skill(skills_dir, "db")
        tool = skill_tool.SkillTool(skills.SkillRegistry(search_paths=[skills_dir]))
        result = await tool.execute({"name": "db"})
        assert result.success
        assert "Available MCP Servers" not in result.output

    @_pytest.mark.asyncio
    async def test_lists_server_capabilities(
        self, skills_dir: _pathlib.Path, mcp_manager: manager.SkillMcpManager
    ) -> None:
        conftest.write_mcp_skill(skills_dir, "db")
        tool = skill_tool.SkillTool(
            skills.SkillRegistry(search_paths=[skills_dir]),
            mcp_manager,
            lambda: "sess-1",
        )
        result = await tool.execute({"name": "db"})

        assert result.success
        assert "\n## Available MCP Servers\n" in result.output
        assert "### fake" in result.output
        assert "#### `echo`" in result.output
        assert "#### `ask_ping`" in result.output
        assert "**Resources**: memory://notes, memory://todo" in result.output
        assert "**Prompts**: summarize" in result.output
        assert 'Use `skill_mcp` tool with `mcp_name="fake"` to invoke.' in result.output
        assert mcp_manager.get_connected_keys("sess-1") == [manager.ConnectionKey("sess-1", "fake")]

    @_pytest.mark.asyncio
    async def test_unstartable_server_reported(
        self,
        skills_dir: _pathlib.Path,
        tmp_path: _pathlib.Path,
        mcp_manager: manager.SkillMcpManager,
    ) -> None:
        conftest.write_mcp_skill(
            skills_dir, "broken", {"ghost": {"command": str(tmp_path / "missing")}}
        )
        tool = skill_tool.SkillTool(skills.SkillRegistry(search_paths=[skills_dir]), mcp_manager)
        result = await tool.execute({"name": "broken"})

        assert result.success
        assert "### ghost" in result.output
        assert "*Failed to connect: MCP server 'ghost' (skill 'broken'):" in result.output
