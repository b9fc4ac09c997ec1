"""
Markdown rendering of skills and their MCP server capabilities.
"""

from __future__ import annotations

import asyncio as _asyncio
import json as _json
import logging as _logging
import typing as _typing

import skill_mcp.constants as constants
import skill_mcp.mcp.errors as errors
import skill_mcp.mcp.manager as manager_module

if _typing.TYPE_CHECKING:
    import skill_mcp.skills.skill as _skill

_logger = _logging.getLogger(__name__)

# Failures while establishing a connection; these are reported per server
# instead of degrading to an empty capability list.
_CONNECT_ERRORS = (
    errors.InvalidConfigurationError,
    errors.SpawnFailureError,
    errors.HandshakeFailureError,
)

_ListOperation = _typing.Callable[
    [manager_module.SkillMcpClientInfo, manager_module.SkillMcpServerContext],
    _typing.Awaitable[list[dict[str, _typing.Any]]],
]


def format_skills_xml(skills: _typing.Sequence[_skill.Skill]) -> str:
    """Render skills as an <available_skills> block (empty string if none)."""
    if not skills:
        return ""
    entries = "\n".join(
        "\n".join(
            [
                "  <skill>",
                f"    <name>{skill.name}</name>",
                f"    <description>{skill.description}</description>",
                "  </skill>",
            ]
        )
        for skill in skills
    )
    return f"\n\n<available_skills>\n{entries}\n</available_skills>"


def format_skill(skill: _skill.Skill) -> str:
    """Render the skill header, base directory and body."""
    return "\n".join(
        [
            f"## Skill: {skill.name}",
            "",
            f"**Base directory**: {skill.base_dir}",
            "",
            skill.body,
        ]
    )


async def _list_or_empty(
    operation: _ListOperation,
    info: manager_module.SkillMcpClientInfo,
    context: manager_module.SkillMcpServerContext,
) -> list[dict[str, _typing.Any]]:
    try:
        return await operation(info, context)
    except _CONNECT_ERRORS:
        raise
    except errors.SkillMcpError as e:
        _logger.debug("Capability discovery failed for %s: %s", info.server_name, e)
        return []


async def render_server_capabilities(
    manager: manager_module.SkillMcpManager,
    info: manager_module.SkillMcpClientInfo,
    context: manager_module.SkillMcpServerContext,
) -> list[str]:
    """
    Render one server's tools, resources and prompts.

    The three listings run concurrently. A failing listing counts as empty;
    a failure to connect at all is rendered in place of the capabilities.
    """
    lines = [f"### {info.server_name}", ""]

    results = await _asyncio.gather(
        _list_or_empty(manager.list_tools, info, context),
        _list_or_empty(manager.list_resources, info, context),
        _list_or_empty(manager.list_prompts, info, context),
        return_exceptions=True,
    )
    failure = next((r for r in results if isinstance(r, BaseException)), None)

    if isinstance(failure, errors.SkillMcpError):
        first_line = failure.message.split("\n")[0]
        lines.append(f"*Failed to connect: {first_line}*")
    elif failure is not None:
        raise failure
    else:
        tools, resources, prompts = _typing.cast(
            "list[list[dict[str, _typing.Any]]]", results
        )
        if tools:
            lines.extend(["**Tools:**", ""])
            for tool in tools:
                lines.append(f"#### `{tool.get('name')}`")
                if tool.get("description"):
                    lines.append(str(tool["description"]))
                lines.extend(
                    [
                        "",
                        "**inputSchema:**",
                        "```json",
                        _json.dumps(tool.get("inputSchema"), indent=2, ensure_ascii=False),
                        "```",
                        "",
                    ]
                )
        if resources:
            uris = ", ".join(str(r.get("uri")) for r in resources)
            lines.append(f"**Resources**: {uris}")
        if prompts:
            names = ", ".join(str(p.get("name")) for p in prompts)
            lines.append(f"**Prompts**: {names}")
        if not (tools or resources or prompts):
            lines.append("*No capabilities discovered*")

    lines.extend(
        [
            "",
            f"Use `{constants.SKILL_MCP_TOOL_NAME}` tool with "
            f'`mcp_name="{info.server_name}"` to invoke.',
            "",
        ]
    )
    return lines


async def render_mcp_capabilities(
    skill: _skill.Skill,
    manager: manager_module.SkillMcpManager,
    session_id: str,
) -> str | None:
    """
    Render the "Available MCP Servers" section for a skill.

    Returns:
        The section text, or None if the skill declares no servers.
    """
    if not skill.mcp_config:
        return None

    lines = ["", "## Available MCP Servers", ""]
    for server_name, server_config in skill.mcp_config.items():
        info = manager_module.SkillMcpClientInfo(
            server_name=server_name,
            skill_name=skill.name,
            session_id=session_id,
        )
        context = manager_module.SkillMcpServerContext(
            config=server_config,
            skill_name=skill.name,
        )
        lines.extend(await render_server_capabilities(manager, info, context))

    return "\n".join(lines)
