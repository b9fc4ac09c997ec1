"""
Main CLI entry point for skill-mcp.

Provides the command-line interface using Click. Every command that talks
to MCP servers runs in its own generated session, which is disconnected
before the command exits.
"""

import asyncio as _asyncio
import json as _json
import logging as _logging
import pathlib as _pathlib
import sys as _sys
import typing as _typing

import click as _click
import pydantic as _pydantic
import rich.console as _rich_console
import rich.table as _rich_table

import skill_mcp
import skill_mcp.config as config
import skill_mcp.plugin as plugin_module
import skill_mcp.session as session
import skill_mcp.skills as skills
import skill_mcp.tools.base as tools_base

# Custom Click context settings for better help formatting
CONTEXT_SETTINGS: dict[str, _typing.Any] = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 100,
}


def _run_async(coro: _typing.Coroutine[_typing.Any, _typing.Any, _typing.Any]) -> _typing.Any:
    """Run an async coroutine synchronously."""
    return _asyncio.run(coro)


def _configure_logging(level: str, verbose: bool) -> None:
    _logging.basicConfig(
        level=_logging.DEBUG if verbose else getattr(_logging, level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=_sys.stderr,
    )


def _fail(message: str) -> _typing.NoReturn:
    _click.echo(f"Error: {message}", err=True)
    raise SystemExit(1)


async def _run_tool_in_session(
    plugin: plugin_module.SkillMcpPlugin,
    tool_name: str,
    tool_input: dict[str, _typing.Any],
) -> tools_base.ToolResult:
    """Run one tool call inside a throwaway session."""
    session_id = session.generate_session_id()
    await plugin.handle_event(session.SessionEvent.CREATED, session_id)
    try:
        return await plugin.execute_tool(tool_name, tool_input)
    finally:
        await plugin.handle_event(session.SessionEvent.DELETED, session_id)
        await plugin.shutdown()


def _emit_result(result: tools_base.ToolResult) -> None:
    if not result.success:
        _fail(result.error or "tool failed")
    _click.echo(result.output)


@_click.group(context_settings=CONTEXT_SETTINGS)
@_click.version_option(skill_mcp.__version__, "-V", "--version", prog_name="skill-mcp")
@_click.option(
    "--project-root",
    type=_click.Path(file_okay=False, path_type=_pathlib.Path),
    default=None,
    help="Project whose .skill-mcp/ directory is used (default: current directory)",
)
@_click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable debug logging (including MCP traffic)",
)
@_click.pass_context
def cli(ctx: _click.Context, project_root: _pathlib.Path | None, verbose: bool) -> None:
    """skill-mcp: skills with embedded MCP servers."""
    root = (project_root or _pathlib.Path.cwd()).resolve()
    try:
        settings = config.Settings.load(root)
    except (config.ConfigFileError, _pydantic.ValidationError) as e:
        _fail(str(e))

    _configure_logging(settings.logging.level, verbose)

    # Store settings in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["project_root"] = root


def _create_plugin(ctx: _click.Context) -> plugin_module.SkillMcpPlugin:
    return plugin_module.create_plugin(ctx.obj["project_root"], ctx.obj["settings"])


@cli.command(name="list")
@_click.option("--json", "json_output", is_flag=True, help="JSON output")
@_click.pass_context
def list_cmd(ctx: _click.Context, json_output: bool) -> None:
    """List all discovered skills."""
    settings: config.Settings = ctx.obj["settings"]
    registry = skills.SkillRegistry(ctx.obj["project_root"], config=settings.skills)
    skill_list = registry.list_skills()

    if json_output:
        _click.echo(_json.dumps(registry.to_dict(), indent=2))
        return

    console = _rich_console.Console()
    console.print("[bold]Skill Discovery Paths:[/bold]")
    for path in registry.get_search_paths():
        exists = "✓" if path.exists() else "(not found)"
        console.print(f"  {path} {exists}", highlight=False)
    console.print()

    if not skill_list:
        console.print("No skills found.")
        return

    table = _rich_table.Table(title=f"Discovered Skills ({len(skill_list)})")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("MCP Servers")
    table.add_column("Source")
    for s in skill_list:
        table.add_row(
            s.name,
            s.description,
            ", ".join(s.mcp_config) or "-",
            s.source,
        )
    console.print(table)


@cli.command(name="servers")
@_click.option("--json", "json_output", is_flag=True, help="JSON output")
@_click.pass_context
def servers_cmd(ctx: _click.Context, json_output: bool) -> None:
    """List MCP servers declared by skills."""
    settings: config.Settings = ctx.obj["settings"]
    registry = skills.SkillRegistry(ctx.obj["project_root"], config=settings.skills)
    pairs = registry.list_mcp_servers()

    if json_output:
        data = [{"server": server, "skill": skill} for server, skill in pairs]
        _click.echo(_json.dumps(data, indent=2))
        return

    if not pairs:
        _click.echo("No MCP servers declared.")
        return

    _click.echo(f"{'Server':<30} {'Skill'}")
    _click.echo("-" * 60)
    for server, skill in pairs:
        _click.echo(f"{server:<30} {skill}")


@cli.command(name="show")
@_click.argument("name")
@_click.pass_context
def show_cmd(ctx: _click.Context, name: str) -> None:
    """Load a skill and list its MCP servers' capabilities."""
    plugin = _create_plugin(ctx)
    result = _run_async(_run_tool_in_session(plugin, "skill", {"name": name}))
    _emit_result(result)


@cli.command(name="invoke")
@_click.argument("server")
@_click.option("--tool", "tool_name", default=None, help="MCP tool to call")
@_click.option("--resource", "resource_name", default=None, help="MCP resource URI to read")
@_click.option("--prompt", "prompt_name", default=None, help="MCP prompt to get")
@_click.option("--arguments", default=None, help="JSON object of arguments")
@_click.option("--grep", default=None, help="Only print lines matching this regex")
@_click.pass_context
def invoke_cmd(
    ctx: _click.Context,
    server: str,
    tool_name: str | None,
    resource_name: str | None,
    prompt_name: str | None,
    arguments: str | None,
    grep: str | None,
) -> None:
    """Invoke a tool, resource or prompt on a skill's MCP server."""
    tool_input: dict[str, _typing.Any] = {"mcp_name": server}
    for key, value in (
        ("tool_name", tool_name),
        ("resource_name", resource_name),
        ("prompt_name", prompt_name),
        ("arguments", arguments),
        ("grep", grep),
    ):
        if value is not None:
            tool_input[key] = value

    plugin = _create_plugin(ctx)
    result = _run_async(_run_tool_in_session(plugin, "skill_mcp", tool_input))
    _emit_result(result)


def main() -> None:
    """Main entry point with correct program name."""
    cli(prog_name="skill-mcp")


if __name__ == "__main__":
    main()
