"""
MCP server configuration and launch-parameter preparation.

Skills declare servers in one of two dialects:

    # command array (executable first, arguments after)
    playwright:
      command: ["npx", "-y", "@playwright/mcp@latest"]
      environment:
        TOKEN: ${PLAYWRIGHT_TOKEN}

    # command string plus separate args
    playwright:
      command: npx
      args: ["-y", "@playwright/mcp@latest"]
      env:
        TOKEN: ${PLAYWRIGHT_TOKEN}

normalize_command() and build_process_env() turn either form into the
literal executable, argument list and environment used to spawn the server.
"""

from __future__ import annotations

import os as _os
import re as _re
import typing as _typing

import pydantic as _pydantic

import skill_mcp.mcp.errors as errors

# ${NAME} placeholders in environment values
_ENV_PLACEHOLDER_RE = _re.compile(r"\$\{([^}]+)\}")

# Transport tags that mean "spawn a local process and talk over stdio"
STDIO_TRANSPORTS = frozenset({"stdio", "local"})


class McpServerConfig(_pydantic.BaseModel):
    """
    Declarative description of one MCP server.

    Fields are loosely typed on purpose: malformed commands are reported by
    normalize_command() as InvalidConfigurationError rather than rejected
    while the skill is being loaded.
    """

    model_config = _pydantic.ConfigDict(extra="allow", frozen=True)

    command: _typing.Any = None
    """Executable string, or list of executable followed by arguments."""

    args: list[_typing.Any] | None = None
    """Arguments for a string command. Ignored when command is a list."""

    env: _typing.Any = None
    """Environment overrides (values may contain ${VAR} placeholders)."""

    environment: _typing.Any = None
    """Alternative spelling of env. Wins over env on key collision."""

    type: str | None = None
    """Transport tag. None, 'stdio' and 'local' spawn a subprocess."""

    cwd: str | None = None
    """Working directory for the spawned process."""

    timeout: float | None = _pydantic.Field(default=None, gt=0)
    """Per-server request timeout in seconds (overrides the default)."""

    def merged_environment(self) -> dict[str, _typing.Any]:
        """
        Return env and environment merged (environment wins).

        Raises:
            InvalidConfigurationError: If either is present but not a mapping.
        """
        merged: dict[str, _typing.Any] = {}
        for field in ("env", "environment"):
            value = getattr(self, field)
            if value is None:
                continue
            if not isinstance(value, dict):
                raise errors.InvalidConfigurationError(
                    f"Invalid MCP environment configuration: {field} must be a mapping, "
                    f"got {type(value).__name__}",
                    field=field,
                )
            merged.update(value)
        return merged


class NormalizedCommand(_typing.NamedTuple):
    """Literal launch parameters for a server process."""

    executable: str
    args: list[str]


def normalize_command(config: McpServerConfig) -> NormalizedCommand:
    """
    Canonicalize a server's command into (executable, args).

    Rules, applied in order:
    1. command is a list: first element is the executable, the rest are
       arguments (in order, duplicates kept). Any args field is ignored.
    2. command is a non-empty string: arguments come from args, or are empty.
    3. Anything else is invalid.

    Non-string elements are stringified (e.g. 3000 -> "3000").

    Args:
        config: Server configuration.

    Returns:
        NormalizedCommand with the executable and argument list.

    Raises:
        InvalidConfigurationError: If command is missing or malformed.
    """
    command = config.command

    if isinstance(command, (list, tuple)):
        if not command:
            raise errors.InvalidConfigurationError(
                "Invalid MCP command configuration: command array is empty",
                field="command",
            )
        return NormalizedCommand(
            executable=str(command[0]),
            args=[str(part) for part in command[1:]],
        )

    if isinstance(command, str) and command:
        args = config.args or []
        return NormalizedCommand(
            executable=command,
            args=[str(arg) for arg in args],
        )

    raise errors.InvalidConfigurationError(
        "Invalid MCP command configuration: command must be a string or array",
        field="command",
    )


def expand_env_vars(
    env: _typing.Mapping[str, str],
    environ: _typing.Mapping[str, str] | None = None,
) -> dict[str, str]:
    """
    Resolve ${NAME} placeholders against the ambient environment.

    Unset variables expand to the empty string. Text outside placeholders
    is passed through unchanged. The input mapping is not modified.

    Args:
        env: Mapping of variable name to raw value.
        environ: Environment to resolve against (defaults to os.environ).

    Returns:
        New mapping with every placeholder expanded.
    """
    source = _os.environ if environ is None else environ

    def _replace(match: _re.Match[str]) -> str:
        return source.get(match.group(1), "")

    return {name: _ENV_PLACEHOLDER_RE.sub(_replace, value) for name, value in env.items()}


def build_process_env(
    config: McpServerConfig,
    environ: _typing.Mapping[str, str] | None = None,
) -> dict[str, str]:
    """
    Build the full environment for a server process.

    The inherited environment is copied and the server's expanded
    environment is layered on top of it.

    Raises:
        InvalidConfigurationError: If an environment value is not a string.
    """
    source = _os.environ if environ is None else environ
    raw = config.merged_environment()

    for name, value in raw.items():
        if not isinstance(value, str):
            raise errors.InvalidConfigurationError(
                f"Invalid MCP environment configuration: value for '{name}' "
                f"must be a string, got {type(value).__name__}",
                field="environment",
            )

    process_env = dict(source)
    process_env.update(expand_env_vars(raw, source))
    return process_env


def check_transport(config: McpServerConfig) -> None:
    """
    Ensure the config describes a stdio server.

    Raises:
        InvalidConfigurationError: For remote transports (sse, http, ...).
    """
    if config.type is not None and config.type not in STDIO_TRANSPORTS:
        raise errors.InvalidConfigurationError(
            f"Unsupported MCP transport '{config.type}': only stdio servers "
            "can be launched",
            field="type",
        )
