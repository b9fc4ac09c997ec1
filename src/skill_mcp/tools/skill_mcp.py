"""
The ``skill_mcp`` tool: invoke a tool, resource or prompt on a skill's MCP server.
"""

from __future__ import annotations

import enum as _enum
import json as _json
import logging as _logging
import re as _re
import typing as _typing

import skill_mcp.constants as constants
import skill_mcp.mcp.errors as errors
import skill_mcp.mcp.manager as manager_module
import skill_mcp.tools.base as base

if _typing.TYPE_CHECKING:
    import skill_mcp.skills.registry as _registry

_logger = _logging.getLogger(__name__)

_DESCRIPTION = (
    "Invoke MCP server operations from skill-embedded MCPs. Requires mcp_name "
    "plus exactly one of: tool_name, resource_name, or prompt_name."
)

_MISSING_OPERATION = (
    "Missing operation. Exactly one of tool_name, resource_name, or prompt_name "
    "must be specified.\n\n"
    "Examples:\n"
    '  skill_mcp(mcp_name="sqlite", tool_name="query", '
    "arguments='{\"sql\": \"SELECT * FROM users\"}')\n"
    '  skill_mcp(mcp_name="memory", resource_name="memory://notes")\n'
    '  skill_mcp(mcp_name="helper", prompt_name="summarize", '
    "arguments='{\"text\": \"...\"}')"
)


class OperationType(_enum.Enum):
    TOOL = "tool"
    RESOURCE = "resource"
    PROMPT = "prompt"


_ACTIONS = {
    OperationType.TOOL: "call tool",
    OperationType.RESOURCE: "read resource",
    OperationType.PROMPT: "get prompt",
}


class OperationError(ValueError):
    """Tool input does not describe a valid operation."""


def select_operation(input: _typing.Mapping[str, _typing.Any]) -> tuple[OperationType, str]:
    """
    Determine which single operation the input requests.

    Raises:
        OperationError: If none or more than one of tool_name,
            resource_name, prompt_name is set.
    """
    selectors = [
        (OperationType.TOOL, "tool_name"),
        (OperationType.RESOURCE, "resource_name"),
        (OperationType.PROMPT, "prompt_name"),
    ]
    provided = [(op, key, input[key]) for op, key in selectors if input.get(key)]

    if not provided:
        raise OperationError(_MISSING_OPERATION)

    if len(provided) > 1:
        received = ", ".join(f'{key}="{value}"' for _, key, value in provided)
        raise OperationError(
            "Multiple operations specified. Exactly one of tool_name, resource_name, "
            "or prompt_name must be provided.\n\n"
            f"Received: {received}\n\n"
            "Use separate calls for each operation."
        )

    op, _, value = provided[0]
    return op, str(value)


def parse_arguments(arguments: _typing.Any) -> dict[str, _typing.Any]:
    """
    Parse the JSON arguments string (empty means no arguments).

    Hosts that already decoded the arguments may pass a dict.

    Raises:
        OperationError: If the text is not a JSON object.
    """
    if not arguments:
        return {}
    if isinstance(arguments, dict):
        return dict(arguments)
    try:
        parsed = _json.loads(arguments)
        if not isinstance(parsed, dict):
            raise ValueError("Arguments must be a JSON object")
    except ValueError as e:
        raise OperationError(
            f"Invalid arguments JSON: {e}\n\n"
            "Expected a valid JSON object, e.g.: '{\"key\": \"value\"}'\n"
            f"Received: {arguments}"
        ) from e
    return parsed


def stringify_prompt_arguments(arguments: _typing.Mapping[str, _typing.Any]) -> dict[str, str]:
    """Prompt arguments are strings on the wire; JSON-encode anything else."""
    return {
        key: value if isinstance(value, str) else _json.dumps(value, ensure_ascii=False)
        for key, value in arguments.items()
    }


def apply_grep(output: str, pattern: str | None) -> str:
    """
    Keep only the lines matching pattern (case-insensitive).

    An invalid pattern leaves the output unfiltered.
    """
    if not pattern:
        return output
    try:
        regex = _re.compile(pattern, _re.IGNORECASE)
    except _re.error:
        return output
    matched = [line for line in output.split("\n") if regex.search(line)]
    if not matched:
        return f"[grep] No lines matched pattern: {pattern}"
    return "\n".join(matched)


class SkillMcpTool(base.Tool):
    """Invoke an operation on an MCP server declared by a skill."""

    def __init__(
        self,
        registry: _registry.SkillRegistry,
        manager: manager_module.SkillMcpManager,
        session_id_provider: _typing.Callable[[], str] | None = None,
    ) -> None:
        """
        Initialize the tool.

        Args:
            registry: Registry used to find the skill declaring a server.
            manager: Connection manager.
            session_id_provider: Returns the current session id.
        """
        self._registry = registry
        self._manager = manager
        self._session_id_provider = session_id_provider or (
            lambda: constants.DEFAULT_SESSION_ID
        )

    @property
    def name(self) -> str:
        return constants.SKILL_MCP_TOOL_NAME

    @property
    def description(self) -> str:
        return _DESCRIPTION

    @property
    def input_schema(self) -> dict[str, _typing.Any]:
        return {
            "type": "object",
            "properties": {
                "mcp_name": {
                    "type": "string",
                    "description": "Name of the MCP server from skill config",
                },
                "tool_name": {"type": "string", "description": "MCP tool to call"},
                "resource_name": {
                    "type": "string",
                    "description": "MCP resource URI to read",
                },
                "prompt_name": {"type": "string", "description": "MCP prompt to get"},
                "arguments": {
                    "type": "string",
                    "description": "JSON string of arguments",
                },
                "grep": {
                    "type": "string",
                    "description": (
                        "Regex pattern to filter output lines "
                        "(only matching lines returned)"
                    ),
                },
            },
            "required": ["mcp_name"],
        }

    def _format_available_servers(self) -> str:
        pairs = self._registry.list_mcp_servers()
        if not pairs:
            return "  (none found)"
        return "\n".join(
            f'  - "{server_name}" from skill "{skill_name}"'
            for server_name, skill_name in pairs
        )

    async def execute(self, input: dict[str, _typing.Any]) -> base.ToolResult:
        mcp_name = self._require_input(input, "mcp_name", label="MCP server name")
        if isinstance(mcp_name, base.ToolResult):
            return mcp_name

        try:
            operation, target = select_operation(input)
        except OperationError as e:
            return base.ToolResult.failure(str(e))

        found = self._registry.find_mcp_server(mcp_name)
        if found is None:
            return base.ToolResult.failure(
                f'MCP server "{mcp_name}" not found.\n\n'
                "Available MCP servers in loaded skills:\n"
                f"{self._format_available_servers()}\n\n"
                f"Hint: Load the skill first using the '{constants.SKILL_TOOL_NAME}' "
                f"tool, then call {constants.SKILL_MCP_TOOL_NAME}."
            )
        skill, server_config = found

        try:
            arguments = parse_arguments(input.get("arguments"))
        except OperationError as e:
            return base.ToolResult.failure(str(e))

        info = manager_module.SkillMcpClientInfo(
            server_name=mcp_name,
            skill_name=skill.name,
            session_id=self._session_id_provider(),
        )
        context = manager_module.SkillMcpServerContext(
            config=server_config,
            skill_name=skill.name,
        )

        try:
            if operation is OperationType.TOOL:
                result = await self._manager.call_tool(info, context, target, arguments)
            elif operation is OperationType.RESOURCE:
                result = await self._manager.read_resource(info, context, target)
            else:
                result = await self._manager.get_prompt(
                    info, context, target, stringify_prompt_arguments(arguments)
                )
        except errors.SkillMcpError as e:
            _logger.debug("%s %s on %s failed: %s", operation.value, target, mcp_name, e)
            return base.ToolResult.failure(
                f'Failed to {_ACTIONS[operation]} "{target}" on MCP server "{mcp_name}": '
                f"{e.message}"
            )

        output = _json.dumps(result, indent=2, ensure_ascii=False)
        return base.ToolResult(success=True, output=apply_grep(output, input.get("grep")))
