"""
MCP server connections for skills.

Normalizes skill-declared server configurations, talks to the spawned
stdio servers through the MCP SDK, and pools connections per session.
"""

from skill_mcp.mcp.config import (
    McpServerConfig,
    NormalizedCommand,
    build_process_env,
    expand_env_vars,
    normalize_command,
)
from skill_mcp.mcp.connection import ConnectionState, ServerConnection
from skill_mcp.mcp.errors import (
    ConnectionClosedError,
    HandshakeFailureError,
    InvalidConfigurationError,
    InvocationError,
    ProtocolError,
    RequestTimeoutError,
    SkillMcpError,
    SpawnFailureError,
    UnknownCapabilityError,
)
from skill_mcp.mcp.manager import (
    ConnectionKey,
    SkillMcpClientInfo,
    SkillMcpManager,
    SkillMcpServerContext,
)

__all__ = [
    # Configuration
    "McpServerConfig",
    "NormalizedCommand",
    "build_process_env",
    "expand_env_vars",
    "normalize_command",
    # Connections
    "ConnectionState",
    "ServerConnection",
    "ConnectionKey",
    "SkillMcpClientInfo",
    "SkillMcpManager",
    "SkillMcpServerContext",
    # Errors
    "ConnectionClosedError",
    "HandshakeFailureError",
    "InvalidConfigurationError",
    "InvocationError",
    "ProtocolError",
    "RequestTimeoutError",
    "SkillMcpError",
    "SpawnFailureError",
    "UnknownCapabilityError",
]
