"""
Shared constants for skill-mcp.

This module provides a single source of truth for default values
that are used across multiple modules.
"""

# Connection timeouts (seconds)
DEFAULT_HANDSHAKE_TIMEOUT = 30.0
"""Maximum wait for the initialize exchange after spawning a server."""

DEFAULT_REQUEST_TIMEOUT = 60.0
"""Maximum wait for a single request/response round trip."""

DEFAULT_CLOSE_GRACE_PERIOD = 5.0
"""Wait for a server to shut down cleanly before it is killed."""

# Server stderr
STDERR_TAIL_LINES = 20
"""Number of recent stderr lines kept for error messages."""

STDERR_TAIL_BYTES = 64 * 1024
"""How far back from the end of the stderr capture lines are read."""

# Sessions
DEFAULT_SESSION_ID = "unknown"
"""Session id used when no session has been announced."""

# Tool names exposed to the agent
SKILL_TOOL_NAME = "skill"
SKILL_MCP_TOOL_NAME = "skill_mcp"
