"""
skill-mcp - Skills with embedded MCP servers

Discovers skill documents and manages session-scoped connections to the
MCP servers they declare.
"""

import importlib.metadata as _metadata

# Version is defined in pyproject.toml - read it and parse into tuple (primary representation)
_raw_version = _metadata.version("skill-mcp")
__version_info__: tuple[int, int, int] = tuple(int(x) for x in _raw_version.split(".")[:3])  # type: ignore[assignment]
__version__: str = ".".join(str(x) for x in __version_info__)
__author__ = "skill-mcp contributors"

from skill_mcp.config import Settings  # noqa: E402
from skill_mcp.mcp import SkillMcpManager  # noqa: E402
from skill_mcp.plugin import SkillMcpPlugin, create_plugin  # noqa: E402

__all__ = [
    "__version__",
    "__version_info__",
    "Settings",
    "SkillMcpManager",
    "SkillMcpPlugin",
    "create_plugin",
]
