"""
Error types for MCP server connections.

Every failure raised by the connection layer derives from SkillMcpError,
so callers can catch the whole family in one place. Errors raised while a
connection is being lazily established are re-raised by the manager with
the offending server and skill attached (see SkillMcpError.with_context).
"""

from __future__ import annotations

import copy as _copy
import typing as _typing


class SkillMcpError(Exception):
    """Base class for all skill MCP errors."""

    def __init__(
        self,
        message: str,
        *,
        server_name: str | None = None,
        skill_name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.server_name = server_name
        self.skill_name = skill_name

    def with_context(self, *, server_name: str, skill_name: str) -> SkillMcpError:
        """
        Return a copy of this error naming the server and skill involved.

        The copy keeps the concrete type and any extra attributes, so
        callers can still catch e.g. SpawnFailureError.
        """
        message = (
            f"MCP server '{server_name}' (skill '{skill_name}'): {self.message}"
        )
        error = _copy.copy(self)
        error.args = (message,)
        error.message = message
        error.server_name = server_name
        error.skill_name = skill_name
        return error


class InvalidConfigurationError(SkillMcpError):
    """Server configuration is malformed (command, environment, transport)."""

    def __init__(
        self,
        message: str,
        *,
        field: str = "command",
        server_name: str | None = None,
        skill_name: str | None = None,
    ) -> None:
        super().__init__(message, server_name=server_name, skill_name=skill_name)
        self.field = field


class SpawnFailureError(SkillMcpError):
    """The server executable could not be launched."""


class HandshakeFailureError(SkillMcpError):
    """The server process started but the initialize exchange failed."""


class RequestTimeoutError(SkillMcpError):
    """A request did not receive a response within its bound."""


class ProtocolError(SkillMcpError):
    """Malformed or unexpected traffic from the server."""


class ConnectionClosedError(ProtocolError):
    """The transport went away while requests were outstanding."""


class UnknownCapabilityError(SkillMcpError):
    """The server reported that the named tool, resource or prompt does not exist."""


class InvocationError(SkillMcpError):
    """The server reported an error while handling a request."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        data: _typing.Any = None,
        server_name: str | None = None,
        skill_name: str | None = None,
    ) -> None:
        super().__init__(message, server_name=server_name, skill_name=skill_name)
        self.code = code
        self.data = data
