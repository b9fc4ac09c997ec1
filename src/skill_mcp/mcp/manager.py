"""
Session-scoped pool of MCP server connections.

Connections are keyed by (session id, server name). The first operation for
a key spawns the server and performs the handshake; later operations in the
same session reuse the live connection. When a session ends, every
connection belonging to it is shut down.
"""

from __future__ import annotations

import asyncio as _asyncio
import dataclasses as _dataclasses
import logging as _logging
import typing as _typing

import skill_mcp.config.types as config_types
import skill_mcp.mcp.config as mcp_config
import skill_mcp.mcp.connection as connection
import skill_mcp.mcp.errors as errors

_logger = _logging.getLogger(__name__)

ConnectionFactory = _typing.Callable[
    [str, mcp_config.McpServerConfig, config_types.McpConfig],
    connection.ServerConnection,
]
"""Builds an unconnected ServerConnection for (server name, server config, settings)."""


@_dataclasses.dataclass(frozen=True)
class ConnectionKey:
    """Identity of one pooled connection."""

    session_id: str
    server_name: str


@_dataclasses.dataclass(frozen=True)
class SkillMcpClientInfo:
    """Who is asking: the server, the skill declaring it, and the session."""

    server_name: str
    skill_name: str
    session_id: str


@_dataclasses.dataclass(frozen=True)
class SkillMcpServerContext:
    """How to launch the server if it is not connected yet."""

    config: mcp_config.McpServerConfig
    skill_name: str


@_dataclasses.dataclass
class _PoolEntry:
    connection: connection.ServerConnection | None = None
    lock: _asyncio.Lock = _dataclasses.field(default_factory=_asyncio.Lock)
    error: errors.SkillMcpError | None = None


def _default_factory(
    server_name: str,
    server_config: mcp_config.McpServerConfig,
    settings: config_types.McpConfig,
) -> connection.ServerConnection:
    return connection.ServerConnection.from_config(server_name, server_config, settings)


class SkillMcpManager:
    """
    Registry of live MCP server connections scoped by session.

    Every operation takes the caller's SkillMcpClientInfo (which key) and
    SkillMcpServerContext (how to launch). Results and failures of the
    underlying connection are passed through unchanged.
    """

    def __init__(
        self,
        config: config_types.McpConfig | None = None,
        *,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        """
        Initialize the manager.

        Args:
            config: Connection timeouts and client identity.
            connection_factory: Builds connections (defaults to
                ServerConnection.from_config). Tests substitute fakes here.
        """
        self._config = config or config_types.McpConfig()
        self._connection_factory = connection_factory or _default_factory
        self._pool: dict[ConnectionKey, _PoolEntry] = {}

    # =========================================================================
    # Capability operations
    # =========================================================================

    async def list_tools(
        self,
        info: SkillMcpClientInfo,
        context: SkillMcpServerContext,
    ) -> list[dict[str, _typing.Any]]:
        """List the tools offered by the server."""
        conn = await self._get_connection(info, context)
        return await conn.list_tools()

    async def list_resources(
        self,
        info: SkillMcpClientInfo,
        context: SkillMcpServerContext,
    ) -> list[dict[str, _typing.Any]]:
        """List the resources offered by the server."""
        conn = await self._get_connection(info, context)
        return await conn.list_resources()

    async def list_prompts(
        self,
        info: SkillMcpClientInfo,
        context: SkillMcpServerContext,
    ) -> list[dict[str, _typing.Any]]:
        """List the prompts offered by the server."""
        conn = await self._get_connection(info, context)
        return await conn.list_prompts()

    async def call_tool(
        self,
        info: SkillMcpClientInfo,
        context: SkillMcpServerContext,
        name: str,
        arguments: _typing.Mapping[str, _typing.Any] | None = None,
    ) -> _typing.Any:
        """Invoke a tool on the server and return its result payload."""
        conn = await self._get_connection(info, context)
        return await conn.call_tool(name, arguments)

    async def read_resource(
        self,
        info: SkillMcpClientInfo,
        context: SkillMcpServerContext,
        uri: str,
    ) -> _typing.Any:
        """Read a resource from the server."""
        conn = await self._get_connection(info, context)
        return await conn.read_resource(uri)

    async def get_prompt(
        self,
        info: SkillMcpClientInfo,
        context: SkillMcpServerContext,
        name: str,
        arguments: _typing.Mapping[str, str] | None = None,
    ) -> _typing.Any:
        """Render a prompt on the server."""
        conn = await self._get_connection(info, context)
        return await conn.get_prompt(name, arguments)

    # =========================================================================
    # Teardown
    # =========================================================================

    async def disconnect_session(self, session_id: str) -> None:
        """
        Close every connection opened for a session.

        Entries are removed before closing, so concurrent callers in the
        same session will open fresh connections. A connection still in
        its handshake is torn down too, and its caller gets
        ConnectionClosedError. Close failures are logged and otherwise
        ignored. Unknown session ids are a no-op.
        """
        keys = [key for key in self._pool if key.session_id == session_id]
        if not keys:
            return
        _logger.info("Disconnecting %d MCP server(s) for session %s", len(keys), session_id)
        await self._close_entries([(key, self._pool.pop(key)) for key in keys])

    async def disconnect_all(self) -> None:
        """Close every pooled connection (process shutdown)."""
        entries = list(self._pool.items())
        self._pool.clear()
        if entries:
            _logger.info("Disconnecting all %d MCP server(s)", len(entries))
            await self._close_entries(entries)

    def get_connected_keys(self, session_id: str | None = None) -> list[ConnectionKey]:
        """
        Keys whose connection is currently ready.

        Args:
            session_id: Restrict to one session. None lists all sessions.
        """
        return [
            key
            for key, entry in self._pool.items()
            if entry.connection is not None
            and entry.connection.is_ready
            and (session_id is None or key.session_id == session_id)
        ]

    def get_connection(self, key: ConnectionKey) -> connection.ServerConnection | None:
        """Return the pooled connection for a key, if any."""
        entry = self._pool.get(key)
        return entry.connection if entry is not None else None

    async def _close_entries(self, entries: list[tuple[ConnectionKey, _PoolEntry]]) -> None:
        closing = [(key, entry.connection) for key, entry in entries if entry.connection is not None]
        results = await _asyncio.gather(
            *(conn.close() for _, conn in closing),
            return_exceptions=True,
        )
        for (key, _), result in zip(closing, results, strict=True):
            if isinstance(result, BaseException):
                _logger.warning(
                    "Error closing MCP server %s (session %s): %s",
                    key.server_name,
                    key.session_id,
                    result,
                )

    # =========================================================================
    # Pool management
    # =========================================================================

    async def _get_connection(
        self,
        info: SkillMcpClientInfo,
        context: SkillMcpServerContext,
    ) -> connection.ServerConnection:
        """
        Return a ready connection for the caller's key, creating it if needed.

        Concurrent first-use callers share one establishment attempt and see
        the same connection or the same failure.
        """
        key = ConnectionKey(info.session_id, info.server_name)

        # Lookup and insert run without suspending, so only one entry per key
        entry = self._pool.get(key)
        if entry is None:
            entry = _PoolEntry()
            self._pool[key] = entry

        async with entry.lock:
            if entry.error is not None:
                raise entry.error

            conn = entry.connection
            if conn is not None and conn.is_ready:
                return conn

            if conn is not None:
                _logger.info(
                    "Replacing %s connection to MCP server %s (session %s)",
                    conn.state.value,
                    info.server_name,
                    info.session_id,
                )
                await conn.close()
                entry.connection = None

            try:
                conn = self._connection_factory(info.server_name, context.config, self._config)
                # Visible to disconnect_session while the handshake is in flight
                entry.connection = conn
                await conn.connect()
            except errors.SkillMcpError as e:
                entry.error = e.with_context(
                    server_name=info.server_name, skill_name=info.skill_name
                )
                if self._pool.get(key) is entry:
                    del self._pool[key]
                _logger.warning("%s", entry.error.message)
                raise entry.error from e
            except BaseException:
                if self._pool.get(key) is entry:
                    del self._pool[key]
                raise

            if self._pool.get(key) is not entry:
                # Session was disconnected while we were connecting
                await conn.close()
                raise errors.ConnectionClosedError(
                    f"Session '{info.session_id}' ended while connecting to "
                    f"MCP server '{info.server_name}'"
                )
            return conn
