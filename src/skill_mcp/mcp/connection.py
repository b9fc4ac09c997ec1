"""
A live connection to one MCP server over stdio.

ServerConnection owns exactly one server process, driven through the MCP
SDK: stdio_client spawns the process and frames JSON-RPC over its stdin and
stdout, and ClientSession correlates requests with responses, so any number
of requests can be outstanding at once and complete in any order.

The transport and session are entered and exited by a single background
task for the lifetime of the connection (anyio cancel scopes cannot cross
tasks). Callers talk to the session from their own tasks.

Lifecycle:

    uninitialized -> connecting -> ready -> closing -> closed

A failed connect() leaves the connection closed with its process reaped.
"""

from __future__ import annotations

import asyncio as _asyncio
import contextlib as _contextlib
import enum as _enum
import logging as _logging
import os as _os
import re as _re
import tempfile as _tempfile
import typing as _typing

import anyio as _anyio
import mcp as _mcp
import mcp.client.stdio as _mcp_stdio
import mcp.types as _mcp_types
import pydantic as _pydantic

import skill_mcp
import skill_mcp.config.types as config_types
import skill_mcp.constants as constants
import skill_mcp.mcp.config as mcp_config
import skill_mcp.mcp.errors as errors

_logger = _logging.getLogger(__name__)

_T = _typing.TypeVar("_T")

# MCP "resource not found" error code
_RESOURCE_NOT_FOUND = -32002

# Error messages that mean "no such tool/prompt/resource"
_NOT_FOUND_RE = _re.compile(r"unknown|not found|does not exist|no such", _re.IGNORECASE)


class ConnectionState(_enum.Enum):
    """Lifecycle states of a ServerConnection."""

    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    READY = "ready"
    CLOSING = "closing"
    CLOSED = "closed"


class ServerConnection:
    """
    One MCP server subprocess and its protocol session.

    Use from_config() to build a connection from a skill's server
    declaration, then connect() before issuing requests.
    """

    def __init__(
        self,
        server_name: str,
        command: mcp_config.NormalizedCommand,
        env: dict[str, str] | None = None,
        *,
        cwd: str | None = None,
        handshake_timeout: float = constants.DEFAULT_HANDSHAKE_TIMEOUT,
        request_timeout: float = constants.DEFAULT_REQUEST_TIMEOUT,
        close_grace_period: float = constants.DEFAULT_CLOSE_GRACE_PERIOD,
        client_name: str = "skill-mcp",
        client_version: str | None = None,
    ) -> None:
        """
        Initialize the connection (does not spawn anything yet).

        Args:
            server_name: Name of the server (for messages and logs).
            command: Executable and arguments to launch.
            env: Full environment for the process. None inherits ours.
            cwd: Working directory for the process.
            handshake_timeout: Seconds allowed for the initialize exchange.
            request_timeout: Seconds allowed for each later request.
            close_grace_period: Seconds the server gets to exit on its own
                before it is killed.
            client_name: Client name reported to the server.
            client_version: Client version reported (defaults to ours).
        """
        self._server_name = server_name
        self._command = command
        self._env = env
        self._cwd = cwd
        self._handshake_timeout = handshake_timeout
        self._request_timeout = request_timeout
        self._close_grace_period = close_grace_period
        self._client_name = client_name
        self._client_version = client_version or skill_mcp.__version__

        self._state = ConnectionState.UNINITIALIZED
        self._runner: _asyncio.Task[None] | None = None
        self._stop = _asyncio.Event()
        self._session: _mcp.ClientSession | None = None
        self._errlog: _typing.TextIO | None = None
        self._stderr_snapshot: list[str] = []

        self._protocol_version: str | None = None
        self._server_info: dict[str, _typing.Any] = {}
        self._server_capabilities: dict[str, _typing.Any] = {}

    @classmethod
    def from_config(
        cls,
        server_name: str,
        server_config: mcp_config.McpServerConfig,
        settings: config_types.McpConfig | None = None,
        *,
        environ: _typing.Mapping[str, str] | None = None,
    ) -> ServerConnection:
        """
        Build a connection from a server declaration.

        Normalizes the command and expands the environment; nothing is
        spawned until connect().

        Raises:
            InvalidConfigurationError: If the declaration is malformed.
        """
        settings = settings or config_types.McpConfig()
        mcp_config.check_transport(server_config)
        command = mcp_config.normalize_command(server_config)
        env = mcp_config.build_process_env(server_config, environ)

        return cls(
            server_name,
            command,
            env,
            cwd=server_config.cwd,
            handshake_timeout=settings.handshake_timeout,
            request_timeout=server_config.timeout or settings.request_timeout,
            close_grace_period=settings.close_grace_period,
            client_name=settings.client_name,
            client_version=settings.client_version,
        )

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def server_name(self) -> str:
        return self._server_name

    @property
    def command(self) -> mcp_config.NormalizedCommand:
        return self._command

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is ConnectionState.READY

    @property
    def protocol_version(self) -> str | None:
        """Protocol version agreed during the handshake."""
        return self._protocol_version

    @property
    def server_info(self) -> dict[str, _typing.Any]:
        """serverInfo from the initialize result."""
        return dict(self._server_info)

    @property
    def server_capabilities(self) -> dict[str, _typing.Any]:
        """Capabilities the server advertised during the handshake."""
        return dict(self._server_capabilities)

    @property
    def stderr_tail(self) -> list[str]:
        """Most recent stderr lines from the server."""
        errlog = self._errlog
        if errlog is None or errlog.closed:
            return list(self._stderr_snapshot)
        # pread leaves the offset the server writes at untouched
        fd = errlog.fileno()
        size = _os.fstat(fd).st_size
        start = max(0, size - constants.STDERR_TAIL_BYTES)
        data = _os.pread(fd, size - start, start)
        lines = [line for line in data.decode("utf-8", errors="replace").splitlines() if line.strip()]
        return lines[-constants.STDERR_TAIL_LINES :]

    def __repr__(self) -> str:
        return f"<ServerConnection {self._server_name} {self._state.value}>"

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self) -> None:
        """
        Spawn the server and perform the MCP handshake.

        No-op on a ready connection. A closed connection may be connected
        again.

        Raises:
            SpawnFailureError: If the executable cannot be launched.
            HandshakeFailureError: If initialization does not complete.
            ConnectionClosedError: If close() is called while connecting.
        """
        if self._state is ConnectionState.READY:
            return
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CLOSING):
            raise RuntimeError(
                f"Cannot connect MCP server '{self._server_name}' while {self._state.value}"
            )
        # A transport that died on its own may still be winding down
        await self._stop_runner(graceful=True)

        self._state = ConnectionState.CONNECTING
        self._stop = _asyncio.Event()
        self._stderr_snapshot = []
        self._errlog = _tempfile.TemporaryFile("w+", encoding="utf-8")
        ready: _asyncio.Future[_mcp_types.InitializeResult] = (
            _asyncio.get_running_loop().create_future()
        )
        self._runner = _asyncio.create_task(
            self._run(ready),
            name=f"mcp-{self._server_name}",
        )

        try:
            await _asyncio.wait({ready}, timeout=self._handshake_timeout)
            if not ready.done():
                ready.cancel()
                raise errors.HandshakeFailureError(
                    f"MCP server '{self._server_name}' did not complete initialization "
                    f"within {self._handshake_timeout}s{self._stderr_hint()}"
                )
            result = self._handshake_result(ready)
        except BaseException:
            await self._stop_runner(graceful=False)
            self._state = ConnectionState.CLOSED
            raise

        self._protocol_version = str(result.protocolVersion)
        self._server_info = result.serverInfo.model_dump(mode="json", exclude_none=True)
        self._server_capabilities = result.capabilities.model_dump(
            mode="json", by_alias=True, exclude_none=True
        )
        self._state = ConnectionState.READY
        _logger.info(
            "MCP server %s ready (protocol %s): %s %s",
            self._server_name,
            self._protocol_version,
            self._command.executable,
            " ".join(self._command.args),
        )

    async def close(self) -> None:
        """
        Shut the server down. Safe to call repeatedly and in any state.

        The SDK closes the server's stdin and escalates to SIGTERM and
        SIGKILL; a server still running after the grace period is killed.
        A connection that is still connecting is torn down at once, and its
        connect() fails with ConnectionClosedError.
        """
        if self._runner is None:
            self._state = ConnectionState.CLOSED
            return

        graceful = self._state is not ConnectionState.CONNECTING
        if self._state is not ConnectionState.CLOSED:
            self._state = ConnectionState.CLOSING
        await self._stop_runner(graceful=graceful)
        self._state = ConnectionState.CLOSED
        _logger.info("Stopped MCP server %s", self._server_name)

    async def _run(self, ready: _asyncio.Future[_mcp_types.InitializeResult]) -> None:
        """Hold the stdio transport and client session open until stopped."""
        params = _mcp.StdioServerParameters(
            command=self._command.executable,
            args=list(self._command.args),
            env=self._env if self._env is not None else dict(_os.environ),
            cwd=self._cwd,
        )
        client_info = _mcp_types.Implementation(
            name=self._client_name, version=self._client_version
        )
        errlog = self._errlog
        assert errlog is not None
        try:
            async with _contextlib.AsyncExitStack() as stack:
                read_stream, write_stream = await stack.enter_async_context(
                    _mcp_stdio.stdio_client(params, errlog=errlog)
                )
                session = await stack.enter_async_context(
                    _mcp.ClientSession(
                        read_stream,
                        write_stream,
                        message_handler=self._on_message,
                        client_info=client_info,
                    )
                )
                result = await session.initialize()
                if ready.done():
                    return
                self._session = session
                ready.set_result(result)
                await self._stop.wait()
        except Exception as e:
            error = _first_error(e)
            if not ready.done():
                ready.set_exception(error)
            else:
                _logger.warning("MCP server %s transport failed: %s", self._server_name, error)
        finally:
            self._session = None
            if not ready.done():
                ready.set_exception(
                    errors.ConnectionClosedError(
                        f"MCP server '{self._server_name}' was closed while connecting"
                    )
                )
            if self._state is ConnectionState.READY:
                self._state = ConnectionState.CLOSED
            self._stderr_snapshot = self.stderr_tail
            errlog.close()

    def _handshake_result(
        self, ready: _asyncio.Future[_mcp_types.InitializeResult]
    ) -> _mcp_types.InitializeResult:
        """Unwrap the runner's handshake outcome into our error types."""
        try:
            return ready.result()
        except errors.SkillMcpError:
            raise
        except OSError as e:
            raise errors.SpawnFailureError(
                f"Failed to start MCP server '{self._server_name}' "
                f"({self._command.executable}): {e}"
            ) from e
        except _mcp.McpError as e:
            if _is_connection_closed(e.error):
                reason = "exited during initialization"
            else:
                reason = f"failed to initialize: {e.error.message}"
            raise errors.HandshakeFailureError(
                f"MCP server '{self._server_name}' {reason}{self._stderr_hint()}"
            ) from e
        except Exception as e:
            raise errors.HandshakeFailureError(
                f"MCP server '{self._server_name}' failed to initialize: "
                f"{e}{self._stderr_hint()}"
            ) from e

    async def _stop_runner(self, *, graceful: bool) -> None:
        """Ask the runner to leave its contexts, cancelling it past the grace period."""
        runner = self._runner
        if runner is None:
            return
        self._stop.set()
        if graceful and not runner.done():
            await _asyncio.wait({runner}, timeout=self._close_grace_period)
        if not runner.done():
            _logger.debug("Cancelling transport of MCP server %s", self._server_name)
            runner.cancel()
        await _asyncio.gather(runner, return_exceptions=True)
        if self._runner is runner:
            self._runner = None

    async def _on_message(
        self,
        message: _typing.Any,
    ) -> None:
        """Log server notifications and unreadable output; the SDK answers requests."""
        if isinstance(message, Exception):
            _logger.debug("Ignoring unreadable output from MCP server %s: %s", self._server_name, message)
        else:
            _logger.debug("Message from MCP server %s: %r", self._server_name, message)

    # =========================================================================
    # Capability operations
    # =========================================================================

    async def list_tools(self) -> list[dict[str, _typing.Any]]:
        """List the server's tools (name, description, inputSchema, ...)."""
        return await self._list_all("tools/list", "tools", lambda s, c: s.list_tools(c))

    async def list_resources(self) -> list[dict[str, _typing.Any]]:
        """List the server's resources (uri, name, mimeType, ...)."""
        return await self._list_all(
            "resources/list", "resources", lambda s, c: s.list_resources(c)
        )

    async def list_prompts(self) -> list[dict[str, _typing.Any]]:
        """List the server's prompts (name, description, arguments, ...)."""
        return await self._list_all("prompts/list", "prompts", lambda s, c: s.list_prompts(c))

    async def call_tool(
        self,
        name: str,
        arguments: _typing.Mapping[str, _typing.Any] | None = None,
    ) -> dict[str, _typing.Any]:
        """
        Call a tool and return the server's result payload.

        Raises:
            UnknownCapabilityError: If the server has no such tool.
            InvocationError: For any other server-reported error.
            RequestTimeoutError: If no response arrives in time.
        """
        result = await self._call(
            "tools/call",
            lambda s: s.call_tool(name, dict(arguments or {})),
            target=name,
        )
        return _dump(result)

    async def read_resource(self, uri: str) -> dict[str, _typing.Any]:
        """Read a resource by URI."""
        try:
            url = _pydantic.AnyUrl(uri)
        except _pydantic.ValidationError as e:
            raise errors.InvocationError(
                f"Invalid resource URI '{uri}' for MCP server '{self._server_name}': {e}",
                code=_mcp_types.INVALID_PARAMS,
            ) from e
        result = await self._call(
            "resources/read", lambda s: s.read_resource(url), target=uri
        )
        return _dump(result)

    async def get_prompt(
        self,
        name: str,
        arguments: _typing.Mapping[str, str] | None = None,
    ) -> dict[str, _typing.Any]:
        """Render a prompt; argument values are sent as strings."""
        prompt_arguments = (
            {key: str(value) for key, value in arguments.items()} if arguments else None
        )
        result = await self._call(
            "prompts/get",
            lambda s: s.get_prompt(name, prompt_arguments),
            target=name,
        )
        return _dump(result)

    async def ping(self) -> None:
        """Check the server is responsive."""
        await self._call("ping", lambda s: s.send_ping())

    async def _list_all(
        self,
        method: str,
        key: str,
        fetch: _typing.Callable[[_mcp.ClientSession, str | None], _typing.Awaitable[_typing.Any]],
    ) -> list[dict[str, _typing.Any]]:
        """
        Fetch every page of a list method.

        Servers that did not advertise the capability have nothing to list.
        Paging stops when the server hands back a cursor it already gave.
        """
        self._require_session()
        if key not in self._server_capabilities:
            return []

        items: list[dict[str, _typing.Any]] = []
        seen: set[str] = set()
        cursor: str | None = None
        while True:
            page = await self._call(method, lambda s: fetch(s, cursor))
            items.extend(_dump(item) for item in getattr(page, key))
            cursor = page.nextCursor
            if not cursor:
                return items
            if cursor in seen:
                _logger.warning(
                    "MCP server %s repeated %s cursor %r; stopping pagination",
                    self._server_name,
                    method,
                    cursor,
                )
                return items
            seen.add(cursor)

    def _require_session(self) -> _mcp.ClientSession:
        session = self._session
        if self._state is not ConnectionState.READY or session is None:
            raise errors.ConnectionClosedError(
                f"MCP server '{self._server_name}' is not connected "
                f"(state: {self._state.value})"
            )
        return session

    # =========================================================================
    # Request plumbing
    # =========================================================================

    async def _call(
        self,
        method: str,
        send: _typing.Callable[[_mcp.ClientSession], _typing.Awaitable[_T]],
        *,
        target: str | None = None,
    ) -> _T:
        """
        Run one SDK request under the request timeout.

        The request races the transport task, so a server that dies with
        the request outstanding fails it instead of leaving it waiting.

        Args:
            method: MCP method (for messages).
            send: Issues the request on the session.
            target: Name of the tool/resource/prompt addressed, if any.
        """
        session = self._require_session()
        runner = self._runner
        assert runner is not None

        request = _asyncio.ensure_future(send(session))
        try:
            done, _ = await _asyncio.wait(
                {request, runner},
                timeout=self._request_timeout,
                return_when=_asyncio.FIRST_COMPLETED,
            )
        finally:
            if not request.done():
                request.cancel()

        if request not in done:
            await _asyncio.gather(request, return_exceptions=True)
            if runner in done:
                raise self._closed_error(f"transport ended during '{method}'")
            raise errors.RequestTimeoutError(
                f"MCP request '{method}' to server '{self._server_name}' "
                f"timed out after {self._request_timeout}s"
            )

        try:
            return request.result()
        except _mcp.McpError as e:
            raise self._error_from_mcp(method, e.error, target) from e
        except _pydantic.ValidationError as e:
            raise errors.ProtocolError(
                f"Malformed '{method}' response from MCP server '{self._server_name}': {e}"
            ) from e
        except (_anyio.ClosedResourceError, _anyio.BrokenResourceError) as e:
            self._on_transport_lost()
            raise self._closed_error(f"transport closed during '{method}'") from e

    def _error_from_mcp(
        self,
        method: str,
        error: _mcp_types.ErrorData,
        target: str | None,
    ) -> errors.SkillMcpError:
        """Map a JSON-RPC error to the matching exception type."""
        if _is_connection_closed(error):
            self._on_transport_lost()
            return self._closed_error(f"server went away during '{method}'")

        message = (
            f"MCP server '{self._server_name}' returned error {error.code} "
            f"for '{method}': {error.message}"
        )
        if target is not None and (
            error.code == _RESOURCE_NOT_FOUND
            or (error.code == _mcp_types.INVALID_PARAMS and _NOT_FOUND_RE.search(error.message))
        ):
            return errors.UnknownCapabilityError(message)
        return errors.InvocationError(message, code=error.code, data=error.data)

    def _on_transport_lost(self) -> None:
        """Mark a ready connection closed and let the runner wind down."""
        if self._state is ConnectionState.READY:
            _logger.warning("MCP server %s went away", self._server_name)
            self._state = ConnectionState.CLOSED
        self._stop.set()

    def _closed_error(self, reason: str) -> errors.ConnectionClosedError:
        return errors.ConnectionClosedError(
            f"Connection to MCP server '{self._server_name}' lost: {reason}{self._stderr_hint()}"
        )

    def _stderr_hint(self) -> str:
        tail = self.stderr_tail
        if not tail:
            return ""
        return "\nServer stderr:\n" + "\n".join(tail)


def _dump(model: _pydantic.BaseModel) -> dict[str, _typing.Any]:
    """Plain JSON form of an SDK result, as the server sent it."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def _is_connection_closed(error: _mcp_types.ErrorData) -> bool:
    """The SDK fails pending requests with this error when the transport ends."""
    return error.code == _mcp_types.CONNECTION_CLOSED and "connection closed" in error.message.lower()


def _first_error(error: BaseException) -> BaseException:
    """The first concrete failure inside (possibly nested) task-group exception groups."""
    while isinstance(error, BaseExceptionGroup):
        error = next(
            (e for e in error.exceptions if not isinstance(e, _asyncio.CancelledError)),
            error.exceptions[0],
        )
    return error
