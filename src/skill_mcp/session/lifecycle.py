"""
Session lifecycle tracking.

The host announces sessions with ``session.created`` and
``session.deleted`` events. The tracker remembers the current session (so
tools can tag their connections with it) and tears down every MCP
connection of a session when it is deleted.
"""

from __future__ import annotations

import enum as _enum
import logging as _logging
import typing as _typing

import skill_mcp.constants as constants
import skill_mcp.session.session as session_module

if _typing.TYPE_CHECKING:
    import skill_mcp.mcp.manager as _manager

_logger = _logging.getLogger(__name__)


class SessionEvent(str, _enum.Enum):
    """Session lifecycle events understood by the tracker."""

    CREATED = "session.created"
    DELETED = "session.deleted"


class SessionTracker:
    """Tracks the current session and cleans up after deleted ones."""

    def __init__(self, manager: _manager.SkillMcpManager) -> None:
        self._manager = manager
        self._current: str | None = None

    @property
    def current_session_id(self) -> str:
        """The active session id, or "unknown" when none is active."""
        return self._current or constants.DEFAULT_SESSION_ID

    @property
    def has_session(self) -> bool:
        return self._current is not None

    async def handle_event(
        self,
        event_type: SessionEvent | str,
        session_id: str | None = None,
    ) -> None:
        """
        Process a lifecycle event.

        Args:
            event_type: "session.created" or "session.deleted". Other
                events are ignored.
            session_id: The session concerned. For deletion it defaults to
                the current session.

        Raises:
            InvalidSessionIdError: If a created session has no id.
        """
        try:
            event = SessionEvent(event_type)
        except ValueError:
            _logger.debug("Ignoring event %s", event_type)
            return

        if event is SessionEvent.CREATED:
            if not session_id:
                raise session_module.InvalidSessionIdError(
                    "session.created event without a session id"
                )
            self._current = session_module.validate_session_id(session_id)
            _logger.debug("Session %s started", self._current)
            return

        target = session_id or self._current
        if target is None:
            _logger.debug("session.deleted with no active session")
            return

        _logger.debug("Session %s ended", target)
        await self._manager.disconnect_session(target)
        if self._current == target:
            self._current = None
