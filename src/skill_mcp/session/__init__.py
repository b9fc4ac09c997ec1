"""Session ids and lifecycle tracking."""

from skill_mcp.session.lifecycle import SessionEvent, SessionTracker
from skill_mcp.session.session import (
    InvalidSessionIdError,
    generate_session_id,
    validate_session_id,
)

__all__ = [
    "InvalidSessionIdError",
    "SessionEvent",
    "SessionTracker",
    "generate_session_id",
    "validate_session_id",
]
