"""
Session identifiers.

MCP connections are pooled per session, so session ids end up as pool
keys and in log lines. Hosts choose their own ids (``session:42.a``,
UUIDs, paths); any non-empty string is accepted. The CLI generates short
ids of its own.
"""

from __future__ import annotations

import secrets as _secrets
import string as _string


def generate_session_id() -> str:
    """Generate a unique session ID (8 character alphanumeric)."""
    alphabet = _string.ascii_lowercase + _string.digits
    return "".join(_secrets.choice(alphabet) for _ in range(8))


class InvalidSessionIdError(ValueError):
    """Raised when a session ID is missing or empty."""


def validate_session_id(session_id: str) -> str:
    """Validate a host-supplied session ID.

    Args:
        session_id: The session ID to validate.

    Returns:
        The session ID, unchanged.

    Raises:
        InvalidSessionIdError: If the session ID is not a non-empty string.
    """
    if isinstance(session_id, str) and session_id:
        return session_id

    raise InvalidSessionIdError(
        f"Invalid session ID: {session_id!r}. Session IDs must be non-empty strings."
    )
