"""
Base classes for the agent-facing tools.

Each tool has a name, description, input schema, and execute method.
Failures are returned as ToolResult(success=False) rather than raised, so
the host can show the error text to the model.
"""

from __future__ import annotations

import abc as _abc
import dataclasses as _dataclasses
import typing as _typing


@_dataclasses.dataclass
class ToolResult:
    """
    Result of executing a tool.

    All tools return this standardized result format.
    """

    success: bool
    output: str
    error: str | None = None

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to JSON-serializable dict."""
        return {
            "success": self.success,
            "output": self.output,
            "error": self.error,
        }

    @classmethod
    def failure(cls, error: str) -> ToolResult:
        return cls(success=False, output="", error=error)


class Tool(_abc.ABC):
    """
    Abstract base class for all tools.

    Subclasses must implement:
    - name (property): The tool's identifier
    - description (property): Human-readable description for the model
    - input_schema (property): JSON schema for input validation
    - execute(): The actual tool implementation
    """

    @property
    @_abc.abstractmethod
    def name(self) -> str:
        """Tool name (e.g., 'skill', 'skill_mcp')."""
        ...

    @property
    @_abc.abstractmethod
    def description(self) -> str:
        """Human-readable description for the model."""
        ...

    @property
    @_abc.abstractmethod
    def input_schema(self) -> dict[str, _typing.Any]:
        """JSON schema for tool input."""
        ...

    @_abc.abstractmethod
    async def execute(self, input: dict[str, _typing.Any]) -> ToolResult:
        """
        Execute the tool with the given input.

        Args:
            input: Dictionary matching the input schema

        Returns:
            ToolResult with success status, output, and optional error
        """
        ...

    def to_api_format(self) -> dict[str, _typing.Any]:
        """Tool definition in the shape hosts send to the model."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

    def __repr__(self) -> str:
        return f"<Tool {self.name}>"

    def _require_input(
        self,
        input: dict[str, _typing.Any],
        key: str,
        *,
        label: str | None = None,
    ) -> str | ToolResult:
        """
        Get a required string input, or an error ToolResult if missing.

        Args:
            input: The input dictionary from execute()
            key: The key to look up
            label: Human-readable name for error messages (defaults to key)
        """
        value = input.get(key)
        if not isinstance(value, str) or not value:
            return ToolResult.failure(f"No {label or key} provided")
        return value
