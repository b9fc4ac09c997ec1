"""
CLI module for skill-mcp.

Provides the command-line interface using Click.
"""

from skill_mcp.cli.main import cli, main

__all__ = ["main", "cli"]
