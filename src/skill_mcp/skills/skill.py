"""
Skill definition and skill document parsing.

A skill is a markdown document with optional YAML frontmatter. The
frontmatter carries metadata (name, description) and may declare MCP
servers under an ``mcp:`` key; a sibling ``mcp.json`` file can declare
servers too and takes priority over the frontmatter.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import json as _json
import logging as _logging
import pathlib as _pathlib
import re as _re
import typing as _typing

import pydantic as _pydantic
import yaml as _yaml

import skill_mcp.mcp.config as mcp_config

_logger = _logging.getLogger(__name__)

# Regex to extract YAML frontmatter from markdown
_FRONTMATTER_RE = _re.compile(r"^---\r?\n(.*?)\r?\n---", _re.DOTALL)

MCP_JSON_FILENAME = "mcp.json"
SKILL_FILENAME = "SKILL.md"


class SkillFrontmatter(_pydantic.BaseModel):
    """
    Frontmatter parsed from a skill document.

    Every field is optional; a document without frontmatter is still a
    skill named after its directory or file.
    """

    model_config = _pydantic.ConfigDict(extra="allow")

    name: str | None = None
    """Skill name (defaults to the directory or file stem)."""

    description: str = ""
    """What the skill does and when to use it."""

    mcp: dict[str, _typing.Any] | None = None
    """Raw MCP server declarations, keyed by server name."""

    @_pydantic.field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, value: _typing.Any) -> str:
        return "" if value is None else str(value)

    @_pydantic.field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, value: _typing.Any) -> str | None:
        if value is None or value == "":
            return None
        return str(value)

    @_pydantic.field_validator("mcp", mode="before")
    @classmethod
    def _drop_non_mapping_mcp(cls, value: _typing.Any) -> dict[str, _typing.Any] | None:
        return value if isinstance(value, dict) else None


@_dataclasses.dataclass
class Skill:
    """
    A parsed skill ready for use.

    The body is loaded eagerly; skill documents are small.
    """

    name: str
    """Skill name (frontmatter name or directory/file name)."""

    description: str
    """Short description from frontmatter (may be empty)."""

    body: str
    """Instructions (markdown after the frontmatter)."""

    path: _pathlib.Path
    """Path to the skill document."""

    base_dir: _pathlib.Path
    """Directory that relative file references in the body resolve against."""

    source: str = "project"
    """Where the skill was discovered from (global, custom, project)."""

    mcp_config: dict[str, mcp_config.McpServerConfig] = _dataclasses.field(
        default_factory=dict
    )
    """MCP servers declared by the skill, keyed by server name."""

    @property
    def has_mcp_servers(self) -> bool:
        return bool(self.mcp_config)

    @property
    def body_line_count(self) -> int:
        """Number of lines in the skill body."""
        return len(self.body.splitlines())

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "description": self.description,
            "path": str(self.path),
            "base_dir": str(self.base_dir),
            "source": self.source,
            "mcp_servers": sorted(self.mcp_config),
            "body_lines": self.body_line_count,
        }


def parse_skill_markdown(content: str) -> tuple[SkillFrontmatter, str]:
    """
    Split a skill document into frontmatter and body.

    Parsing is lenient: missing, malformed or non-mapping frontmatter
    yields empty metadata and the whole document as the body.

    Args:
        content: Raw markdown content.

    Returns:
        Tuple of (frontmatter, body).
    """
    match = _FRONTMATTER_RE.match(content)
    if not match:
        return SkillFrontmatter(), content

    try:
        data = _yaml.safe_load(match.group(1)) or {}
        if not isinstance(data, dict):
            raise ValueError(f"frontmatter is a {type(data).__name__}, not a mapping")
        frontmatter = SkillFrontmatter.model_validate(data)
    except (_yaml.YAMLError, ValueError) as e:
        # pydantic.ValidationError is a ValueError
        _logger.debug("Ignoring invalid frontmatter: %s", e)
        return SkillFrontmatter(), content

    body = content[match.end():].strip()
    return frontmatter, body


def extract_mcp_servers(raw: _typing.Any) -> dict[str, _typing.Any] | None:
    """
    Pick the server map out of a decoded mcp.json document.

    Accepted shapes:
        {"mcpServers": {name: config, ...}}
        {"mcp": {name: config, ...}}
        {name: config, ...}  (at least one config has a "command")

    Returns:
        The server map, or None if the document has none of these shapes.
    """
    if not isinstance(raw, dict):
        return None
    if raw.get("mcpServers"):
        return raw["mcpServers"] if isinstance(raw["mcpServers"], dict) else None
    if raw.get("mcp"):
        return raw["mcp"] if isinstance(raw["mcp"], dict) else None
    if "mcpServers" not in raw and "mcp" not in raw:
        if any(isinstance(value, dict) and "command" in value for value in raw.values()):
            return raw
    return None


def load_mcp_json(directory: _pathlib.Path) -> dict[str, _typing.Any] | None:
    """
    Load server declarations from directory/mcp.json.

    Missing, unreadable or malformed files yield None.
    """
    path = directory / MCP_JSON_FILENAME
    if not path.is_file():
        return None
    try:
        raw = _json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        _logger.warning("Ignoring unreadable %s: %s", path, e)
        return None

    servers = extract_mcp_servers(raw)
    if servers is None:
        _logger.warning("Ignoring %s: no MCP server declarations found", path)
    return servers


def build_server_configs(
    raw: _typing.Mapping[str, _typing.Any],
    skill_name: str,
) -> dict[str, mcp_config.McpServerConfig]:
    """
    Validate raw server declarations.

    Entries that are not mappings or fail validation are skipped with a
    warning; the rest are returned in declaration order.
    """
    configs: dict[str, mcp_config.McpServerConfig] = {}
    for server_name, entry in raw.items():
        if not isinstance(entry, dict):
            _logger.warning(
                "Skipping MCP server %r in skill %s: declaration is not a mapping",
                server_name,
                skill_name,
            )
            continue
        try:
            configs[str(server_name)] = mcp_config.McpServerConfig.model_validate(entry)
        except _pydantic.ValidationError as e:
            _logger.warning(
                "Skipping MCP server %r in skill %s: %s", server_name, skill_name, e
            )
    return configs


def load_skill(
    skill_file: _pathlib.Path,
    *,
    base_dir: _pathlib.Path,
    default_name: str,
    source: str = "project",
) -> Skill:
    """
    Load a skill from a markdown document.

    Args:
        skill_file: Path to the skill document.
        base_dir: Directory holding the skill's resources (and mcp.json).
        default_name: Name used when the frontmatter has none.
        source: Where the skill was discovered from.

    Returns:
        Parsed Skill instance.

    Raises:
        OSError: If the document cannot be read.
    """
    content = skill_file.read_text(encoding="utf-8")
    frontmatter, body = parse_skill_markdown(content)
    name = frontmatter.name or default_name

    # mcp.json takes priority over frontmatter
    raw_servers = load_mcp_json(base_dir)
    if raw_servers is None:
        raw_servers = frontmatter.mcp or {}

    return Skill(
        name=name,
        description=frontmatter.description,
        body=body,
        path=skill_file,
        base_dir=base_dir,
        source=source,
        mcp_config=build_server_configs(raw_servers, name),
    )
