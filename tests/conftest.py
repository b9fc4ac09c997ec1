"""
Shared pytest fixtures for skill-mcp tests.

This file is automatically loaded by pytest. Fixtures defined here are
available to all test files without explicit imports.
"""

import asyncio as _asyncio
import json as _json
import os as _os
import pathlib as _pathlib
import sys as _sys
import textwrap as _textwrap
import typing as _typing
import unittest.mock as _mock

import pytest as _pytest
import pytest_asyncio as _pytest_asyncio

import skill_mcp.config as config
import skill_mcp.mcp.config as mcp_config
import skill_mcp.mcp.manager as manager

FIXTURES_DIR = _pathlib.Path(__file__).parent / "fixtures"
FAKE_SERVER = FIXTURES_DIR / "fake_mcp_server.py"

# Environment prefixes that should be cleared for isolated tests
ENV_PREFIXES_TO_CLEAR = ("SKILL_MCP_", "FAKE_MCP_")


def fake_server_config(**extra: _typing.Any) -> mcp_config.McpServerConfig:
    """Server config launching the fake MCP server with the current interpreter."""
    return mcp_config.McpServerConfig(
        command=[_sys.executable, str(FAKE_SERVER)],
        **extra,
    )


def write_skill(
    directory: _pathlib.Path,
    name: str,
    *,
    description: str = "",
    body: str = "Do the thing.",
    frontmatter: str = "",
) -> _pathlib.Path:
    """Create <directory>/<name>/SKILL.md and return the skill directory."""
    skill_dir = directory / name
    skill_dir.mkdir(parents=True, exist_ok=True)
    header = f"name: {name}\ndescription: {description}\n" + _textwrap.dedent(frontmatter)
    (skill_dir / "SKILL.md").write_text(f"---\n{header}---\n\n{body}\n", encoding="utf-8")
    return skill_dir


def write_mcp_skill(
    directory: _pathlib.Path,
    name: str,
    servers: dict[str, dict[str, _typing.Any]] | None = None,
    **kwargs: _typing.Any,
) -> _pathlib.Path:
    """
    Create a skill whose mcp.json declares servers.

    By default declares one server, "fake", running the fake MCP server.
    """
    if servers is None:
        servers = {"fake": {"command": [_sys.executable, str(FAKE_SERVER)]}}
    skill_dir = write_skill(directory, name, **kwargs)
    (skill_dir / "mcp.json").write_text(_json.dumps({"mcpServers": servers}), encoding="utf-8")
    return skill_dir


@_pytest.fixture
def clean_env() -> dict[str, str]:
    """
    Return environment dict with skill-mcp keys removed.

    Use with mock.patch.dict to isolate tests from the actual environment.
    """
    return {
        k: v for k, v in _os.environ.items() if not k.startswith(ENV_PREFIXES_TO_CLEAR)
    }


@_pytest.fixture
def isolated_env(clean_env: dict[str, str], tmp_path: _pathlib.Path):
    """
    Context manager that isolates tests from environment variables and user config.

    Usage:
        def test_something(isolated_env):
            with isolated_env:
                settings = config.Settings.construct_without_dotenv()
    """
    env = dict(clean_env)
    env["SKILL_MCP_CONFIG_DIR"] = str(tmp_path / "user-config")
    return _mock.patch.dict(_os.environ, env, clear=True)


@_pytest.fixture
def clean_settings(isolated_env) -> config.Settings:
    """Settings isolated from environment, user config and .env file."""
    with isolated_env:
        return config.Settings.construct_without_dotenv()


@_pytest.fixture
def fast_mcp_config() -> config.McpConfig:
    """Short timeouts so failure paths finish quickly."""
    return config.McpConfig(
        handshake_timeout=5.0,
        request_timeout=5.0,
        close_grace_period=1.0,
    )


@_pytest.fixture
def spawn_log(tmp_path: _pathlib.Path, monkeypatch: _pytest.MonkeyPatch) -> _pathlib.Path:
    """File the fake server appends its pid to on every start."""
    path = tmp_path / "spawns.log"
    monkeypatch.setenv("FAKE_MCP_SPAWN_LOG", str(path))
    return path


def spawn_count(path: _pathlib.Path) -> int:
    if not path.exists():
        return 0
    return len(path.read_text(encoding="utf-8").splitlines())


def spawned_pids(path: _pathlib.Path) -> list[int]:
    if not path.exists():
        return []
    return [int(line) for line in path.read_text(encoding="utf-8").split()]


def pid_alive(pid: int) -> bool:
    try:
        _os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True


async def wait_for_spawns(path: _pathlib.Path, count: int, timeout: float = 5.0) -> list[int]:
    """Poll the spawn log until at least count processes have started."""
    loop = _asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while spawn_count(path) < count:
        if loop.time() > deadline:
            raise AssertionError(f"expected {count} spawns, saw {spawn_count(path)}")
        await _asyncio.sleep(0.05)
    return spawned_pids(path)


@_pytest_asyncio.fixture
async def mcp_manager(fast_mcp_config: config.McpConfig):
    """A manager that is fully disconnected after the test."""
    mgr = manager.SkillMcpManager(fast_mcp_config)
    yield mgr
    await mgr.disconnect_all()


@_pytest.fixture
def skills_dir(tmp_path: _pathlib.Path) -> _pathlib.Path:
    """Empty directory to create skills in."""
    path = tmp_path / "skills"
    path.mkdir()
    return path
