"""Environment-driven settings for ccsearch."""

import os
from pathlib import Path

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3212


def get_claude_projects_path() -> Path:
    """Return the directory holding one subdirectory per project."""
    env = os.environ.get("CCSEARCH_CLAUDE_PATH")
    if env:
        return Path(env).expanduser()

    return Path.home() / ".claude" / "projects"


def get_server_host() -> str:
    return os.environ.get("CCSEARCH_HOST") or DEFAULT_HOST


def get_server_port() -> int:
    value = os.environ.get("CCSEARCH_PORT")
    if not value:
        return DEFAULT_PORT
    try:
        return int(value)
    except ValueError:
        return DEFAULT_PORT
