"""Environment helpers for Magotchi configuration.

Values are resolved from the process environment first and then from the
repository's ``.env`` file, mirroring how the browser PoC was started with
``dotenv``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from functools import cache
from pathlib import Path

CREDENTIAL_KEYS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "elevenlabs": "ELEVENLABS_API_KEY",
}


def get_env_value(
    key: str,
    env: Mapping[str, str] | None = None,
    default: str | None = None,
) -> str | None:
    """Resolve an env var by checking OS env, provided mapping, then default.

    Args:
        key: Environment variable name
        env: Optional mapping to check (e.g., loaded from .env file)
        default: Default value if not found

    Returns:
        The resolved value or default
    """
    if key in os.environ:
        return os.environ[key]
    if env and key in env:
        return env[key]
    return default


def get_repo_root(env: Mapping[str, str] | None = None) -> Path:
    """Resolve the repo root, honoring MAGOTCHI_REPO_ROOT if set.

    Priority:
    1. MAGOTCHI_REPO_ROOT from OS env or provided mapping (if path exists).
    2. Fallback to parent of this package (works when running from source).
    """
    env_value = get_env_value("MAGOTCHI_REPO_ROOT", env)
    if env_value:
        candidate = Path(env_value).expanduser().resolve()
        if candidate.exists():
            return candidate

    # this file is at src/magotchi/env.py, so parents[2] is repo root
    return Path(__file__).resolve().parents[2]


@cache
def load_env_file(env_path: str | Path | None = None) -> dict[str, str]:
    """Load environment variables from a .env file.

    Args:
        env_path: Path to .env file. If None, tries .env in repo root.

    Returns:
        Dictionary of environment variables
    """
    if env_path is None:
        env_path = get_repo_root() / ".env"

    path = Path(env_path)
    env: dict[str, str] = {}

    if not path.exists():
        return env

    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :]
        key, sep, value = line.partition("=")
        if not sep:
            continue
        value = value.strip()
        if value.startswith('"') and value.endswith('"'):
            value = value[1:-1]
        elif value.startswith("'") and value.endswith("'"):
            value = value[1:-1]
        env[key.strip()] = value

    return env


def credential_status(env: Mapping[str, str] | None = None) -> dict[str, bool]:
    """Report which provider credentials are set to a non-empty value.

    Read on every call so that toggling a variable is reflected immediately.
    """
    if env is None:
        env = load_env_file()
    return {
        name: bool(get_env_value(key, env))
        for name, key in CREDENTIAL_KEYS.items()
    }
