"""Token and settings resolution for bkci.

Precedence is flag > env > auth file > default. Every reader takes an
optional ``env`` mapping so callers and tests never touch ``os.environ``
implicitly.
"""

from __future__ import annotations

from collections.abc import Mapping
import json
import logging
import os
from pathlib import Path

from .errors import ConfigError

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = ("BUILDKITE_TOKEN", "BUILDKITE_API_TOKEN", "BK_TOKEN")
TOKEN_URL = "https://buildkite.com/user/api-access-tokens"


def _env(env: Mapping | None) -> Mapping:
    return os.environ if env is None else env


def _non_blank(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()


def auth_config_path(env: Mapping | None = None) -> Path:
    env = _env(env)
    explicit = _non_blank(env.get("BKCI_AUTH_PATH"))
    if explicit:
        return Path(explicit).expanduser()

    xdg_home = _non_blank(env.get("XDG_CONFIG_HOME"))
    root = Path(xdg_home).expanduser() if xdg_home else Path.home() / ".config"
    return root / "buildkite-cli" / "auth.json"


def read_config(path: Path) -> dict:
    """Load the auth file; a missing or unreadable file reads as empty."""
    if not path.exists():
        return {}
    try:
        parsed = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("ignoring unreadable config file %s: %s", path, exc)
        return {}
    if not isinstance(parsed, dict):
        logger.warning("ignoring config file %s: expected a JSON object", path)
        return {}
    if os.name != "nt" and "token" in parsed and path.stat().st_mode & 0o077:
        logger.warning("config file %s is readable by other users (expected 600)", path)
    return parsed


def resolve_token(env: Mapping | None = None, config_path: Path | None = None) -> str:
    env = _env(env)
    for name in TOKEN_ENV_VARS:
        token = _non_blank(env.get(name))
        if token:
            return token

    path = config_path if config_path is not None else auth_config_path(env)
    stored = read_config(path).get("token")
    if isinstance(stored, str) and stored.strip():
        return stored.strip()

    raise ConfigError(
        "missing buildkite token. set BUILDKITE_TOKEN/BUILDKITE_API_TOKEN/BK_TOKEN or run 'bkci auth setup'. "
        f"looked for config at {path}. create a token at {TOKEN_URL} with scopes: "
        "read_builds, read_build_logs, read_artifacts (and write_builds if you want to use jobs retry)"
    )


def resolve_setting(flag_value, env_name: str, config_value, default_value, env: Mapping | None = None):
    if flag_value is not None:
        return flag_value
    env_value = _env(env).get(env_name)
    if env_value not in (None, ""):
        return env_value
    if config_value is not None:
        return config_value
    return default_value


def write_auth_config(token: str, path: Path) -> Path:
    token = token.strip()
    if not token:
        raise ConfigError("token cannot be empty")

    created_dir = not path.parent.exists()
    path.parent.mkdir(parents=True, exist_ok=True)
    existing = read_config(path)
    existing["token"] = token
    path.write_text(json.dumps(existing, indent=2) + "\n", encoding="utf-8")
    if os.name != "nt":
        path.chmod(0o600)
        if created_dir:
            path.parent.chmod(0o700)
    return path
