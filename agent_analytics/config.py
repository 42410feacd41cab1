"""Configuration loading and persistence for the CLI.

The only persisted state is a flat JSON file holding the API key, an
optional base URL and a couple of cached account fields. It is read once
per invocation and rewritten after every mutation.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from .client import DEFAULT_BASE_URL

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"

ENV_API_KEY = "AGENT_ANALYTICS_API_KEY"
# Older releases documented this name; still honoured after ENV_API_KEY.
ENV_API_KEY_LEGACY = "AGENT_ANALYTICS_KEY"
ENV_BASE_URL = "AGENT_ANALYTICS_URL"
ENV_CONFIG_DIR = "AGENT_ANALYTICS_CONFIG_DIR"


@dataclass
class Config:
    """Contents of config.json."""
    api_key: str | None = None
    base_url: str | None = None
    email: str | None = None
    github_login: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)  # unknown keys, kept on save

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        return cls(**kwargs, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        for name in ("api_key", "base_url", "email", "github_login"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data


def get_config_dir() -> Path:
    """Get the per-user config directory.

    Can be overridden via AGENT_ANALYTICS_CONFIG_DIR environment variable (used by tests).
    """
    env_override = os.environ.get(ENV_CONFIG_DIR)
    if env_override:
        return Path(env_override)
    return Path.home() / ".config" / "agent-analytics"


def get_config_path() -> Path:
    """Get path to config.json."""
    return get_config_dir() / CONFIG_FILENAME


def get_logs_dir() -> Path:
    """Get the directory the CLI writes its log file to."""
    return get_config_dir() / "logs"


def load_config(path: Path | None = None) -> Config:
    """Load config.json, returning an empty Config if it is missing or unreadable."""
    path = path or get_config_path()
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError:
        return Config()
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return Config()

    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: expected a JSON object", path)
        return Config()
    return Config.from_dict(data)


def save_config(config: Config, path: Path | None = None) -> None:
    """Write config.json atomically with owner-only permissions."""
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(config.to_dict(), indent=2) + "\n"
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".config-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(payload)
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug("Saved config to %s", path)


def resolve_api_key(config: Config) -> str | None:
    """API key from the environment, falling back to the stored one."""
    return (
        os.environ.get(ENV_API_KEY)
        or os.environ.get(ENV_API_KEY_LEGACY)
        or config.api_key
        or None
    )


def resolve_base_url(config: Config) -> str:
    """API base URL from the environment, the stored config, or the default."""
    return os.environ.get(ENV_BASE_URL) or config.base_url or DEFAULT_BASE_URL
