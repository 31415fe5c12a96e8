"""Configuration loader for npm-inspector.

Settings come from a JSON file chosen by explicit argument or the
``NPM_INSPECTOR_CONFIG`` environment variable. Without either, built-in
defaults apply. Every key is optional:

    {
        "maxWorkers": 8,
        "maxSymlinkHops": 40,
        "registryUrl": "https://registry.npmjs.org",
        "remote": true
    }

This module performs its own lightweight validation rather than invoking a
full JSON Schema validator.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .paths import MAX_SYMLINK_HOPS

CONFIG_PATH_ENV_VAR = "NPM_INSPECTOR_CONFIG"
DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"
DEFAULT_MAX_WORKERS = 8

_KNOWN_KEYS = {"maxWorkers", "maxSymlinkHops", "registryUrl", "remote"}


@dataclass(slots=True, frozen=True)
class Settings:
    """Top-level settings container."""

    max_workers: int = DEFAULT_MAX_WORKERS
    max_symlink_hops: int = MAX_SYMLINK_HOPS
    registry_url: str = DEFAULT_REGISTRY_URL
    remote: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """Create Settings from a dictionary, validating each field."""
        unknown = sorted(set(data) - _KNOWN_KEYS)
        if unknown:
            raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")

        max_workers = data.get("maxWorkers", DEFAULT_MAX_WORKERS)
        if not _is_positive_int(max_workers):
            raise ConfigError("'maxWorkers' must be a positive integer")

        max_hops = data.get("maxSymlinkHops", MAX_SYMLINK_HOPS)
        if not _is_positive_int(max_hops):
            raise ConfigError("'maxSymlinkHops' must be a positive integer")

        registry_url = data.get("registryUrl", DEFAULT_REGISTRY_URL)
        if not isinstance(registry_url, str) or not registry_url:
            raise ConfigError("'registryUrl' must be a non-empty string")

        remote = data.get("remote", True)
        if not isinstance(remote, bool):
            raise ConfigError("'remote' must be a boolean")

        return cls(
            max_workers=max_workers,
            max_symlink_hops=max_hops,
            registry_url=registry_url.rstrip("/"),
            remote=remote,
        )


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _resolve_config_path(path: Path | str | None = None) -> Path | None:
    """Resolve the configuration file path.

    Priority:
    1. Explicit path argument
    2. NPM_INSPECTOR_CONFIG environment variable
    3. None (use defaults)
    """
    if path is not None:
        return Path(path)

    env_path = os.environ.get(CONFIG_PATH_ENV_VAR)
    if env_path:
        return Path(env_path)

    return None


def load_settings(path: Path | str | None = None) -> Settings:
    """Load and validate settings from a JSON file.

    Args:
        path: Optional path to the config file. If not provided, uses the
            NPM_INSPECTOR_CONFIG env var or falls back to defaults.

    Raises:
        ConfigError: If the chosen file cannot be read or contains invalid data.
    """
    config_path = _resolve_config_path(path)
    if config_path is None:
        return Settings()

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        content = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read configuration file: {exc}") from exc

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in configuration file: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a JSON object")

    return Settings.from_dict(data)
