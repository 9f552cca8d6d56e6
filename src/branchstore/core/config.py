"""Configuration management: TOML-based, global + per-project merge."""

from __future__ import annotations

import copy
import os
import tomllib
from pathlib import Path
from typing import Any

from .errors import ConfigError

_GLOBAL_CONFIG_PATH = Path.home() / ".branchstore" / "config.toml"

DEFAULT_CONFIG: dict[str, Any] = {
    "git": {
        "base_branch": "main",
        "user_name": "GitHub Action",
        "user_email": "action@github.com",
        "timeout_seconds": 120,
    },
    "write": {
        "max_attempts": 3,
        "backoff_base_seconds": 2.0,
    },
    "publish": {
        "raw_base_url": "",
        "extension": "json",
    },
    "clock": {
        "utc_offset_hours": 8,
    },
    "repos": {
        "downloader_env": "BRANCHSTORE_DOWNLOADER_URL",
        "uploader_env": "BRANCHSTORE_UPLOADER_URL",
        "database_env": "BRANCHSTORE_DATABASE_URL",
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _project_config_path(project_path: str | Path) -> Path:
    return Path(project_path) / ".branchstore" / "config.toml"


def load_config(project_path: str | Path | None = None) -> dict[str, Any]:
    """Load merged config: defaults <- global <- per-project."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    if _GLOBAL_CONFIG_PATH.exists():
        with open(_GLOBAL_CONFIG_PATH, "rb") as f:
            global_conf = tomllib.load(f)
        config = _deep_merge(config, global_conf)

    if project_path:
        local_path = _project_config_path(project_path)
        if local_path.exists():
            with open(local_path, "rb") as f:
                local_conf = tomllib.load(f)
            config = _deep_merge(config, local_conf)

    return config


def save_config(project_path: str | Path | None, key: str, value: str) -> None:
    """Save a config value. Uses per-project config if project_path given, else global."""
    if project_path:
        config_path = _project_config_path(project_path)
    else:
        config_path = _GLOBAL_CONFIG_PATH

    config_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, "rb") as f:
            existing = tomllib.load(f)

    parts = key.split(".")
    target = existing
    for part in parts[:-1]:
        if part not in target:
            target[part] = {}
        target = target[part]

    target[parts[-1]] = _parse_value(value)

    _write_toml(config_path, existing)


def get_config_value(config: dict, key: str) -> Any:
    """Get a nested config value by dotted key."""
    parts = key.split(".")
    current = config
    for part in parts:
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return None
    return current


def require_env(name: str) -> str:
    """Return an environment variable, raising ConfigError when it is unset or blank."""
    value = os.environ.get(name, "").strip()
    if not value:
        raise ConfigError(f"Environment variable {name} is not set")
    return value


def repo_url(config: dict, role: str) -> str:
    """Resolve the repository URL for a role (downloader, uploader, database)."""
    env_name = get_config_value(config, f"repos.{role}_env")
    if not env_name:
        raise ConfigError(f"No environment variable configured for repository role {role!r}")
    return require_env(env_name)


def _parse_value(value: str) -> Any:
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _write_toml(path: Path, data: dict) -> None:
    """Write dict as TOML (simple serializer for flat/nested dicts)."""
    lines: list[str] = []
    _write_toml_section(lines, data, [])
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _write_toml_section(lines: list[str], data: dict, prefix: list[str]) -> None:
    scalars = {k: v for k, v in data.items() if not isinstance(v, dict)}
    tables = {k: v for k, v in data.items() if isinstance(v, dict)}
    for key, value in scalars.items():
        if isinstance(value, list):
            lines.append(f"{key} = [")
            for item in value:
                lines.append(f"    {_toml_value(item)},")
            lines.append("]")
        else:
            lines.append(f"{key} = {_toml_value(value)}")
    for key, value in tables.items():
        lines.append(f"\n[{'.'.join(prefix + [key])}]")
        _write_toml_section(lines, value, prefix + [key])


def _toml_value(v: Any) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (int, float)):
        return str(v)
    if isinstance(v, str):
        escaped = v.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return str(v)
