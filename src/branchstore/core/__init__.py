"""Core building blocks: configuration, errors, git access, naming and codecs."""

from .config import get_config_value, load_config, repo_url, require_env, save_config
from .errors import (
    BranchNameError,
    BranchStoreError,
    BranchWriteError,
    ConfigError,
    GitCommandError,
    NotInitializedError,
    PointerError,
)
from .git import GitRepository

__all__ = [
    "load_config",
    "save_config",
    "get_config_value",
    "require_env",
    "repo_url",
    "BranchStoreError",
    "ConfigError",
    "GitCommandError",
    "BranchWriteError",
    "BranchNameError",
    "PointerError",
    "NotInitializedError",
    "GitRepository",
]
