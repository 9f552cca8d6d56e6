"""Per-invocation temporary clone of a remote repository."""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..core.git import GitRepository

logger = logging.getLogger(__name__)


@contextmanager
def open_workspace(url: str, config: dict, *, prefix: str = "bstore-") -> Iterator[GitRepository]:
    """Clone ``url`` into a fresh temp directory and yield the repository.

    The clone lives at ``<tmp>/repo``; ``<tmp>`` itself is the scratch root for
    backup snapshots. The whole temp directory is removed on exit.
    """
    git_cfg = config.get("git", {})
    temp_root = Path(tempfile.mkdtemp(prefix=prefix))
    try:
        repo = GitRepository.clone(url, temp_root / "repo", timeout=git_cfg.get("timeout_seconds", 120))
        repo.configure_identity(
            git_cfg.get("user_name", "GitHub Action"),
            git_cfg.get("user_email", "action@github.com"),
        )
        yield repo
    finally:
        shutil.rmtree(temp_root, ignore_errors=True)
        logger.debug("Removed workspace %s", temp_root)
