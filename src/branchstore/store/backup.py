"""Preserve a branch's content before it is destructively rewritten."""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

from ..core.errors import GitCommandError
from ..core.git import GitRepository
from .orphan import switch_to_base

logger = logging.getLogger(__name__)


def _copy_tree(src: Path, dest: Path) -> None:
    dest.mkdir(parents=True, exist_ok=True)
    for item in src.iterdir():
        if item.name == ".git":
            continue
        target = dest / item.name
        if item.is_dir():
            shutil.copytree(item, target, dirs_exist_ok=True)
        else:
            shutil.copy2(item, target)


class BranchBackupManager:
    """Snapshot a remote branch's tree into a scratch directory and restore it later.

    ``backup`` never raises: a missing branch is an expected outcome and any other
    failure is logged and treated as "no backup". It always leaves the repository
    on ``base_branch`` (or the placeholder fallback).
    """

    def __init__(self, repo: GitRepository, base_branch: str):
        self.repo = repo
        self.base_branch = base_branch

    def backup(self, branch: str, scratch_dir: Path, fallback_tip: str | None = None) -> str | None:
        """Copy the tip of ``branch`` into ``scratch_dir``.

        ``fallback_tip`` is used when the remote branch no longer exists, which
        happens when an earlier attempt of the same write already deleted it.
        Returns the sha that was backed up, or None.
        """
        try:
            tip = self.repo.remote_branch_tip(branch)
            if tip:
                self.repo.fetch_branch(branch)
        except GitCommandError:
            logger.warning("Could not inspect remote branch %s; treating as empty", branch, exc_info=True)
            tip = None

        if tip is None and fallback_tip:
            logger.info("Remote branch %s is gone; backing up previously observed tip %s", branch, fallback_tip[:7])
            tip = fallback_tip
        if tip is None:
            logger.info("Remote branch %s does not exist, nothing to back up", branch)
            return None

        temp_branch = f"temp_backup_{branch}_{int(time.time() * 1000)}"
        backed_up: str | None = None
        try:
            self.repo.checkout_new(temp_branch, tip)
            self.repo.clean()
            _copy_tree(self.repo.workdir, scratch_dir)
            backed_up = tip
            logger.info("Backed up %s (%s) to %s", branch, tip[:7], scratch_dir)
        except (GitCommandError, OSError):
            logger.error("Backing up %s failed; continuing as if the branch were empty", branch, exc_info=True)
            shutil.rmtree(scratch_dir, ignore_errors=True)
        finally:
            self._return_to_base(temp_branch)
        return backed_up

    def _return_to_base(self, temp_branch: str) -> None:
        try:
            switch_to_base(self.repo, self.base_branch)
            if self.repo.local_branch_exists(temp_branch):
                self.repo.delete_local_branch(temp_branch)
            logger.debug("Temporary backup branch %s removed", temp_branch)
        except GitCommandError as exc:
            logger.warning("Cleaning up temporary backup branch %s failed: %s", temp_branch, exc)

    def restore(self, scratch_dir: Path) -> bool:
        """Copy a snapshot back into the working tree. False if there is none.

        Unlike ``backup``, copy errors propagate and fail the write attempt.
        """
        if not scratch_dir.exists():
            logger.debug("No backup at %s, skipping restore", scratch_dir)
            return False
        _copy_tree(scratch_dir, self.repo.workdir)
        logger.info("Restored backed up files from %s", scratch_dir)
        return True
