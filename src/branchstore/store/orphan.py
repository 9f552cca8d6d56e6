"""Orphan branch management: history-free branches and forced branch deletion."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..core.branch_names import strip_remote_prefix
from ..core.errors import GitCommandError
from ..core.git import GitRepository

logger = logging.getLogger(__name__)

PLACEHOLDER_BRANCH = "temp_placeholder_for_cleanup"


def switch_to_base(repo: GitRepository, base_branch: str) -> str:
    """Check out ``base_branch`` with a clean tree.

    If the base branch cannot be checked out (e.g. it was deleted), fall back to an
    empty orphan placeholder so later steps still have a valid checkout target.
    Returns the branch actually checked out.
    """
    try:
        repo.checkout(base_branch, force=True)
        repo.clean()
        return base_branch
    except GitCommandError as exc:
        logger.warning("Cannot check out %s (%s); using placeholder branch", base_branch, exc)

    if repo.current_branch() == PLACEHOLDER_BRANCH:
        repo.clear_worktree()
        return PLACEHOLDER_BRANCH
    if repo.local_branch_exists(PLACEHOLDER_BRANCH):
        repo.checkout(PLACEHOLDER_BRANCH, force=True)
        repo.clear_worktree()
        return PLACEHOLDER_BRANCH
    repo.checkout_orphan(PLACEHOLDER_BRANCH)
    repo.clear_worktree()
    return PLACEHOLDER_BRANCH


def delete_branches(repo: GitRepository, branches: Iterable[str], base_branch: str) -> list[str]:
    """Force-delete branches locally and on the remote.

    Absent branches are not an error. Returns the names that were actually removed
    somewhere (locally, remotely, or both).
    """
    removed: list[str] = []
    names = [strip_remote_prefix(b) for b in branches]
    if not names:
        return removed

    try:
        switch_to_base(repo, base_branch)
    except GitCommandError:
        logger.warning("Could not leave the current branch before deleting; continuing", exc_info=True)

    for name in names:
        hit = False
        try:
            repo.delete_remote_branch(name)
            logger.info("Deleted remote branch %s", name)
            hit = True
        except GitCommandError as exc:
            logger.debug("Remote branch %s not deleted: %s", name, exc)

        if repo.local_branch_exists(name):
            try:
                repo.delete_local_branch(name)
                logger.debug("Deleted local branch %s", name)
                hit = True
            except GitCommandError as exc:
                logger.warning("Local branch %s not deleted: %s", name, exc)

        if hit:
            removed.append(name)
    return removed


def create_orphan_branch(repo: GitRepository, base_branch: str, branch: str) -> None:
    """Create ``branch`` with no ancestry and an empty working tree."""
    try:
        switch_to_base(repo, base_branch)
    except GitCommandError:
        logger.warning("Could not switch to %s before creating orphan %s", base_branch, branch, exc_info=True)

    if repo.current_branch() != branch and repo.local_branch_exists(branch):
        repo.delete_local_branch(branch)

    repo.checkout_orphan(branch)
    repo.clear_worktree()
    logger.debug("Orphan branch %s created and emptied", branch)
