"""Safe branch write protocol.

Treats a git branch as a single-value slot: every write replaces the branch with
a fresh orphan commit, so pushes never conflict and the branch never grows
history. One attempt runs:

    observe tip -> backup -> delete branches -> create orphan -> restore backup
    -> write file(s) -> pre-commit hook -> stage, commit, push

inside a bounded retry loop with exponential backoff. Every attempt recreates
the branch from scratch, so repeating an attempt never double-applies a partial
write. Each attempt's scratch backup directory is removed in a ``finally`` block.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import shutil
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Protocol

from ..core.errors import BranchWriteError
from ..core.git import GitRepository
from .backup import BranchBackupManager
from .merge import ContentMerger
from .orphan import create_orphan_branch, delete_branches

logger = logging.getLogger(__name__)

PreCommitHook = Callable[[Path], Awaitable[None] | None]


@dataclass(frozen=True)
class FileWrite:
    """One file to write into the rewritten branch."""

    path: str
    content: bytes | str | None = None
    merger: ContentMerger | None = None

    def __post_init__(self):
        if (self.content is None) == (self.merger is None):
            raise ValueError(f"{self.path}: exactly one of content or merger must be given")
        rel = PurePosixPath(self.path.replace("\\", "/"))
        if not self.path or rel.is_absolute() or ".." in rel.parts or rel.parts[:1] == (".git",):
            raise ValueError(f"{self.path!r}: file path must be relative to the working tree")


@dataclass
class SafeWriteOptions:
    target_branch: str
    file_path: str
    commit_message: str
    base_branch: str = "main"
    content: bytes | str | None = None
    content_merger: ContentMerger | None = None
    needs_backup: bool = False
    branches_to_delete_before_write: Sequence[str] = ()
    pre_commit_hook: PreCommitHook | None = None
    extra_files: Sequence[FileWrite] = ()
    max_attempts: int = 3
    backoff_base: float = 2.0
    retry_on: tuple[type[BaseException], ...] = (Exception,)
    scratch_root: Path | None = None

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        # validates the content/merger pair early, before any git activity
        self.main_file()

    def main_file(self) -> FileWrite:
        return FileWrite(self.file_path, self.content, self.content_merger)

    def files(self) -> list[FileWrite]:
        return [self.main_file(), *self.extra_files]


@dataclass
class WriteOutcome:
    branch: str
    commit: str | None
    committed: bool
    attempts: int
    restored_backup: bool = False


@dataclass
class _CallState:
    """State carried across the attempts of one write call."""

    observed_tip: str | None = None
    attempts: int = 0
    errors: list[BaseException] = field(default_factory=list)


class BranchRewriter(Protocol):
    async def rewrite(self, options: SafeWriteOptions) -> WriteOutcome: ...


def defaults_from_config(config: dict) -> dict:
    """Keyword defaults for SafeWriteOptions taken from the loaded config."""
    git_cfg = config.get("git", {})
    write_cfg = config.get("write", {})
    return {
        "base_branch": git_cfg.get("base_branch", "main"),
        "max_attempts": int(write_cfg.get("max_attempts", 3)),
        "backoff_base": float(write_cfg.get("backoff_base_seconds", 2.0)),
    }


def write_file_content(workdir: Path, file: FileWrite) -> Path:
    """Write one file into the working tree, running its merger against what is on disk."""
    full_path = workdir / file.path
    full_path.parent.mkdir(parents=True, exist_ok=True)

    if file.merger is not None:
        old_content: str | None = None
        if full_path.exists():
            try:
                old_content = full_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                logger.error("Reading %s failed; merging against empty content", file.path, exc_info=True)
        data = file.merger(old_content)
    else:
        data = file.content

    if isinstance(data, str):
        data = data.encode("utf-8")
    full_path.write_bytes(data)
    logger.debug("Wrote %d bytes to %s", len(data), file.path)
    return full_path


def _scratch_dir(root: Path, branch: str, attempt: int) -> Path:
    safe_branch = branch.replace("/", "-")
    return root / f".git_backup_temp_{safe_branch}_{int(time.time() * 1000)}_{attempt}"


def _remove_scratch(scratch: Path, attempt: int) -> None:
    if not scratch.exists():
        return
    try:
        shutil.rmtree(scratch)
        logger.debug("[attempt %d] Removed scratch backup %s", attempt, scratch)
    except OSError:
        logger.error("[attempt %d] Removing scratch backup %s failed", attempt, scratch, exc_info=True)


class SafeBranchWriter:
    """Git-backed BranchRewriter. Git steps run in a worker thread."""

    def __init__(self, repo: GitRepository):
        self.repo = repo

    async def rewrite(self, options: SafeWriteOptions) -> WriteOutcome:
        branch = options.target_branch
        scratch_root = options.scratch_root or self.repo.workdir.parent
        state = _CallState()

        for attempt in range(1, options.max_attempts + 1):
            state.attempts = attempt
            scratch = _scratch_dir(scratch_root, branch, attempt)
            try:
                logger.info("[attempt %d/%d] Writing branch %s", attempt, options.max_attempts, branch)
                return await self._attempt(options, state, scratch)
            except options.retry_on as exc:
                state.errors.append(exc)
                logger.error(
                    "[attempt %d/%d] Writing branch %s failed: %s", attempt, options.max_attempts, branch, exc
                )
                if attempt < options.max_attempts:
                    delay = options.backoff_base**attempt
                    logger.info("Retrying %s in %.1f seconds", branch, delay)
                    await asyncio.sleep(delay)
            finally:
                _remove_scratch(scratch, attempt)

        last_error = state.errors[-1] if state.errors else None
        raise BranchWriteError(branch, options.max_attempts, last_error) from last_error

    async def _attempt(self, options: SafeWriteOptions, state: _CallState, scratch: Path) -> WriteOutcome:
        repo = self.repo
        branch = options.target_branch

        tip = await asyncio.to_thread(self._observe_tip, branch)
        if tip:
            state.observed_tip = tip

        if options.needs_backup:
            manager = BranchBackupManager(repo, options.base_branch)
            await asyncio.to_thread(manager.backup, branch, scratch, state.observed_tip)
        else:
            logger.debug("Backup skipped for %s", branch)

        await asyncio.to_thread(
            delete_branches, repo, options.branches_to_delete_before_write, options.base_branch
        )
        await asyncio.to_thread(create_orphan_branch, repo, options.base_branch, branch)

        restored = False
        if options.needs_backup:
            restored = await asyncio.to_thread(BranchBackupManager(repo, options.base_branch).restore, scratch)

        for file in options.files():
            await asyncio.to_thread(write_file_content, repo.workdir, file)

        if options.pre_commit_hook is not None:
            logger.debug("Running pre-commit hook for %s", branch)
            result = options.pre_commit_hook(repo.workdir)
            if inspect.isawaitable(result):
                await result

        commit, committed = await asyncio.to_thread(
            self._commit_and_push, branch, options.commit_message, state.observed_tip
        )
        return WriteOutcome(branch, commit, committed, state.attempts, restored)

    def _observe_tip(self, branch: str) -> str | None:
        tip = self.repo.remote_branch_tip(branch)
        if tip:
            self.repo.fetch_branch(branch)
        return tip

    def _commit_and_push(self, branch: str, message: str, previous_tip: str | None) -> tuple[str | None, bool]:
        repo = self.repo
        repo.stage_all()
        if not repo.has_changes():
            logger.info("No changes for %s, skipping commit and push", branch)
            return None, False

        if previous_tip and repo.write_tree() == repo.tree_of(previous_tip):
            # same content as the tip we replaced: republish that commit instead of a new one
            repo.set_branch_ref(branch, previous_tip)
            repo.push(branch)
            logger.info("Branch %s unchanged; kept commit %s", branch, previous_tip[:7])
            return previous_tip, False

        sha = repo.commit(message)
        repo.push(branch)
        logger.info("Branch %s pushed at %s", branch, sha[:7])
        return sha, True


async def safe_write(repo: GitRepository, options: SafeWriteOptions) -> WriteOutcome:
    """Run the safe write protocol for ``options`` against ``repo``."""
    return await SafeBranchWriter(repo).rewrite(options)
