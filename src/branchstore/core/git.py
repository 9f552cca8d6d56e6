"""Thin wrapper over a local git clone used as a key-value store."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from .errors import GitCommandError

logger = logging.getLogger(__name__)


def _run_git(
    args: list[str],
    cwd: str | Path | None,
    timeout: float = 120,
    check: bool = True,
    text: bool = True,
) -> subprocess.CompletedProcess:
    """Run git, converting failures and timeouts into GitCommandError when check is set."""
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=cwd,
            capture_output=True,
            text=text,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise GitCommandError(args, None, f"timed out after {timeout}s") from exc
    if check and result.returncode != 0:
        stderr = result.stderr if text else result.stderr.decode("utf-8", "replace")
        raise GitCommandError(args, result.returncode, stderr)
    return result


class GitRepository:
    """A working clone of one remote repository.

    Every method maps onto one or two git invocations. Methods that look up
    something that may legitimately be absent return None/False instead of raising.
    """

    def __init__(self, workdir: str | Path, *, remote: str = "origin", timeout: float = 120):
        self.workdir = Path(workdir)
        self.remote = remote
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"GitRepository({str(self.workdir)!r})"

    def _git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        return _run_git(list(args), cwd=self.workdir, timeout=self.timeout, check=check)

    @classmethod
    def clone(
        cls,
        url: str,
        dest: str | Path,
        *,
        branch: str | None = None,
        single_branch: bool = False,
        timeout: float = 120,
    ) -> GitRepository:
        args = ["clone"]
        if branch:
            args += ["--branch", branch]
        if single_branch:
            args.append("--single-branch")
        args += [url, str(dest)]
        _run_git(args, cwd=None, timeout=timeout)
        logger.debug("Cloned %s into %s", url, dest)
        return cls(dest, timeout=timeout)

    def configure_identity(self, name: str, email: str) -> None:
        self._git("config", "user.name", name)
        self._git("config", "user.email", email)

    # -- remote refs ---------------------------------------------------------

    def remote_branch_tip(self, branch: str) -> str | None:
        """Return the commit sha of a remote branch, or None when it does not exist."""
        result = self._git("ls-remote", "--heads", self.remote, f"refs/heads/{branch}")
        for line in result.stdout.splitlines():
            parts = line.split("\t", 1)
            if len(parts) == 2 and parts[1] == f"refs/heads/{branch}":
                return parts[0]
        return None

    def fetch_branch(self, branch: str) -> None:
        self._git("fetch", self.remote, f"+refs/heads/{branch}:refs/remotes/{self.remote}/{branch}")

    def list_remote_branches(self) -> list[str]:
        """Return the names of all branches on the remote."""
        result = self._git("ls-remote", "--heads", self.remote)
        names: list[str] = []
        for line in result.stdout.splitlines():
            parts = line.split("\t", 1)
            if len(parts) == 2 and parts[1].startswith("refs/heads/"):
                names.append(parts[1][len("refs/heads/"):])
        return names

    def delete_remote_branch(self, branch: str) -> None:
        self._git("push", self.remote, "--delete", branch)

    def push(self, branch: str, set_upstream: bool = True) -> None:
        args = ["push"]
        if set_upstream:
            args.append("--set-upstream")
        args += [self.remote, f"refs/heads/{branch}:refs/heads/{branch}"]
        self._git(*args)

    # -- local branches ------------------------------------------------------

    def current_branch(self) -> str | None:
        result = self._git("symbolic-ref", "--quiet", "--short", "HEAD", check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def local_branch_exists(self, branch: str) -> bool:
        result = self._git("rev-parse", "--verify", "--quiet", f"refs/heads/{branch}", check=False)
        return result.returncode == 0

    def checkout(self, ref: str, force: bool = False) -> None:
        if force:
            self._git("checkout", "-f", ref)
        else:
            self._git("checkout", ref)

    def checkout_new(self, name: str, start_point: str) -> None:
        self._git("checkout", "-f", "-b", name, start_point)

    def checkout_orphan(self, name: str) -> None:
        self._git("checkout", "--orphan", name)

    def delete_local_branch(self, branch: str) -> None:
        self._git("branch", "-D", branch)

    def set_branch_ref(self, branch: str, sha: str) -> None:
        self._git("update-ref", f"refs/heads/{branch}", sha)

    # -- working tree --------------------------------------------------------

    def clean(self) -> None:
        """Remove untracked files and directories (ignored files are kept)."""
        self._git("clean", "-fdq")

    def clear_worktree(self) -> None:
        """Empty the index and the working tree, keeping only .git."""
        self._git("rm", "-r", "-q", "--cached", "--ignore-unmatch", ".")
        self._git("clean", "-fdxq")

    def stage_all(self) -> None:
        self._git("add", "-A")

    def has_changes(self) -> bool:
        result = self._git("status", "--porcelain")
        return bool(result.stdout.strip())

    def write_tree(self) -> str:
        return self._git("write-tree").stdout.strip()

    def tree_of(self, ref: str) -> str | None:
        result = self._git("rev-parse", "--verify", "--quiet", f"{ref}^{{tree}}", check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def commit(self, message: str) -> str:
        self._git("commit", "-q", "-m", message)
        return self.head_commit()

    def head_commit(self) -> str | None:
        result = self._git("rev-parse", "--verify", "--quiet", "HEAD", check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    # -- inspection ----------------------------------------------------------

    def show(self, ref: str, path: str) -> bytes | None:
        """Return the bytes of path at ref, or None when it does not exist."""
        result = _run_git(
            ["show", f"{ref}:{path}"], cwd=self.workdir, timeout=self.timeout, check=False, text=False
        )
        if result.returncode != 0:
            return None
        return result.stdout

    def commit_count(self, ref: str) -> int:
        return int(self._git("rev-list", "--count", ref).stdout.strip())

    def parent_count(self, ref: str) -> int:
        line = self._git("rev-list", "--parents", "-n", "1", ref).stdout.strip()
        return max(len(line.split()) - 1, 0)
