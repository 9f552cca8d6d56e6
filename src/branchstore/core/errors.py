"""Exception hierarchy for branchstore."""

from __future__ import annotations


class BranchStoreError(Exception):
    """Base exception for all branchstore errors."""


class ConfigError(BranchStoreError):
    """Raised when required configuration is missing or invalid."""


class GitCommandError(BranchStoreError):
    """Raised when a git subprocess fails or times out."""

    def __init__(self, args: list[str], returncode: int | None, stderr: str = ""):
        self.git_args = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr or f"exit code {returncode}"
        super().__init__(f"git {' '.join(self.git_args)} failed: {detail}")


class BranchWriteError(BranchStoreError):
    """Raised when the safe write protocol gives up on a branch."""

    def __init__(self, branch: str, attempts: int, last_error: BaseException | None):
        self.branch = branch
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Writing branch {branch} failed after {attempts} attempts. Last error: {last_error}"
        )


class BranchNameError(BranchStoreError, ValueError):
    """Raised when a branch name does not follow the naming contract."""


class PointerError(BranchStoreError):
    """Raised when a version pointer file cannot be parsed."""


class NotInitializedError(BranchStoreError):
    """Raised when a history query is made before initialize()."""
