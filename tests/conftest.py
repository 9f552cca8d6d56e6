"""Shared fixtures: a real bare remote and a working clone of it."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from branchstore.core.git import GitRepository


def _git(*args, cwd=None) -> str:
    result = subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)
    return result.stdout


class BareRemote:
    """A bare repository standing in for the hosted remote, plus helpers to inspect it."""

    def __init__(self, path: Path, scratch: Path):
        self.path = path
        self.scratch = scratch
        self._seeds = 0

    @property
    def url(self) -> str:
        return str(self.path)

    def branches(self) -> list[str]:
        out = _git("--git-dir", str(self.path), "for-each-ref", "--format=%(refname:short)", "refs/heads")
        return out.split()

    def tip(self, branch: str) -> str | None:
        result = subprocess.run(
            ["git", "--git-dir", str(self.path), "rev-parse", "--verify", "--quiet", f"refs/heads/{branch}"],
            capture_output=True,
            text=True,
        )
        return result.stdout.strip() if result.returncode == 0 else None

    def read(self, branch: str, path: str) -> str | None:
        result = subprocess.run(
            ["git", "--git-dir", str(self.path), "show", f"refs/heads/{branch}:{path}"],
            capture_output=True,
            text=True,
        )
        return result.stdout if result.returncode == 0 else None

    def files(self, branch: str) -> list[str]:
        out = _git("--git-dir", str(self.path), "ls-tree", "-r", "--name-only", f"refs/heads/{branch}")
        return sorted(out.split())

    def commit_count(self, branch: str) -> int:
        return int(_git("--git-dir", str(self.path), "rev-list", "--count", f"refs/heads/{branch}").strip())

    def parent_count(self, branch: str) -> int:
        line = _git("--git-dir", str(self.path), "rev-list", "--parents", "-n", "1", f"refs/heads/{branch}")
        return len(line.split()) - 1

    def seed(self, branch: str, files: dict[str, str]) -> str:
        """Push an orphan branch holding ``files`` and return its commit sha."""
        self._seeds += 1
        work = self.scratch / f"seed-{self._seeds}"
        _git("clone", "-q", self.url, str(work))
        _git("config", "user.name", "Seeder", cwd=work)
        _git("config", "user.email", "seed@test.com", cwd=work)
        _git("checkout", "-q", "--orphan", branch, cwd=work)
        _git("rm", "-r", "-q", "--cached", "--ignore-unmatch", ".", cwd=work)
        _git("clean", "-fdxq", cwd=work)
        for rel, content in files.items():
            target = work / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        _git("add", "-A", cwd=work)
        _git("commit", "-q", "-m", f"seed {branch}", cwd=work)
        _git("push", "-q", "-f", "origin", f"HEAD:refs/heads/{branch}", cwd=work)
        return _git("rev-parse", "HEAD", cwd=work).strip()


@pytest.fixture
def remote(tmp_path):
    """Bare remote with an initial commit on main."""
    path = tmp_path / "remote.git"
    _git("init", "-q", "--bare", "--initial-branch=main", str(path))

    init = tmp_path / "init"
    _git("init", "-q", "--initial-branch=main", str(init))
    _git("config", "user.name", "Test", cwd=init)
    _git("config", "user.email", "test@test.com", cwd=init)
    (init / "README.md").write_text("# store\n", encoding="utf-8")
    _git("add", "README.md", cwd=init)
    _git("commit", "-q", "-m", "init", cwd=init)
    _git("remote", "add", "origin", str(path), cwd=init)
    _git("push", "-q", "origin", "main", cwd=init)

    scratch = tmp_path / "seeds"
    scratch.mkdir()
    return BareRemote(path, scratch)


@pytest.fixture
def repo(remote, tmp_path):
    """Working clone of the remote; its parent directory is the scratch root."""
    work = tmp_path / "work"
    work.mkdir()
    clone = GitRepository.clone(remote.url, work / "repo")
    clone.configure_identity("Test", "test@test.com")
    return clone


@pytest.fixture
def scratch_dirs(repo):
    """Callable listing leftover per-attempt backup directories."""

    def _list():
        return sorted(p.name for p in repo.workdir.parent.glob(".git_backup_temp_*"))

    return _list


@pytest.fixture
def isolated_global_config(tmp_path, monkeypatch):
    """Isolate global config to temp dir."""
    config_path = tmp_path / "global_bstore" / "config.toml"
    monkeypatch.setattr("branchstore.core.config._GLOBAL_CONFIG_PATH", config_path)
    return config_path
