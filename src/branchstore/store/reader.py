"""Consumer side: resolve the version pointer, then fetch the blob it names."""

from __future__ import annotations

import logging

from ..core.branch_names import blob_path, data_branch, version_branch, version_file_path
from ..core.git import GitRepository
from .publisher import VersionPointer

logger = logging.getLogger(__name__)


def _read_remote_file(repo: GitRepository, branch: str, path: str) -> bytes | None:
    if repo.remote_branch_tip(branch) is None:
        logger.info("Remote branch %s does not exist", branch)
        return None
    repo.fetch_branch(branch)
    return repo.show(f"refs/remotes/{repo.remote}/{branch}", path)


def read_pointer(repo: GitRepository, dataset: str) -> VersionPointer | None:
    """Return the current pointer of ``dataset``, or None if nothing is published yet.

    Raises PointerError when the pointer file exists but is malformed.
    """
    raw = _read_remote_file(repo, version_branch(dataset), version_file_path(dataset))
    if raw is None:
        return None
    return VersionPointer.from_json(raw)


def read_latest(repo: GitRepository, dataset: str) -> tuple[VersionPointer, bytes] | None:
    """Two-step resolution: version branch first, then the data branch."""
    pointer = read_pointer(repo, dataset)
    if pointer is None:
        return None
    blob = _read_remote_file(repo, data_branch(dataset), blob_path(pointer.file_name))
    if blob is None:
        logger.warning("Pointer for %s names %s but the data branch does not hold it", dataset, pointer.file_name)
        return None
    return pointer, blob
