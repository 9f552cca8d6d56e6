"""Harvest client upload branches (``<type>_<timestamp_ms>_<suffix>``).

Clients push one short-lived branch per upload. A harvest run reads every branch
of one upload type inside a time window, keeps the records that validate, and
marks processed branches for deletion. Each branch is handled independently and
its outcome recorded; one bad branch never aborts the run.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..core.branch_names import UploadBranch, decode_upload_branch
from ..core.errors import BranchNameError, GitCommandError
from ..core.git import GitRepository
from ..core.results import BatchResult
from .orphan import delete_branches

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MS = 2 * 60 * 60 * 1000


@dataclass
class HarvestResult:
    records: list[Any] = field(default_factory=list)
    branches: BatchResult[str] = field(default_factory=BatchResult)
    to_delete: list[str] = field(default_factory=list)
    rejected: int = 0


def select_upload_branches(
    names: list[str], upload_type: str, now_ms: int, window_ms: int = DEFAULT_WINDOW_MS
) -> list[UploadBranch]:
    """Decode names and keep uploads of ``upload_type`` within ``now_ms ± window_ms``."""
    selected: list[UploadBranch] = []
    for name in names:
        try:
            upload = decode_upload_branch(name)
        except BranchNameError:
            continue
        if upload.upload_type != upload_type:
            continue
        if now_ms - window_ms <= upload.timestamp_ms <= now_ms + window_ms:
            selected.append(upload)
    selected.sort(key=lambda u: u.timestamp_ms)
    return selected


def _records_of(payload: Any) -> list[Any]:
    return payload if isinstance(payload, list) else [payload]


def harvest_uploads(
    repo: GitRepository,
    upload_type: str,
    file_path: str,
    *,
    now_ms: int,
    validator: Callable[[Any], bool],
    window_ms: int = DEFAULT_WINDOW_MS,
) -> HarvestResult:
    """Collect validated records from upload branches of ``upload_type``.

    A branch whose file is missing, unparseable or invalid is still marked for
    deletion; a branch that could not be read (git failure) is kept for the next run.
    """
    result = HarvestResult()
    uploads = select_upload_branches(repo.list_remote_branches(), upload_type, now_ms, window_ms)
    logger.info("Found %d %s upload branches in window", len(uploads), upload_type)

    for upload in uploads:
        name = str(upload)
        try:
            repo.fetch_branch(name)
            raw = repo.show(f"refs/remotes/{repo.remote}/{name}", file_path)
        except GitCommandError as exc:
            logger.error("Reading upload branch %s failed: %s", name, exc)
            result.branches.record_failure(name, exc)
            continue

        result.to_delete.append(name)
        if raw is None:
            logger.warning("Upload branch %s has no %s", name, file_path)
            result.branches.record_failure(name, FileNotFoundError(file_path))
            continue
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("Upload branch %s holds invalid JSON", name)
            result.branches.record_failure(name, exc)
            continue

        accepted = [r for r in _records_of(payload) if validator(r)]
        result.rejected += len(_records_of(payload)) - len(accepted)
        result.records.extend(accepted)
        result.branches.record_success(name)

    logger.info(
        "Harvested %d records from %s (%d rejected)", len(result.records), result.branches.summary(), result.rejected
    )
    return result


def delete_processed(repo: GitRepository, result: HarvestResult, base_branch: str) -> list[str]:
    """Delete the upload branches a harvest marked as processed."""
    if not result.to_delete:
        return []
    return delete_branches(repo, result.to_delete, base_branch)
