"""Append-only and dated backup branches built on the safe write protocol."""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from collections.abc import Callable, Iterable
from typing import Any

from ..core.branch_names import archive_branch, validate_dataset
from ..core.errors import BranchStoreError
from ..core.git import GitRepository
from .merge import json_array_appender
from .writer import FileWrite, SafeWriteOptions, WriteOutcome, safe_write

logger = logging.getLogger(__name__)


async def append_records(
    repo: GitRepository,
    branch: str,
    file_path: str,
    records: Iterable[Any],
    *,
    dedupe_key: str | None = None,
    commit_message: str | None = None,
    **options: Any,
) -> WriteOutcome:
    """Append ``records`` to the JSON array at ``file_path`` on ``branch``.

    Everything else already on the branch is carried over by the backup/restore
    cycle, so the branch accumulates files across calls.
    """
    records = list(records)
    return await safe_write(
        repo,
        SafeWriteOptions(
            target_branch=branch,
            file_path=file_path,
            content_merger=json_array_appender(records, dedupe_key=dedupe_key),
            commit_message=commit_message or f"Append {len(records)} records to {file_path}",
            needs_backup=True,
            branches_to_delete_before_write=[branch],
            **options,
        ),
    )


async def append_partitioned(
    repo: GitRepository,
    branch: str,
    records: Iterable[Any],
    partition: Callable[[Any], str],
    *,
    commit_message: str | None = None,
    **options: Any,
) -> WriteOutcome | None:
    """Group records by ``partition(record) -> file path`` and append every group in one commit."""
    groups: dict[str, list[Any]] = defaultdict(list)
    for record in records:
        groups[partition(record)].append(record)
    if not groups:
        logger.info("No records to append to %s", branch)
        return None

    paths = sorted(groups)
    logger.debug("Appending %d partitions to %s", len(paths), branch)
    first, rest = paths[0], paths[1:]
    return await safe_write(
        repo,
        SafeWriteOptions(
            target_branch=branch,
            file_path=first,
            content_merger=json_array_appender(groups[first]),
            extra_files=[FileWrite(p, merger=json_array_appender(groups[p])) for p in rest],
            commit_message=commit_message or f"Append records to {len(paths)} files",
            needs_backup=True,
            branches_to_delete_before_write=[branch],
            **options,
        ),
    )


async def archive_day(
    repo: GitRepository,
    dataset: str,
    date: str,
    data: Any,
    **options: Any,
) -> bool:
    """Store one day's data as ``<dataset>/<date>.json`` on ``backup_<dataset>_raw-data``.

    Earlier days on the branch are preserved. Failures are logged and reported as False.
    """
    branch = archive_branch(dataset)
    try:
        await safe_write(
            repo,
            SafeWriteOptions(
                target_branch=branch,
                file_path=f"{validate_dataset(dataset)}/{date}.json",
                content=json.dumps(data, ensure_ascii=False, indent=2),
                commit_message=f"Backup data for {date}",
                needs_backup=True,
                branches_to_delete_before_write=[branch],
                **options,
            ),
        )
    except BranchStoreError:
        logger.error("Archiving %s for %s failed", dataset, date, exc_info=True)
        return False
    logger.info("Archive branch %s updated with %s", branch, date)
    return True
