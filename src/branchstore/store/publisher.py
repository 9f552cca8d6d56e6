"""Two-phase dataset publishing: data branch first, then the version pointer.

Layout per dataset:

    data_<dataset>     data/<dataset>.<YYYYMMDDHHmmss>.<ext>
    version_<dataset>  version/<dataset>.version.json

Readers resolve the pointer on the version branch, then fetch the blob it names
from the data branch. The version branch is only written after the data branch
push has completed, so a pointer never names a blob that is not yet published.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..core.branch_names import blob_file_name, blob_path, data_branch, version_branch, version_file_path
from ..core.clock import Clock
from ..core.codec import Codec
from ..core.errors import BranchStoreError, PointerError
from ..core.git import GitRepository
from ..core.results import BatchResult
from .writer import SafeWriteOptions, safe_write

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VersionPointer:
    version: str
    file_name: str
    data_url: str

    def to_json(self) -> str:
        return json.dumps(
            {"_version": self.version, "_fileName": self.file_name, "_dataUrl": self.data_url},
            ensure_ascii=False,
            indent=2,
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> VersionPointer:
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise PointerError(f"Version file is not valid JSON: {exc}") from exc
        if not isinstance(data, dict) or "_version" not in data or "_fileName" not in data:
            raise PointerError("Version file must contain _version and _fileName")
        return cls(str(data["_version"]), str(data["_fileName"]), str(data.get("_dataUrl", "")))


@dataclass
class PublishResult:
    dataset: str
    pointer: VersionPointer
    data_commit: str | None
    version_published: bool


def build_data_url(raw_base_url: str, branch: str, path: str) -> str:
    """Direct download URL of ``path`` on ``branch`` (relative when no base URL is set)."""
    relative = f"{branch}/{path}"
    if not raw_base_url:
        return relative
    return f"{raw_base_url.rstrip('/')}/{relative}"


async def update_version_branch(
    repo: GitRepository,
    dataset: str,
    pointer: VersionPointer,
    *,
    base_branch: str = "main",
    max_attempts: int = 3,
    backoff_base: float = 2.0,
) -> bool:
    """Overwrite the pointer file on ``version_<dataset>``. Failures are logged, not raised."""
    branch = version_branch(dataset)
    try:
        await safe_write(
            repo,
            SafeWriteOptions(
                target_branch=branch,
                base_branch=base_branch,
                file_path=version_file_path(dataset),
                content=pointer.to_json(),
                commit_message=f"Update version info to {pointer.file_name}",
                needs_backup=False,
                branches_to_delete_before_write=[branch],
                max_attempts=max_attempts,
                backoff_base=backoff_base,
            ),
        )
    except BranchStoreError:
        logger.error("Updating version branch %s failed; it still points at the previous blob", branch, exc_info=True)
        return False
    logger.info("Version branch %s now points at %s", branch, pointer.file_name)
    return True


async def publish_dataset(
    repo: GitRepository,
    dataset: str,
    blob: bytes,
    *,
    extension: str = "json",
    clock: Clock | None = None,
    base_branch: str = "main",
    raw_base_url: str = "",
    max_attempts: int = 3,
    backoff_base: float = 2.0,
) -> PublishResult:
    """Publish ``blob`` as the newest version of ``dataset``.

    Raises BranchWriteError when the data branch cannot be written; in that case
    the version branch is left untouched.
    """
    clock = clock or Clock()
    version = clock.version_stamp()
    file_name = blob_file_name(dataset, version, extension)
    path = blob_path(file_name)
    branch = data_branch(dataset)

    outcome = await safe_write(
        repo,
        SafeWriteOptions(
            target_branch=branch,
            base_branch=base_branch,
            file_path=path,
            content=blob,
            commit_message=f"Update {dataset} data - {clock.iso()}",
            needs_backup=False,
            branches_to_delete_before_write=[branch],
            max_attempts=max_attempts,
            backoff_base=backoff_base,
        ),
    )
    logger.info("Data file %s pushed to %s", file_name, branch)

    pointer = VersionPointer(version, file_name, build_data_url(raw_base_url, branch, path))
    version_ok = await update_version_branch(
        repo,
        dataset,
        pointer,
        base_branch=base_branch,
        max_attempts=max_attempts,
        backoff_base=backoff_base,
    )
    return PublishResult(dataset, pointer, outcome.commit, version_ok)


async def encode_and_save(
    repo: GitRepository,
    dataset: str,
    obj: Any,
    codec: Codec,
    **kwargs: Any,
) -> PublishResult:
    """Encode ``obj`` with ``codec`` and publish it; the codec decides the extension."""
    blob = codec.encode(obj)
    logger.debug("Encoded %s: %d bytes", dataset, len(blob))
    kwargs.setdefault("extension", codec.extension)
    return await publish_dataset(repo, dataset, blob, **kwargs)


async def publish_many(
    repo: GitRepository,
    blobs: Mapping[str, bytes],
    **kwargs: Any,
) -> BatchResult[PublishResult]:
    """Publish several datasets one after another; one failure does not stop the rest."""
    result: BatchResult[PublishResult] = BatchResult()
    for dataset, blob in blobs.items():
        try:
            result.record_success(await publish_dataset(repo, dataset, blob, **kwargs))
        except BranchStoreError as exc:
            logger.error("Publishing %s failed: %s", dataset, exc)
            result.record_failure(dataset, exc)
    logger.info("Publish run finished: %s", result.summary())
    return result
