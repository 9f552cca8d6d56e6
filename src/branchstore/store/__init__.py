"""Git-branch-backed storage: safe orphan rewrites and version-pointer publishing."""

from .archive import append_partitioned, append_records, archive_day
from .history import DatasetHistory
from .inbox import HarvestResult, delete_processed, harvest_uploads
from .publisher import PublishResult, VersionPointer, encode_and_save, publish_dataset, publish_many
from .reader import read_latest, read_pointer
from .workspace import open_workspace
from .writer import FileWrite, SafeBranchWriter, SafeWriteOptions, WriteOutcome, safe_write

__all__ = [
    "safe_write",
    "SafeBranchWriter",
    "SafeWriteOptions",
    "FileWrite",
    "WriteOutcome",
    "publish_dataset",
    "publish_many",
    "encode_and_save",
    "VersionPointer",
    "PublishResult",
    "read_pointer",
    "read_latest",
    "DatasetHistory",
    "harvest_uploads",
    "delete_processed",
    "HarvestResult",
    "append_records",
    "append_partitioned",
    "archive_day",
    "open_workspace",
]
