"""Branch-name codec.

Every branch that carries data follows ``<role>_<dataset>[_<qualifier>]``, with
``_`` reserved as the delimiter. Upload branches pushed by clients follow
``<upload_type>_<timestamp_ms>_<suffix>``. All parsing goes through the decode
functions here so a malformed name fails in exactly one place.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import BranchNameError

REMOTE_PREFIX = "remotes/origin/"

DATA_ROLE = "data"
VERSION_ROLE = "version"
BACKUP_ROLE = "backup"
ARCHIVE_QUALIFIER = "raw-data"

_DATASET_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9.-]*$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ROLES = (DATA_ROLE, VERSION_ROLE, BACKUP_ROLE)


@dataclass(frozen=True)
class BranchName:
    role: str
    dataset: str
    qualifier: str | None = None

    def __str__(self) -> str:
        parts = [self.role, self.dataset]
        if self.qualifier:
            parts.append(self.qualifier)
        return "_".join(parts)


@dataclass(frozen=True)
class UploadBranch:
    upload_type: str
    timestamp_ms: int
    suffix: str

    def __str__(self) -> str:
        return f"{self.upload_type}_{self.timestamp_ms}_{self.suffix}"


def validate_dataset(dataset: str) -> str:
    if not _DATASET_RE.match(dataset or ""):
        raise BranchNameError(f"Invalid dataset name {dataset!r}: use letters, digits, '.' and '-'")
    return dataset


def strip_remote_prefix(name: str) -> str:
    if name.startswith(REMOTE_PREFIX):
        return name[len(REMOTE_PREFIX):]
    return name


def data_branch(dataset: str) -> str:
    return str(BranchName(DATA_ROLE, validate_dataset(dataset)))


def version_branch(dataset: str) -> str:
    return str(BranchName(VERSION_ROLE, validate_dataset(dataset)))


def archive_branch(dataset: str) -> str:
    return str(BranchName(BACKUP_ROLE, validate_dataset(dataset), ARCHIVE_QUALIFIER))


def dated_backup_branch(dataset: str, date: str) -> str:
    if not _DATE_RE.match(date):
        raise BranchNameError(f"Invalid date {date!r}: expected YYYY-MM-DD")
    return str(BranchName(BACKUP_ROLE, validate_dataset(dataset), date))


def parse_branch(name: str) -> BranchName:
    """Decode a role branch name such as ``data_gdcj`` or ``backup_track_raw-data``."""
    parts = strip_remote_prefix(name).split("_")
    if len(parts) < 2 or parts[0] not in _ROLES:
        raise BranchNameError(f"Not a role branch: {name!r}")
    role, dataset, rest = parts[0], parts[1], parts[2:]
    validate_dataset(dataset)
    if role in (DATA_ROLE, VERSION_ROLE):
        if rest:
            raise BranchNameError(f"Unexpected qualifier in {name!r}")
        return BranchName(role, dataset)
    if len(rest) != 1 or not (rest[0] == ARCHIVE_QUALIFIER or _DATE_RE.match(rest[0])):
        raise BranchNameError(f"Backup branch {name!r} needs a '{ARCHIVE_QUALIFIER}' or date qualifier")
    return BranchName(role, dataset, rest[0])


def encode_upload_branch(upload_type: str, timestamp_ms: int, suffix: str) -> str:
    if "_" in upload_type or "_" in suffix or not suffix:
        raise BranchNameError("upload type and suffix must be non-empty and free of '_'")
    return str(UploadBranch(upload_type, int(timestamp_ms), suffix))


def decode_upload_branch(name: str) -> UploadBranch:
    """Decode ``<upload_type>_<timestamp_ms>_<suffix>``."""
    parts = strip_remote_prefix(name).split("_")
    if len(parts) != 3 or not parts[0] or not parts[2]:
        raise BranchNameError(f"Upload branch {name!r} must look like <type>_<timestamp_ms>_<suffix>")
    upload_type, raw_ts, suffix = parts
    if not raw_ts.isdigit():
        raise BranchNameError(f"Upload branch {name!r} has a non-numeric timestamp {raw_ts!r}")
    return UploadBranch(upload_type, int(raw_ts), suffix)


def blob_file_name(dataset: str, version: str, extension: str) -> str:
    return f"{validate_dataset(dataset)}.{version}.{extension.lstrip('.')}"


def blob_path(file_name: str) -> str:
    return f"data/{file_name}"


def version_file_path(dataset: str) -> str:
    return f"version/{validate_dataset(dataset)}.version.json"
