"""Tests for the branch-name codec."""

from __future__ import annotations

import pytest

from branchstore.core.branch_names import (
    BranchName,
    UploadBranch,
    archive_branch,
    blob_file_name,
    blob_path,
    data_branch,
    dated_backup_branch,
    decode_upload_branch,
    encode_upload_branch,
    parse_branch,
    strip_remote_prefix,
    validate_dataset,
    version_branch,
    version_file_path,
)
from branchstore.core.errors import BranchNameError


class TestRoleBranches:
    def test_builders(self):
        assert data_branch("gdcj-train-detail") == "data_gdcj-train-detail"
        assert version_branch("gdcj-train-detail") == "version_gdcj-train-detail"
        assert archive_branch("track") == "backup_track_raw-data"
        assert dated_backup_branch("delay", "2025-09-25") == "backup_delay_2025-09-25"

    def test_parse_round_trips_builders(self):
        assert parse_branch("data_gdcj") == BranchName("data", "gdcj")
        assert parse_branch("remotes/origin/version_gdcj") == BranchName("version", "gdcj")
        assert parse_branch("backup_track_raw-data") == BranchName("backup", "track", "raw-data")
        assert parse_branch("backup_delay_2025-09-25").qualifier == "2025-09-25"

    @pytest.mark.parametrize(
        "name",
        ["main", "data", "data_a_b", "backup_track", "backup_track_yesterday", "release_x", "data_-bad"],
    )
    def test_parse_rejects(self, name):
        with pytest.raises(BranchNameError):
            parse_branch(name)

    def test_dataset_may_not_contain_delimiter(self):
        with pytest.raises(BranchNameError):
            data_branch("bad_name")
        with pytest.raises(ValueError):
            validate_dataset("")

    def test_dated_backup_requires_iso_date(self):
        with pytest.raises(BranchNameError, match="YYYY-MM-DD"):
            dated_backup_branch("delay", "20250925")


class TestUploadBranches:
    def test_encode_decode(self):
        name = encode_upload_branch("track", 1758789264000, "a1b2")
        assert name == "track_1758789264000_a1b2"
        assert decode_upload_branch(name) == UploadBranch("track", 1758789264000, "a1b2")
        assert decode_upload_branch(f"remotes/origin/{name}").suffix == "a1b2"

    @pytest.mark.parametrize(
        "name",
        ["track_abc_x", "track_123", "track_123_x_y", "_123_x", "track_123_", "track_-5_x"],
    )
    def test_decode_rejects_malformed(self, name):
        with pytest.raises(BranchNameError):
            decode_upload_branch(name)

    def test_encode_rejects_delimiter(self):
        with pytest.raises(BranchNameError):
            encode_upload_branch("track_event", 1, "x")
        with pytest.raises(BranchNameError):
            encode_upload_branch("track", 1, "")


class TestPaths:
    def test_blob_and_version_paths(self):
        name = blob_file_name("gdcj", "20250925163424", ".json")
        assert name == "gdcj.20250925163424.json"
        assert blob_path(name) == "data/gdcj.20250925163424.json"
        assert version_file_path("gdcj") == "version/gdcj.version.json"

    def test_strip_remote_prefix(self):
        assert strip_remote_prefix("remotes/origin/data_x") == "data_x"
        assert strip_remote_prefix("data_x") == "data_x"
