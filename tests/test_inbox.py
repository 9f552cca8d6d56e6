"""Tests for harvesting client upload branches."""

from __future__ import annotations

import json

from branchstore.store.inbox import DEFAULT_WINDOW_MS, delete_processed, harvest_uploads, select_upload_branches

NOW = 1_758_789_264_000
HOUR = 60 * 60 * 1000


def _valid(record):
    return isinstance(record, dict) and "id" in record


class TestSelectUploadBranches:
    def test_window_type_and_order(self):
        names = [
            f"track_{NOW + HOUR}_b",
            f"track_{NOW - HOUR}_a",
            f"track_{NOW - 3 * HOUR}_old",
            f"delay_{NOW}_x",
            "main",
            "track_notanumber_x",
            f"remotes/origin/track_{NOW}_c",
        ]
        selected = select_upload_branches(names, "track", NOW)
        assert [u.suffix for u in selected] == ["a", "c", "b"]

    def test_window_is_inclusive(self):
        names = [f"track_{NOW - DEFAULT_WINDOW_MS}_edge", f"track_{NOW + DEFAULT_WINDOW_MS + 1}_out"]
        assert [u.suffix for u in select_upload_branches(names, "track", NOW)] == ["edge"]


class TestHarvestUploads:
    def test_collects_valid_records_and_marks_branches(self, repo, remote):
        remote.seed(f"track_{NOW - HOUR}_a", {"track.json": json.dumps([{"id": 1}, {"bad": True}])})
        remote.seed(f"track_{NOW}_b", {"track.json": json.dumps({"id": 2})})
        remote.seed(f"track_{NOW + HOUR}_c", {"track.json": "{not json"})
        remote.seed(f"track_{NOW + 2 * HOUR - 1}_d", {"other.json": "[]"})
        remote.seed(f"track_{NOW - 5 * HOUR}_stale", {"track.json": json.dumps([{"id": 0}])})

        result = harvest_uploads(repo, "track", "track.json", now_ms=NOW, validator=_valid)

        assert result.records == [{"id": 1}, {"id": 2}]
        assert result.rejected == 1
        assert [s for s in result.branches.succeeded] == [f"track_{NOW - HOUR}_a", f"track_{NOW}_b"]
        assert sorted(f.key for f in result.branches.failed) == sorted(
            [f"track_{NOW + HOUR}_c", f"track_{NOW + 2 * HOUR - 1}_d"]
        )
        assert len(result.to_delete) == 4
        assert f"track_{NOW - 5 * HOUR}_stale" not in result.to_delete

    def test_delete_processed(self, repo, remote):
        remote.seed(f"track_{NOW}_a", {"track.json": "[]"})
        remote.seed(f"track_{NOW - 5 * HOUR}_stale", {"track.json": "[]"})

        result = harvest_uploads(repo, "track", "track.json", now_ms=NOW, validator=_valid)
        removed = delete_processed(repo, result, "main")

        assert removed == [f"track_{NOW}_a"]
        assert sorted(remote.branches()) == ["main", f"track_{NOW - 5 * HOUR}_stale"]

    def test_nothing_to_delete(self, repo):
        result = harvest_uploads(repo, "track", "track.json", now_ms=NOW, validator=_valid)
        assert result.records == []
        assert result.branches.ok
        assert delete_processed(repo, result, "main") == []
