"""Tests for append-only and archive branches."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import patch

from branchstore.core.errors import GitCommandError
from branchstore.core.git import GitRepository
from branchstore.store.archive import append_partitioned, append_records, archive_day


def _track_path(record):
    return f"track-{record['type']}/track-{record['type']}_{record['date']}.json"


class TestAppendRecords:
    def test_accumulates_across_calls(self, repo, remote):
        asyncio.run(append_records(repo, "backup_track_raw-data", "events.json", [{"id": 1}], backoff_base=0))
        asyncio.run(
            append_records(
                repo, "backup_track_raw-data", "events.json", [{"id": 1}, {"id": 2}], dedupe_key="id", backoff_base=0
            )
        )

        assert json.loads(remote.read("backup_track_raw-data", "events.json")) == [{"id": 1}, {"id": 2}]
        assert remote.commit_count("backup_track_raw-data") == 1

    def test_other_files_survive(self, repo, remote):
        remote.seed("backup_track_raw-data", {"keep/me.json": "[0]", "events.json": "[1]"})

        outcome = asyncio.run(append_records(repo, "backup_track_raw-data", "events.json", [2], backoff_base=0))

        assert outcome.committed is True
        assert outcome.restored_backup is True
        assert remote.read("backup_track_raw-data", "keep/me.json") == "[0]"
        assert json.loads(remote.read("backup_track_raw-data", "events.json")) == [1, 2]


class TestAppendPartitioned:
    def test_groups_land_in_one_commit(self, repo, remote):
        remote.seed("backup_track_raw-data", {"track-click/track-click_2025-09-01.json": json.dumps([{"n": 0}])})
        records = [
            {"type": "click", "date": "2025-09-01", "n": 1},
            {"type": "view", "date": "2025-09-01", "n": 2},
            {"type": "click", "date": "2025-09-02", "n": 3},
        ]

        outcome = asyncio.run(append_partitioned(repo, "backup_track_raw-data", records, _track_path, backoff_base=0))

        assert outcome.committed is True
        assert remote.files("backup_track_raw-data") == [
            "track-click/track-click_2025-09-01.json",
            "track-click/track-click_2025-09-02.json",
            "track-view/track-view_2025-09-01.json",
        ]
        click = json.loads(remote.read("backup_track_raw-data", "track-click/track-click_2025-09-01.json"))
        assert [r["n"] for r in click] == [0, 1]
        assert remote.commit_count("backup_track_raw-data") == 1

    def test_no_records(self, repo, remote):
        assert asyncio.run(append_partitioned(repo, "backup_track_raw-data", [], _track_path)) is None
        assert remote.tip("backup_track_raw-data") is None


class TestArchiveDay:
    def test_days_accumulate(self, repo, remote):
        assert asyncio.run(archive_day(repo, "delay", "2025-09-01", {"G1": 1}, backoff_base=0)) is True
        assert asyncio.run(archive_day(repo, "delay", "2025-09-02", {"G1": 2}, backoff_base=0)) is True

        assert remote.files("backup_delay_raw-data") == ["delay/2025-09-01.json", "delay/2025-09-02.json"]
        assert json.loads(remote.read("backup_delay_raw-data", "delay/2025-09-02.json")) == {"G1": 2}

    def test_failure_returns_false(self, repo, remote):
        with patch.object(
            GitRepository, "push", autospec=True, side_effect=GitCommandError(["push"], 1, "simulated rejection")
        ):
            assert asyncio.run(archive_day(repo, "delay", "2025-09-01", {}, backoff_base=0, max_attempts=2)) is False
        assert remote.tip("backup_delay_raw-data") is None
