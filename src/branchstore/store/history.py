"""Load-once, query-many access to the latest published dataset.

The published blob is expected to decode to a mapping keyed by date
(``YYYY-MM-DD``), each day holding a mapping of record key to record.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, MutableMapping
from typing import Any

from ..core.codec import Codec, JsonCodec
from ..core.errors import BranchStoreError, NotInitializedError
from ..core.git import GitRepository
from .reader import read_latest

logger = logging.getLogger(__name__)


class DatasetHistory:
    def __init__(self, dataset: str, codec: Codec | None = None):
        self.dataset = dataset
        self.codec = codec or JsonCodec()
        self.version: str | None = None
        self._initialized = False
        self._days: dict[str, dict[str, Any]] = {}

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self, repo: GitRepository) -> bool:
        """Load the latest published blob once. Returns True if history data was loaded.

        A dataset that has never been published (or cannot be read) still leaves the
        service ready, with no days.
        """
        if self._initialized:
            logger.debug("History for %s already loaded", self.dataset)
            return bool(self._days)

        try:
            latest = read_latest(repo, self.dataset)
            if latest is None:
                logger.warning("No published history for %s", self.dataset)
            else:
                pointer, blob = latest
                decoded = self.codec.decode(blob)
                if not isinstance(decoded, dict):
                    raise ValueError(f"history blob {pointer.file_name} is not a mapping")
                self._days = {day: dict(records) for day, records in decoded.items() if isinstance(records, dict)}
                self.version = pointer.version
                logger.info("Loaded %d days of %s history (version %s)", len(self._days), self.dataset, self.version)
        except (BranchStoreError, ValueError, OSError):
            logger.error("Loading history for %s failed; continuing without it", self.dataset, exc_info=True)
            self._days = {}
        self._initialized = True
        return bool(self._days)

    def _require(self) -> None:
        if not self._initialized:
            raise NotInitializedError(f"History for {self.dataset} queried before initialize()")

    def days(self) -> list[str]:
        self._require()
        return sorted(self._days)

    def get_day(self, date: str) -> dict[str, Any] | None:
        self._require()
        return self._days.get(date)

    def get_record(self, date: str, key: str) -> Any | None:
        self._require()
        return self._days.get(date, {}).get(key)

    def protect(self, result: MutableMapping[str, Any], dates: Iterable[str]) -> list[str]:
        """Overwrite ``result[date]`` with the historical day for each protected date.

        Returns the dates actually restored from history.
        """
        self._require()
        restored: list[str] = []
        for date in dates:
            if date in self._days:
                result[date] = copy.deepcopy(self._days[date])
                restored.append(date)
            else:
                logger.warning("Protected date %s not found in %s history", date, self.dataset)
        return restored
