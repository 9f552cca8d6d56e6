"""Calendar service: version stamps and date partitions in a fixed UTC offset."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable


class Clock:
    """Wall clock pinned to a UTC offset (UTC+8 by default).

    ``now`` may be injected for tests; it must return an aware datetime.
    """

    def __init__(self, utc_offset_hours: float = 8, now: Callable[[], datetime] | None = None):
        self.tz = timezone(timedelta(hours=utc_offset_hours))
        self._now = now or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        return self._now().astimezone(self.tz)

    def version_stamp(self) -> str:
        """Version string used in blob file names, e.g. 20250925163424."""
        return self.now().strftime("%Y%m%d%H%M%S")

    def timestamp_ms(self) -> int:
        return int(self.now().timestamp() * 1000)

    def date_str(self, ts_ms: int | None = None, days: int = 0) -> str:
        """YYYY-MM-DD for a millisecond timestamp (or now), shifted by ``days``."""
        if ts_ms is None:
            moment = self.now()
        else:
            moment = datetime.fromtimestamp(ts_ms / 1000, tz=self.tz)
        return (moment + timedelta(days=days)).strftime("%Y-%m-%d")

    def iso(self) -> str:
        return self.now().isoformat(timespec="milliseconds")
