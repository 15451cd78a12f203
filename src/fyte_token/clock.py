from __future__ import annotations

import time


class SystemClock:
    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """A clock that only moves when told to, like a local dev chain."""

    def __init__(self, start: int | None = None) -> None:
        self._now = int(time.time()) if start is None else int(start)
        if self._now <= 0:
            raise ValueError("Clock must start after the epoch.")

    def now(self) -> int:
        return self._now

    def increase(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError(f"Cannot move time backwards by {seconds}s.")
        self._now += int(seconds)
        return self._now

    def increase_to(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ValueError(
                f"Target timestamp {timestamp} is before current time {self._now}."
            )
        self._now = int(timestamp)
        return self._now
