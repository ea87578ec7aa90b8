from __future__ import annotations

import time


def _now_ms() -> float:
    return time.perf_counter() * 1000


class TimingTracker:
    """Named marks and durations, in whole milliseconds, relative to construction."""

    def __init__(self) -> None:
        self._start = _now_ms()
        self._marks: dict[str, float] = {}
        self._durations: dict[str, int] = {}

    def mark(self, name: str) -> None:
        self._marks[name] = _now_ms()

    def measure(self, name: str, start_mark: str) -> int:
        """Record the time since ``start_mark`` (or since construction if unknown)."""
        start = self._marks.get(start_mark, self._start)
        duration = int(_now_ms() - start)
        self._durations[name] = duration
        return duration

    def get_total_ms(self) -> int:
        return int(_now_ms() - self._start)

    def to_dict(self) -> dict[str, int]:
        return {"total_ms": self.get_total_ms(), **self._durations}
