from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """UTC wall clock that never steps backwards within the process.

    Message timestamps must stay non-decreasing in insertion order, so a
    backwards wall-clock adjustment is absorbed by repeating the last value.
    """

    def __init__(self) -> None:
        self._last: datetime | None = None

    def now(self) -> datetime:
        current = datetime.now(timezone.utc)
        if self._last is not None and current < self._last:
            current = self._last
        self._last = current
        return current


system_clock = SystemClock()
