from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in UTC. Photo expiry and presence liveness are computed against it."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


system_clock = SystemClock()
