# compliance_engine/clock.py
# Current-time sources. Status is always computed against the clock at call time.

from datetime import date, datetime, timezone
from typing import Optional


class SystemClock:
    """Wall clock in UTC"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.now().date()


class FixedClock(SystemClock):
    """Clock pinned to one instant, used by tests and report replays"""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance_to(self, instant: datetime):
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant


_clock: Optional[SystemClock] = None


def get_clock() -> SystemClock:
    """Get or create the process-wide clock"""
    global _clock

    if _clock is None:
        _clock = SystemClock()

    return _clock
