"""Clock abstraction used by the engine for "now" and "today".

All timestamps handed out are timezone-aware UTC; ``today()`` is the calendar
date in the configured timezone.
"""

import datetime as dt
from zoneinfo import ZoneInfo

from billing_engine.calculators.time_utils import local_date


class Clock:
    """Current time and date in a configured timezone."""

    def __init__(self, tz: ZoneInfo):
        self.tz = tz

    def now(self) -> dt.datetime:
        raise NotImplementedError

    def today(self) -> dt.date:
        return local_date(self.now(), self.tz)


class SystemClock(Clock):
    """Clock backed by the system time."""

    def now(self) -> dt.datetime:
        return dt.datetime.now(dt.timezone.utc)


class FixedClock(Clock):
    """Clock frozen at a given instant; ``advance`` moves it forward.

    Example:
        >>> clock = FixedClock(dt.datetime(2025, 10, 27, 9, tzinfo=dt.timezone.utc),
        ...                    ZoneInfo("UTC"))
        >>> clock.advance(minutes=47).now().minute
        47
    """

    def __init__(self, instant: dt.datetime, tz: ZoneInfo):
        super().__init__(tz)
        if instant.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware instant")
        self._instant = instant.astimezone(dt.timezone.utc)

    def now(self) -> dt.datetime:
        return self._instant

    def set(self, instant: dt.datetime) -> "FixedClock":
        if instant.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware instant")
        self._instant = instant.astimezone(dt.timezone.utc)
        return self

    def advance(self, **delta) -> "FixedClock":
        self._instant = self._instant + dt.timedelta(**delta)
        return self
