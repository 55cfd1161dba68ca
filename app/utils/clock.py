"""
Service clock.

Every job reads "now" through a Clock so that tests can pin the instant.
All values are returned in the single service time zone (Settings.TIMEZONE).

Usage:
    from app.utils.clock import get_clock

    clock = get_clock()
    clock.now()      -> datetime(2026, 4, 1, 0, 1, tzinfo=ZoneInfo("Europe/Madrid"))
    clock.today()    -> date(2026, 4, 1)
"""
from datetime import date, datetime
from zoneinfo import ZoneInfo

from app.config import get_settings


class Clock:
    def __init__(self, tz_name: str):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock(Clock):
    """Clock frozen at a given instant. Naive datetimes are read as service-zone time."""

    def __init__(self, instant: datetime, tz_name: str | None = None):
        super().__init__(tz_name or get_settings().TIMEZONE)
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=self.tz)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant.astimezone(self.tz)


def get_clock() -> Clock:
    return Clock(get_settings().TIMEZONE)
