"""Clock used for verification timestamps and the backdating boundary."""

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

from fuelstation.core.config import settings


class Clock:
    """Source of the current time.

    ``now`` is always timezone-aware UTC. ``today`` is the calendar date at
    the station, which decides whether a reading is backdated.
    """

    def __init__(self, timezone: str | None = None) -> None:
        self.timezone = ZoneInfo(timezone or settings.STATION_TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(UTC)

    def today(self) -> date:
        return self.now().astimezone(self.timezone).date()


class FixedClock(Clock):
    """Clock frozen at a given instant, for tests and replays."""

    def __init__(self, instant: datetime, timezone: str | None = None) -> None:
        super().__init__(timezone)
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        self.instant = instant

    def now(self) -> datetime:
        return self.instant


def get_clock() -> Clock:
    """Dependency for getting the station clock."""
    return Clock()
