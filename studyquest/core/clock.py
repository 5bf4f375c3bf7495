from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from studyquest.core.config import settings


class Clock:
    """
    Source of "now" for everything that depends on calendar days
    (daily-repeat rewards, streaks, rank snapshots).

    `now()` is always timezone-aware UTC; `today()` is the calendar date in
    the application timezone, so a day boundary is the local midnight.
    """

    def __init__(self, tz_name: str = "UTC"):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.local_date(self.now())

    def local_date(self, moment: datetime) -> date:
        if moment.tzinfo is None:
            # Naive timestamps coming back from the database are stored as UTC
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(self.tz).date()


system_clock = Clock(settings.APP_TIMEZONE)


def get_clock() -> Clock:
    """FastAPI dependency; tests override it with a fixed clock."""
    return system_clock
