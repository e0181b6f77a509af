from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from tuition_desk.config import settings


APP_TIMEZONE = settings.app_timezone or "Asia/Dhaka"
APP_ZONEINFO = ZoneInfo(APP_TIMEZONE)


class TimeProvider:
    def now(self) -> datetime:
        return datetime.now(APP_ZONEINFO)

    def today(self) -> date:
        return self.now().date()

    def utcnow_naive(self) -> datetime:
        """Naive UTC timestamp, the form every DateTime column is stored in."""
        return self.now().astimezone(timezone.utc).replace(tzinfo=None)


default_time_provider = TimeProvider()
