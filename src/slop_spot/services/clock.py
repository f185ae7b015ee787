"""Clock abstraction for day-boundary logic."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    """Source of the current instant and calendar day."""

    def now(self) -> datetime:
        """Return the current timezone-aware instant."""

    def today(self) -> date:
        """Return the current calendar date."""


@dataclass
class SystemClock(Clock):
    """Wall clock, in a named timezone or the host's local one."""

    timezone_name: str | None = None

    def now(self) -> datetime:
        """Return the current instant."""
        if self.timezone_name:
            return datetime.now(tz=ZoneInfo(self.timezone_name))
        return datetime.now().astimezone()

    def today(self) -> date:
        """Return today's date using the local day boundary."""
        return self.now().date()
