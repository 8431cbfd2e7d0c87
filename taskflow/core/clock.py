"""
Clock abstraction for the temporal engine.

Every component reads the current instant through a Clock so that tests can
pin time and the scheduler can move it forward deterministically.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

from dateutil import tz


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """
    Resolve a configured timezone name.

    Args:
        name: IANA name ("Europe/Berlin"), "UTC", or None/"local" for the
            machine's zone

    Returns:
        tzinfo instance

    Raises:
        ValueError: if the name is not a known zone
    """
    if name is None or name.strip().lower() in ("", "local", "system"):
        return tz.tzlocal()
    if name.strip().upper() in ("UTC", "Z", "GMT"):
        return timezone.utc

    zone = tz.gettz(name.strip())
    if zone is None:
        raise ValueError(f"Unknown timezone: {name}")
    return zone


class Clock(ABC):
    """Single source of the current instant"""

    @property
    @abstractmethod
    def tzinfo(self) -> tzinfo:
        """Zone used for calendar-day decisions"""
        pass

    @abstractmethod
    def now(self) -> datetime:
        """Current instant as a timezone-aware datetime"""
        pass


class SystemClock(Clock):
    """Wall clock expressed in the configured zone"""

    def __init__(self, zone: Optional[tzinfo] = None):
        self._tz = zone or timezone.utc

    @property
    def tzinfo(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        return datetime.now(self._tz)


class ManualClock(Clock):
    """
    Clock that only moves when told to.

    Usage:
        clock = ManualClock(datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc))
        clock.advance(seconds=125)
    """

    def __init__(self, start: datetime):
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        self._now = start

    @property
    def tzinfo(self) -> tzinfo:
        return self._now.tzinfo

    def now(self) -> datetime:
        return self._now

    def set(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=self._now.tzinfo)
        self._now = instant

    def advance(self, seconds: float = 0, **kwargs) -> datetime:
        """Move forward by ``seconds`` plus any timedelta keyword arguments"""
        self._now = self._now + timedelta(seconds=seconds, **kwargs)
        return self._now
