"""Simulated calendar: hour-resolution timestamps and a host-advanced clock.

A year has ``days_per_year`` days (84 by default: four 21-day seasons).
Timestamps and durations share one type, ``SimTime``, measured in hours
since the start of the campaign.
"""

from __future__ import annotations

from dataclasses import dataclass

from alliances.errors import ValidationError

HOURS_PER_DAY = 24
DEFAULT_DAYS_PER_YEAR = 84


@dataclass(frozen=True, order=True)
class SimTime:
    """A point (or span) in simulated time, in hours."""

    hours: float = 0.0
    days_per_year: int = DEFAULT_DAYS_PER_YEAR

    @classmethod
    def of_hours(cls, hours: float, days_per_year: int = DEFAULT_DAYS_PER_YEAR) -> SimTime:
        return cls(float(hours), days_per_year)

    @classmethod
    def of_days(cls, days: float, days_per_year: int = DEFAULT_DAYS_PER_YEAR) -> SimTime:
        return cls(float(days) * HOURS_PER_DAY, days_per_year)

    @classmethod
    def of_years(cls, years: float, days_per_year: int = DEFAULT_DAYS_PER_YEAR) -> SimTime:
        return cls(float(years) * days_per_year * HOURS_PER_DAY, days_per_year)

    @classmethod
    def from_date(
        cls, year: int, day_of_year: int, days_per_year: int = DEFAULT_DAYS_PER_YEAR
    ) -> SimTime:
        """Midnight of the given year/day-of-year."""
        return cls.of_days(year * days_per_year + day_of_year, days_per_year)

    @property
    def to_days(self) -> float:
        return self.hours / HOURS_PER_DAY

    @property
    def to_years(self) -> float:
        return self.to_days / self.days_per_year

    @property
    def year(self) -> int:
        return int(self.to_days // self.days_per_year)

    @property
    def day_of_year(self) -> int:
        return int(self.to_days % self.days_per_year)

    @property
    def absolute_day(self) -> int:
        """Whole days elapsed since the campaign start."""
        return int(self.to_days)

    def __add__(self, other: SimTime) -> SimTime:
        return SimTime(self.hours + other.hours, self.days_per_year)

    def __sub__(self, other: SimTime) -> SimTime:
        return SimTime(self.hours - other.hours, self.days_per_year)

    def __str__(self) -> str:
        return f"Y{self.year} D{self.day_of_year} H{self.hours % HOURS_PER_DAY:.0f}"


class SimulationClock:
    """Calendar source advanced by the host, one call per tick.

    Satisfies the ``Calendar`` protocol.
    """

    def __init__(self, start: SimTime | None = None, days_per_year: int = DEFAULT_DAYS_PER_YEAR):
        self._days_per_year = days_per_year
        self._now = start or SimTime(0.0, days_per_year)

    def now(self) -> SimTime:
        return self._now

    def hours_from_now(self, hours: float) -> SimTime:
        return self._now + SimTime.of_hours(hours, self._days_per_year)

    def days_from_now(self, days: float) -> SimTime:
        return self._now + SimTime.of_days(days, self._days_per_year)

    def advance_hours(self, hours: float) -> SimTime:
        if hours < 0:
            raise ValidationError(f"Cannot move the clock backwards by {hours} hours")
        self._now = self.hours_from_now(hours)
        return self._now

    def advance_days(self, days: int = 1) -> SimTime:
        return self.advance_hours(days * HOURS_PER_DAY)

    def set(self, when: SimTime) -> None:
        """Jump to an absolute time (used when restoring a checkpoint)."""
        self._now = SimTime(when.hours, self._days_per_year)
