"""Weighted random era and date selection for random puzzle mode."""

import random
from datetime import date, timedelta

import structlog

from ..models import DateWindow, EraWindow

log = structlog.stdlib.get_logger()

HISTORICAL_START = date(1942, 2, 15)
HISTORICAL_END = date(1969, 12, 31)
MODERN_START = date(1994, 1, 1)

_THIRTY_ONE_DAY_MONTHS = frozenset({1, 3, 5, 7, 8, 10, 12})
_THIRTY_DAY_MONTHS = frozenset({4, 6, 9, 11})


def is_leap_year(year: int) -> bool:
    """Gregorian leap year: divisible by 4 and not by 100, or divisible by 400."""
    return (year % 4 == 0 and year % 100 != 0) or year % 400 == 0


def days_in_month(month: int, year: int) -> int:
    """Number of days in a month of the Gregorian calendar."""
    if month in _THIRTY_ONE_DAY_MONTHS:
        return 31
    if month in _THIRTY_DAY_MONTHS:
        return 30
    if month == 2:
        return 29 if is_leap_year(year) else 28
    raise ValueError(f"month must be in 1..12, got {month}")


def historical_era() -> EraWindow:
    """The early era, when few puzzles exist (Sunday-only for most of it)."""
    return EraWindow(
        name="historical",
        label="historical (1942-1969)",
        start=HISTORICAL_START,
        end=HISTORICAL_END,
    )


def modern_era(today: date | None = None) -> EraWindow:
    """The modern era, from 1994 up to today."""
    end = today or date.today()
    return EraWindow(
        name="modern",
        label=f"modern (1994-{end.year})",
        start=MODERN_START,
        end=end,
    )


class RandomDateSelector:
    """Picks an era by weight, then a date and query window inside it."""

    def __init__(
        self,
        historical_weight: int = 10,
        modern_weight: int = 90,
        buffer_days: int = 90,
        rng: random.Random | None = None,
        today: date | None = None,
    ) -> None:
        """Initialize the selector.

        Args:
            historical_weight: Probability mass (out of 100) of the historical era
            modern_weight: Probability mass (out of 100) of the modern era
            buffer_days: Days added on each side of the candidate date when querying
            rng: Randomness source (seed it for reproducible picks)
            today: Override for the end of the modern era
        """
        if historical_weight + modern_weight != 100:
            raise ValueError(
                f"era weights must sum to 100, got {historical_weight} + {modern_weight}"
            )
        if buffer_days < 0:
            raise ValueError(f"buffer_days must be non-negative, got {buffer_days}")
        self.historical_weight = historical_weight
        self.modern_weight = modern_weight
        self.buffer_days = buffer_days
        self._rng = rng or random.Random()
        self._today = today

    def choose_era(self) -> EraWindow:
        """Weighted coin flip between the modern and historical eras."""
        draw = self._rng.randrange(100)
        if draw < self.modern_weight:
            return modern_era(self._today)
        return historical_era()

    def choose_date_in_era(self, era: EraWindow) -> DateWindow:
        """Pick a candidate date in the era and the listing window around it."""
        if era.name == "historical":
            return DateWindow(
                query_start=era.start,
                query_end=era.end,
                candidate=era.start,
                era=era,
            )

        year = self._rng.randint(era.start.year, era.end.year)
        month = self._rng.randint(1, 12)
        day = self._rng.randint(1, days_in_month(month, year))
        candidate = date(year, month, day)

        # Later months of the current year lie past the era's end
        candidate = min(max(candidate, era.start), era.end)

        buffer = timedelta(days=self.buffer_days)
        query_start = max(candidate - buffer, era.start)
        query_end = min(candidate + buffer, era.end)

        log.debug(
            "Random date chosen",
            era=era.name,
            candidate=candidate.isoformat(),
            query_start=query_start.isoformat(),
            query_end=query_end.isoformat(),
        )
        return DateWindow(
            query_start=query_start,
            query_end=query_end,
            candidate=candidate,
            era=era,
        )

    def select(self) -> DateWindow:
        """Choose an era, then a date window inside it."""
        return self.choose_date_in_era(self.choose_era())
