"""Puzzle-related data models."""

from dataclasses import dataclass
from datetime import date
from typing import NamedTuple


@dataclass(frozen=True)
class PuzzleRecord:
    """One entry from the puzzle listing API."""
    puzzle_id: str
    print_date: date
    title: str | None = None
    publish_type: str | None = None


@dataclass(frozen=True)
class ByOffset:
    """Select the puzzle at a zero-based index into the most-recent-first listing."""
    index: int = 0

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"offset index must be non-negative, got {self.index}")


@dataclass(frozen=True)
class ByDate:
    """Select the puzzle published on an exact date."""
    date: date


@dataclass(frozen=True)
class RandomPick:
    """Select a random puzzle from a weighted era."""


PuzzleSelection = ByOffset | ByDate | RandomPick


@dataclass(frozen=True)
class EraWindow:
    """A named range of publication dates used for random selection."""
    name: str
    label: str
    start: date
    end: date


@dataclass(frozen=True)
class DateWindow:
    """Listing query window produced by random date selection."""
    query_start: date
    query_end: date
    candidate: date
    era: EraWindow


@dataclass(frozen=True)
class FormatOptions:
    """Print format flags governing PDF query parameters."""
    large_print: bool = False
    left_handed: bool = False
    ink_saver: bool = False
    solution: bool = False

    def merge(self, other: "FormatOptions") -> "FormatOptions":
        """Combine two sets of flags; a flag set in either is set in the result."""
        return FormatOptions(
            large_print=self.large_print or other.large_print,
            left_handed=self.left_handed or other.left_handed,
            ink_saver=self.ink_saver or other.ink_saver,
            solution=self.solution or other.solution,
        )


class PdfUrl(NamedTuple):
    """Download URL for a puzzle PDF and the suffix used in file names."""
    url: str
    file_suffix: str


@dataclass(frozen=True)
class ListingQuery:
    """Query against the puzzle listing API.

    With no dates the query asks for the most recent daily puzzles; with a
    date range it asks for puzzles printed between the two dates inclusive.
    """
    date_start: date | None = None
    date_end: date | None = None
    limit: int | None = None

    @classmethod
    def recent(cls) -> "ListingQuery":
        return cls()

    @classmethod
    def between(cls, start: date, end: date, limit: int) -> "ListingQuery":
        if start > end:
            raise ValueError(f"date_start {start} is after date_end {end}")
        return cls(date_start=start, date_end=end, limit=limit)

    @property
    def is_recent(self) -> bool:
        return self.date_start is None

    def to_params(self) -> dict[str, str]:
        """Render query parameters in the order the API documents them."""
        if self.is_recent:
            params = {
                "publish_type": "daily",
                "sort_order": "desc",
                "sort_by": "print_date",
            }
        else:
            params = {
                "sort_order": "desc",
                "sort_by": "print_date",
                "date_start": str(self.date_start),
                "date_end": str(self.date_end),
            }
        if self.limit is not None:
            params["limit"] = str(self.limit)
        return params
