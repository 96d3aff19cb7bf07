"""Picks exactly one puzzle from the listing API for a selection mode."""

import random
from collections.abc import Awaitable, Callable
from datetime import date

import structlog

from ..models import ByDate, ByOffset, ListingQuery, PuzzleRecord, PuzzleSelection, RandomPick
from .errors import NotFoundError
from .random_date import RandomDateSelector

log = structlog.stdlib.get_logger()

ListingFetcher = Callable[[ListingQuery], Awaitable[list[PuzzleRecord]]]

DATE_QUERY_LIMIT = 10
OFFSET_DIAGNOSTIC_COUNT = 5
DATE_DIAGNOSTIC_COUNT = 10


class PuzzleSelector:
    """Resolves a PuzzleSelection to a PuzzleRecord using a listing fetcher."""

    def __init__(
        self,
        random_dates: RandomDateSelector,
        list_limit: int = 100,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the selector.

        Args:
            random_dates: Era/date chooser used in random mode
            list_limit: Result limit for random-mode range queries
            rng: Randomness source for picking among random-mode results
        """
        self.random_dates = random_dates
        self.list_limit = list_limit
        self._rng = rng or random.Random()

    async def select(self, selection: PuzzleSelection, fetch_listing: ListingFetcher) -> PuzzleRecord:
        """Pick one puzzle.

        Raises:
            NotFoundError: If the query succeeds but no puzzle matches
            FetchError: If the fetcher fails (propagated unchanged)
        """
        match selection:
            case ByOffset(index=index):
                return await self._select_by_offset(index, fetch_listing)
            case ByDate(date=target):
                return await self._select_by_date(target, fetch_listing)
            case RandomPick():
                return await self._select_random(fetch_listing)
        raise TypeError(f"Unknown puzzle selection: {selection!r}")

    async def _select_by_offset(self, index: int, fetch_listing: ListingFetcher) -> PuzzleRecord:
        log.info("Fetching puzzle list", index=index)
        records = await fetch_listing(ListingQuery.recent())

        if index >= len(records):
            raise NotFoundError(
                f"Could not find puzzle id at index {index}. The puzzle list may be shorter "
                "than requested or your cookies may not grant access.",
                available=[r.puzzle_id for r in records[:OFFSET_DIAGNOSTIC_COUNT]],
                available_label=f"Available puzzle ids (first {OFFSET_DIAGNOSTIC_COUNT})",
            )
        return records[index]

    async def _select_by_date(self, target: date, fetch_listing: ListingFetcher) -> PuzzleRecord:
        log.info("Fetching puzzle list to find puzzle for date", date=target.isoformat())
        records = await fetch_listing(ListingQuery.between(target, target, DATE_QUERY_LIMIT))

        if not records:
            raise NotFoundError(
                f"No puzzle found for date {target.isoformat()}. "
                "This date may not have had a published puzzle."
            )

        for record in records:
            if record.print_date == target:
                return record

        raise NotFoundError(
            f"Could not find puzzle for date {target.isoformat()}.",
            available=[r.print_date.isoformat() for r in records[:DATE_DIAGNOSTIC_COUNT]],
            available_label=f"Available dates (first {DATE_DIAGNOSTIC_COUNT})",
        )

    async def _select_random(self, fetch_listing: ListingFetcher) -> PuzzleRecord:
        window = self.random_dates.select()
        era = window.era
        log.info(
            "Fetching puzzle list for random selection",
            era=era.label,
            around=window.candidate.isoformat(),
        )
        records = await fetch_listing(
            ListingQuery.between(window.query_start, window.query_end, self.list_limit)
        )

        if not records:
            log.warning(
                "No puzzles found around candidate date, falling back to full era range",
                around=window.candidate.isoformat(),
                era=era.label,
            )
            records = await fetch_listing(ListingQuery.between(era.start, era.end, self.list_limit))
            if not records:
                raise NotFoundError(
                    f"No puzzles found in the {era.label} era at all. "
                    "This is unexpected; please try again."
                )

        index = self._rng.randrange(len(records))
        record = records[index]
        log.info(
            "Selected random puzzle",
            print_date=record.print_date.isoformat(),
            position=index + 1,
            available=len(records),
        )
        return record
