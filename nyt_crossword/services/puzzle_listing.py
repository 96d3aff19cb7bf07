"""Puzzle listing API client: issues listing queries and parses the results."""

from datetime import date
from typing import Any

import structlog

from ..models import ListingQuery, PuzzleRecord
from .config import DEFAULT_API_BASE_URL
from .http_client import HttpClientService

log = structlog.stdlib.get_logger()


def parse_listing(data: dict[str, Any]) -> list[PuzzleRecord]:
    """Turn a listing API response into PuzzleRecords.

    A missing or null ``results`` means the query matched nothing. Entries
    lacking a puzzle id or a valid ISO ``print_date`` are skipped.
    """
    results = data.get("results")
    if not results:
        return []

    records: list[PuzzleRecord] = []
    for entry in results:
        if not isinstance(entry, dict):
            log.warning("Skipping malformed listing entry", entry=str(entry)[:100])
            continue

        puzzle_id = entry.get("puzzle_id")
        raw_date = entry.get("print_date")
        if puzzle_id is None or raw_date is None:
            log.warning("Skipping listing entry without puzzle_id or print_date", entry=str(entry)[:100])
            continue
        try:
            print_date = date.fromisoformat(str(raw_date))
        except ValueError:
            log.warning("Skipping listing entry with invalid print_date", puzzle_id=puzzle_id, print_date=raw_date)
            continue

        records.append(PuzzleRecord(
            puzzle_id=str(puzzle_id),
            print_date=print_date,
            title=entry.get("title"),
            publish_type=entry.get("publish_type"),
        ))
    return records


class PuzzleListingService:
    """Fetches typed puzzle listings from the crossword API."""

    def __init__(self, http_client: HttpClientService, base_url: str = DEFAULT_API_BASE_URL) -> None:
        self.http_client = http_client
        self.base_url = base_url

    async def fetch(self, query: ListingQuery) -> list[PuzzleRecord]:
        """Run a listing query.

        Raises:
            FetchError: On network or authentication failure
        """
        params = query.to_params()
        log.debug("Fetching puzzle list", url=self.base_url, params=params)
        data = await self.http_client.get_json(self.base_url, params=params)
        records = parse_listing(data)
        log.debug("Puzzle list fetched", count=len(records))
        return records
