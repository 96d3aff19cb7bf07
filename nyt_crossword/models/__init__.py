"""Data models for the crossword fetcher."""

from .config import AppConfig, DefaultMode, NoPrinterAction
from .puzzle import (
    ByDate,
    ByOffset,
    DateWindow,
    EraWindow,
    FormatOptions,
    ListingQuery,
    PdfUrl,
    PuzzleRecord,
    PuzzleSelection,
    RandomPick,
)

__all__ = [
    "AppConfig",
    "ByDate",
    "ByOffset",
    "DateWindow",
    "DefaultMode",
    "EraWindow",
    "FormatOptions",
    "ListingQuery",
    "NoPrinterAction",
    "PdfUrl",
    "PuzzleRecord",
    "PuzzleSelection",
    "RandomPick",
]
