"""Builds puzzle PDF download URLs from a puzzle id and format flags."""

import structlog

from ..models import FormatOptions, PdfUrl
from .config import DEFAULT_PDF_BASE_URL

log = structlog.stdlib.get_logger()

SOLUTION_SUFFIX = ".ans"
INK_SAVER_OPACITY = 30


class PdfUrlBuilder:
    """Maps a puzzle id and FormatOptions to a download URL and file suffix."""

    def __init__(self, base_url: str = DEFAULT_PDF_BASE_URL) -> None:
        self.base_url = base_url.rstrip("/")

    def build(self, puzzle_id: str, options: FormatOptions) -> PdfUrl:
        """Build the PDF URL.

        Solution PDFs only honour the ink saver flag; large print and
        left-handed layouts do not exist for answer sheets.

        Query parameters always appear in the order large_print, southpaw,
        block_opacity.
        """
        params: list[str] = []

        if options.solution:
            ignored = [
                flag for flag, is_set in (
                    ("large_print", options.large_print),
                    ("left_handed", options.left_handed),
                ) if is_set
            ]
            if ignored:
                log.warning(
                    "Format options ignored for solution PDFs",
                    puzzle_id=puzzle_id,
                    ignored=ignored,
                )
            suffix = SOLUTION_SUFFIX
        else:
            suffix = ""
            if options.large_print:
                params.append("large_print=true")
            if options.left_handed:
                params.append("southpaw=true")

        if options.ink_saver:
            params.append(f"block_opacity={INK_SAVER_OPACITY}")

        url = f"{self.base_url}/{puzzle_id}{suffix}.pdf"
        if params:
            url = f"{url}?{'&'.join(params)}"
        return PdfUrl(url=url, file_suffix=suffix)
