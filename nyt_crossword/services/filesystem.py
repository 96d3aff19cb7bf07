"""File system service for temporary downloads, PDF validation and saving."""

import shutil
from datetime import datetime
from pathlib import Path

import structlog

from ..models import PuzzleRecord
from .errors import ExitCode, FileSystemError, PdfValidationError

log = structlog.stdlib.get_logger()

PDF_SIGNATURE = b"%PDF"
TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S"


def render_filename(
    pattern: str,
    record: PuzzleRecord,
    file_suffix: str = "",
    timestamp: datetime | None = None,
) -> str:
    """Fill in a filename pattern.

    Supported placeholders are ``{puzzle_id}`` (the id plus the file suffix,
    e.g. ``12345.ans`` for solutions), ``{date}`` (ISO print date) and
    ``{timestamp}``. Other text, including stray braces, is kept as is.
    """
    stamp = (timestamp or datetime.now()).strftime(TIMESTAMP_FORMAT)
    return (
        pattern
        .replace("{puzzle_id}", f"{record.puzzle_id}{file_suffix}")
        .replace("{date}", record.print_date.isoformat())
        .replace("{timestamp}", stamp)
    )


class FileSystemService:
    """Service for file system operations with error handling and validation."""

    def __init__(self, tmp_dir: Path) -> None:
        """Initialize the file system service.

        Args:
            tmp_dir: Directory for in-flight downloads
        """
        self.tmp_dir = tmp_dir

    def temp_pdf_path(
        self,
        puzzle_id: str,
        file_suffix: str = "",
        timestamp: datetime | None = None,
    ) -> Path:
        """Timestamp-qualified temporary path for a puzzle download."""
        stamp = (timestamp or datetime.now()).strftime(TIMESTAMP_FORMAT)
        return self.tmp_dir / f"nyt-puzzle-{puzzle_id}{file_suffix}-{stamp}.pdf"

    def validate_pdf(self, path: Path, keep_invalid: bool = True) -> None:
        """Check that a downloaded file is a non-empty PDF.

        Empty files are removed. Files without the PDF signature are kept for
        inspection when ``keep_invalid`` is set.

        Raises:
            PdfValidationError: If the file is empty or does not start with %PDF
        """
        try:
            with open(path, "rb") as f:
                head = f.read(len(PDF_SIGNATURE))
        except OSError as e:
            raise FileSystemError(
                "Could not read downloaded file",
                original_error=e,
                path=str(path),
                operation="validate_pdf",
            ) from e

        if not head:
            log.error("Downloaded PDF is empty", path=str(path))
            self.remove(path)
            raise PdfValidationError(
                "Downloaded PDF is empty.",
                path=str(path),
                preserved=False,
                exit_code=ExitCode.EMPTY_DOWNLOAD,
            )

        if head != PDF_SIGNATURE:
            log.error("Downloaded file is not a PDF", path=str(path), first_bytes=head)
            if not keep_invalid:
                self.remove(path)
            raise PdfValidationError(
                "Downloaded file does not appear to be a PDF (first bytes do not start with %PDF).",
                path=str(path),
                preserved=keep_invalid,
                exit_code=ExitCode.NOT_A_PDF,
            )

        log.debug("PDF signature verified", path=str(path))

    def save_pdf(self, source: Path, save_dir: Path, filename: str) -> Path:
        """Move a validated download into the save directory.

        Raises:
            FileSystemError: If the directory cannot be created or the move fails
        """
        destination = save_dir / filename
        try:
            self.ensure_directory(save_dir)
            shutil.move(str(source), str(destination))
        except OSError as e:
            log.error("Failed to save PDF", source=str(source), destination=str(destination), error=str(e))
            raise FileSystemError(
                f"Failed to save PDF to {destination}. The download is kept at {source}.",
                original_error=e,
                path=str(destination),
                operation="save_pdf",
            ) from e

        log.info("PDF saved", path=str(destination))
        return destination

    def ensure_directory(self, path: Path) -> None:
        """Ensure that a directory exists, creating it if necessary."""
        if path.exists() and not path.is_dir():
            raise FileExistsError(f"Path exists but is not a directory: {path}")
        path.mkdir(parents=True, exist_ok=True)

    def remove(self, path: Path) -> None:
        """Delete a file if it exists; failures are logged, not raised."""
        try:
            path.unlink(missing_ok=True)
            log.debug("Removed file", path=str(path))
        except OSError as e:
            log.warning("Failed to remove file", path=str(path), error=str(e))
