"""Tests for download validation, filename rendering and saving."""

from datetime import date, datetime
from pathlib import Path
from unittest.mock import patch

import pytest
from hypothesis import given, strategies as st

from nyt_crossword.models import PuzzleRecord
from nyt_crossword.services import (
    ExitCode,
    FileSystemError,
    FileSystemService,
    PdfValidationError,
    render_filename,
)

RECORD = PuzzleRecord(puzzle_id="12345", print_date=date(2024, 1, 1))
STAMP = datetime(2024, 1, 1, 9, 30, 5)


class TestRenderFilename:

    def test_default_pattern(self) -> None:
        assert render_filename("nyt-crossword-{puzzle_id}.pdf", RECORD) == "nyt-crossword-12345.pdf"

    def test_solution_suffix_follows_id(self) -> None:
        assert render_filename("nyt-crossword-{puzzle_id}.pdf", RECORD, ".ans") == "nyt-crossword-12345.ans.pdf"

    def test_date_and_timestamp_placeholders(self) -> None:
        name = render_filename("{date}_{puzzle_id}_{timestamp}.pdf", RECORD, timestamp=STAMP)
        assert name == "2024-01-01_12345_20240101T093005.pdf"

    def test_unknown_braces_are_kept(self) -> None:
        assert render_filename("{other}-{puzzle_id}.pdf", RECORD) == "{other}-12345.pdf"

    @given(st.text(alphabet="abcXYZ-_.", max_size=10), st.text(alphabet="abcXYZ-_.", max_size=10))
    def test_literal_text_is_preserved(self, prefix: str, suffix: str) -> None:
        assert render_filename(f"{prefix}{{puzzle_id}}{suffix}", RECORD) == f"{prefix}12345{suffix}"


class TestValidatePdf:

    def test_valid_pdf_passes(self, tmp_path: Path) -> None:
        path = tmp_path / "p.pdf"
        path.write_bytes(b"%PDF-1.7\n...")
        FileSystemService(tmp_path).validate_pdf(path)
        assert path.exists()

    def test_empty_file_is_removed(self, tmp_path: Path) -> None:
        path = tmp_path / "p.pdf"
        path.write_bytes(b"")

        with pytest.raises(PdfValidationError) as exc_info:
            FileSystemService(tmp_path).validate_pdf(path)

        assert exc_info.value.exit_code == ExitCode.EMPTY_DOWNLOAD
        assert not exc_info.value.preserved
        assert not path.exists()

    def test_html_is_kept_for_inspection(self, tmp_path: Path) -> None:
        path = tmp_path / "p.pdf"
        path.write_bytes(b"<!DOCTYPE html><html>Log in</html>")

        with pytest.raises(PdfValidationError) as exc_info:
            FileSystemService(tmp_path).validate_pdf(path, keep_invalid=True)

        assert exc_info.value.exit_code == ExitCode.NOT_A_PDF
        assert exc_info.value.preserved
        assert path.exists()

    def test_invalid_file_removed_when_not_kept(self, tmp_path: Path) -> None:
        path = tmp_path / "p.pdf"
        path.write_bytes(b"%PD")

        with pytest.raises(PdfValidationError) as exc_info:
            FileSystemService(tmp_path).validate_pdf(path, keep_invalid=False)

        assert exc_info.value.exit_code == ExitCode.NOT_A_PDF
        assert not path.exists()

    def test_missing_file_is_filesystem_error(self, tmp_path: Path) -> None:
        with pytest.raises(FileSystemError):
            FileSystemService(tmp_path).validate_pdf(tmp_path / "absent.pdf")


class TestSaveAndTemp:

    def test_temp_path_is_timestamped(self, tmp_path: Path) -> None:
        path = FileSystemService(tmp_path).temp_pdf_path("12345", ".ans", timestamp=STAMP)
        assert path == tmp_path / "nyt-puzzle-12345.ans-20240101T093005.pdf"

    def test_save_moves_into_new_directory(self, tmp_path: Path) -> None:
        source = tmp_path / "download.pdf"
        source.write_bytes(b"%PDF-1.4")
        save_dir = tmp_path / "out" / "puzzles"

        saved = FileSystemService(tmp_path).save_pdf(source, save_dir, "nyt-crossword-12345.pdf")

        assert saved == save_dir / "nyt-crossword-12345.pdf"
        assert saved.read_bytes() == b"%PDF-1.4"
        assert not source.exists()

    def test_save_into_file_path_fails(self, tmp_path: Path) -> None:
        source = tmp_path / "download.pdf"
        source.write_bytes(b"%PDF-1.4")
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")

        with pytest.raises(FileSystemError) as exc_info:
            FileSystemService(tmp_path).save_pdf(source, blocker, "out.pdf")

        assert str(source) in exc_info.value.message
        assert source.exists()

    def test_remove_logs_failures(self, tmp_path: Path) -> None:
        path = tmp_path / "p.pdf"
        with patch.object(Path, "unlink", side_effect=PermissionError("denied")):
            with patch("nyt_crossword.services.filesystem.log") as mock_logger:
                FileSystemService(tmp_path).remove(path)
        mock_logger.warning.assert_called_once()

    def test_remove_missing_file_is_quiet(self, tmp_path: Path) -> None:
        FileSystemService(tmp_path).remove(tmp_path / "absent.pdf")
