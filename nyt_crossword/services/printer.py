"""Printer dispatch through the system lpr command."""

import shlex
import shutil
import subprocess
from pathlib import Path

import structlog

from .errors import DependencyError, PrintError

log = structlog.stdlib.get_logger()


class PrinterService:
    """Sends PDFs to a named printer with lpr."""

    def __init__(self, options: str = "", command: str = "lpr") -> None:
        """Initialize the printer service.

        Args:
            options: Extra lpr options as one shell-style string (LPR_OPTS)
            command: Print command to run
        """
        self.command = command
        self.options: list[str] = shlex.split(options)

    def check_available(self) -> None:
        """Raise DependencyError if the print command is not on PATH."""
        if shutil.which(self.command) is None:
            raise DependencyError(
                self.command,
                hint="Install CUPS, or use -s to save to a file instead",
            )

    def build_command(self, path: Path, printer: str) -> list[str]:
        return [self.command, "-P", printer, *self.options, str(path)]

    def print_file(self, path: Path, printer: str) -> None:
        """Send a file to the printer.

        Raises:
            PrintError: If the command cannot be started or exits non-zero
        """
        command = self.build_command(path, printer)
        log.info("Sending PDF to printer", printer=printer, path=str(path))
        log.debug("Running print command", command=command)

        try:
            result = subprocess.run(command, capture_output=True, text=True, check=False)
        except OSError as e:
            raise PrintError(
                f"Printing failed. File is saved at: {path}",
                path=str(path),
                printer=printer,
                original_error=e,
            ) from e

        if result.returncode != 0:
            log.error(
                "Print command failed",
                printer=printer,
                returncode=result.returncode,
                stderr=result.stderr.strip(),
            )
            raise PrintError(
                f"Printing failed. File is saved at: {path}",
                path=str(path),
                printer=printer,
                returncode=result.returncode,
            )

        log.info("Printed successfully", printer=printer)
