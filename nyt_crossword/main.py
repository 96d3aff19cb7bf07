"""Command-line entry point for fetching NYT crossword PDFs.

This module provides:
- Command-line argument parsing and parse-time validation
- Application initialization and dependency injection
- The sequential fetch, validate, save-or-print run
"""

import argparse
import asyncio
import random
import re
import shlex
import sys
from collections.abc import Awaitable, Callable, Mapping
from datetime import date
from http.cookiejar import CookieJar
from pathlib import Path
from typing import NoReturn

import httpx
import structlog

from nyt_crossword import __version__
from nyt_crossword.models import (
    AppConfig,
    ByDate,
    ByOffset,
    DefaultMode,
    FormatOptions,
    NoPrinterAction,
    PuzzleSelection,
    RandomPick,
)
from nyt_crossword.services.config import ConfigurationService, default_config_path
from nyt_crossword.services.errors import ErrorHandlingService, ExitCode, SelectionError
from nyt_crossword.services.filesystem import FileSystemService, render_filename
from nyt_crossword.services.http_client import HttpClientService, RetryPolicy, fixed_backoff, load_cookie_jar
from nyt_crossword.services.logging import setup_logging
from nyt_crossword.services.pdf_url import PdfUrlBuilder
from nyt_crossword.services.printer import PrinterService
from nyt_crossword.services.puzzle_listing import PuzzleListingService
from nyt_crossword.services.puzzle_selector import PuzzleSelector
from nyt_crossword.services.random_date import RandomDateSelector


log = structlog.stdlib.get_logger()

PROG = "get-crossword"

_DATE_FORMAT_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_OFFSET_RE = re.compile(r"^-?\d+$")
_ZERO_OFFSET_RE = re.compile(r"^-?0+$")


class ApplicationContext:
    """Container for application services.

    Services are created lazily from the resolved configuration; tests pass
    a transport, randomness source or sleep function to replace the real ones.
    """

    def __init__(
        self,
        config: AppConfig,
        cookie_path: Path | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.config: AppConfig = config
        self.cookie_path: Path = cookie_path or config.cookies
        self._transport = transport
        self._rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep

        self._cookies: CookieJar | None = None
        self._http_client: HttpClientService | None = None
        self._listing: PuzzleListingService | None = None
        self._selector: PuzzleSelector | None = None
        self._url_builder: PdfUrlBuilder | None = None
        self._filesystem: FileSystemService | None = None
        self._printer: PrinterService | None = None

    def load_cookies(self) -> CookieJar:
        """Load the session cookie jar (raises CookieFileError when missing)."""
        if self._cookies is None:
            self._cookies = load_cookie_jar(self.cookie_path)
        return self._cookies

    @property
    def http_client(self) -> HttpClientService:
        """Get the HTTP client service (lazy initialization)."""
        if self._http_client is None:
            policy = RetryPolicy(
                max_attempts=self.config.max_retries,
                backoff=fixed_backoff(self.config.retry_delay),
                sleep=self._sleep,
            )
            self._http_client = HttpClientService(
                cookies=self.load_cookies(),
                timeout=self.config.request_timeout,
                retry_policy=policy,
                transport=self._transport,
            )
        return self._http_client

    @property
    def listing(self) -> PuzzleListingService:
        """Get the puzzle listing service (lazy initialization)."""
        if self._listing is None:
            self._listing = PuzzleListingService(self.http_client, base_url=self.config.api_base_url)
        return self._listing

    @property
    def selector(self) -> PuzzleSelector:
        """Get the puzzle selector (lazy initialization)."""
        if self._selector is None:
            random_dates = RandomDateSelector(
                historical_weight=self.config.random_historical_weight,
                modern_weight=self.config.random_modern_weight,
                buffer_days=self.config.random_buffer_days,
                rng=self._rng,
            )
            self._selector = PuzzleSelector(
                random_dates,
                list_limit=self.config.puzzle_list_limit,
                rng=self._rng,
            )
        return self._selector

    @property
    def url_builder(self) -> PdfUrlBuilder:
        if self._url_builder is None:
            self._url_builder = PdfUrlBuilder(self.config.pdf_base_url)
        return self._url_builder

    @property
    def filesystem(self) -> FileSystemService:
        if self._filesystem is None:
            self._filesystem = FileSystemService(self.config.tmpdir)
        return self._filesystem

    @property
    def printer(self) -> PrinterService:
        if self._printer is None:
            self._printer = PrinterService(options=self.config.lpr_opts)
        return self._printer

    async def cleanup(self) -> None:
        """Close network connections."""
        if self._http_client is not None:
            await self._http_client.close()


class ParsedArgs:
    """Type-safe container for parsed command-line arguments."""

    def __init__(
        self,
        config: Path | None = None,
        cookie_file: str | None = None,
        offset: str | None = None,
        date: str | None = None,
        random_puzzle: bool = False,
        printer: str | None = None,
        save_only: bool = False,
        dry_run: bool = False,
        format_options: FormatOptions | None = None,
        show_help: bool = False,
    ) -> None:
        self.config: Path | None = config
        self.cookie_file: str | None = cookie_file
        self.offset: str | None = offset
        self.date: str | None = date
        self.random_puzzle: bool = random_puzzle
        self.printer: str | None = printer
        self.save_only: bool = save_only
        self.dry_run: bool = dry_run
        self.format_options: FormatOptions = format_options or FormatOptions()
        self.show_help: bool = show_help


class CrosswordArgumentParser(argparse.ArgumentParser):
    """Argument parser whose usage errors exit with this tool's usage code."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        raise SelectionError(message, exit_code=ExitCode.USAGE)


def build_parser() -> CrosswordArgumentParser:
    """Build the command-line parser."""
    parser = CrosswordArgumentParser(
        prog=PROG,
        description="Fetch a New York Times crossword PDF and print it or save it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        epilog=f"""
Configuration is read from {default_config_path()}
(override with --config or NYT_CROSSWORD_CONFIG); any setting can also be set
with an environment variable of the same name, e.g. VERBOSITY=2.

Examples:
  {PROG}                      print most recent puzzle
  {PROG} -o 1                 print second most recent
  {PROG} -d 2025-10-01        print puzzle for October 1, 2025
  {PROG} -r                   print a random puzzle from the archive
  {PROG} -S -i -s             save the solution with the ink saver layout
  {PROG} -c /path/cookies.txt -s
        """
    )

    _ = parser.add_argument("-h", dest="show_help", action="store_true", help="Show this help")
    _ = parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    _ = parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the JSON configuration file"
    )
    _ = parser.add_argument(
        "-c",
        dest="cookie_file",
        metavar="COOKIE_FILE",
        help="Path to cookies.txt (Netscape format). Default: COOKIES setting"
    )

    selection = parser.add_argument_group("puzzle selection (choose one)")
    _ = selection.add_argument(
        "-o",
        dest="offset",
        metavar="OFFSET",
        help="Puzzle by recency: 0 = most recent (default), 1 = second most recent; -1 is the same as 1"
    )
    _ = selection.add_argument("-d", dest="date", metavar="DATE", help="Puzzle for a specific date (YYYY-MM-DD)")
    _ = selection.add_argument(
        "-r",
        dest="random_puzzle",
        action="store_true",
        help="Random puzzle from a weighted era (1942-1969 or 1994-present)"
    )

    output = parser.add_argument_group("output")
    _ = output.add_argument("-p", dest="printer", metavar="PRINTER", help="lpr printer name (default: PRINTER setting)")
    _ = output.add_argument("-s", dest="save_only", action="store_true", help="Save PDF to a file instead of printing")
    _ = output.add_argument(
        "-n",
        dest="dry_run",
        action="store_true",
        help="Dry-run: show the puzzle URL and download command only"
    )

    formats = parser.add_argument_group("format")
    _ = formats.add_argument("-l", dest="large_print", action="store_true", help="Large print layout")
    _ = formats.add_argument("-L", dest="left_handed", action="store_true", help="Left-handed (southpaw) layout")
    _ = formats.add_argument("-i", dest="ink_saver", action="store_true", help="Ink saver (lighter black squares)")
    _ = formats.add_argument("-S", dest="solution", action="store_true", help="Solution PDF instead of the puzzle")

    return parser


def parse_arguments(argv: list[str] | None = None) -> ParsedArgs:
    """Parse command-line arguments.

    Raises:
        SelectionError: On unknown options or missing option arguments
    """
    ns = build_parser().parse_args(argv)

    return ParsedArgs(
        config=ns.config,
        cookie_file=ns.cookie_file,
        offset=ns.offset,
        date=ns.date,
        random_puzzle=bool(ns.random_puzzle),
        printer=ns.printer,
        save_only=bool(ns.save_only),
        dry_run=bool(ns.dry_run),
        format_options=FormatOptions(
            large_print=bool(ns.large_print),
            left_handed=bool(ns.left_handed),
            ink_saver=bool(ns.ink_saver),
            solution=bool(ns.solution),
        ),
        show_help=bool(ns.show_help),
    )


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD date, separating format errors from impossible dates."""
    if not _DATE_FORMAT_RE.match(value):
        raise SelectionError(
            f"Date must be in YYYY-MM-DD format. Got: '{value}'",
            exit_code=ExitCode.BAD_DATE_FORMAT,
            value=value,
        )
    year, month, day = (int(part) for part in value.split("-"))
    try:
        return date(year, month, day)
    except ValueError:
        raise SelectionError(
            f"Invalid date: '{value}'",
            exit_code=ExitCode.INVALID_DATE,
            value=value,
        ) from None


def parse_offset(value: str) -> ByOffset:
    """Parse an offset; negative offsets mean the same as positive ones."""
    if not _OFFSET_RE.match(value.strip()):
        raise SelectionError(
            f"offset must be an integer. Got: '{value}'",
            exit_code=ExitCode.BAD_OFFSET,
            value=value,
        )
    return ByOffset(abs(int(value)))


def build_selection(args: ParsedArgs) -> PuzzleSelection | None:
    """Turn selection flags into a PuzzleSelection.

    Returns None when no selection flag was given, leaving the choice to
    DEFAULT_MODE.

    Raises:
        SelectionError: On conflicting flags, a malformed or impossible date,
            or a non-integer offset
    """
    offset_given = args.offset is not None and not _ZERO_OFFSET_RE.match(args.offset.strip())
    chosen = sum((offset_given, args.date is not None, args.random_puzzle))
    if chosen > 1:
        raise SelectionError(
            "Cannot use multiple selection options (-o, -d, -r) together.",
            exit_code=ExitCode.CONFLICTING_SELECTION,
        )

    if args.date is not None:
        return ByDate(parse_date(args.date))
    if args.random_puzzle:
        return RandomPick()
    if args.offset is not None:
        return parse_offset(args.offset)
    return None


def resolve_missing_printer(
    action: NoPrinterAction,
    prompt: Callable[[str], str] | None = None,
) -> tuple[str | None, bool]:
    """Decide what to do when printing was requested without a printer.

    Args:
        action: NO_PRINTER_ACTION setting
        prompt: Function to ask the user for a printer name (None when not interactive)

    Returns:
        (printer name, save instead of printing)

    Raises:
        SelectionError: When no printer can be determined
    """
    if action is NoPrinterAction.SAVE:
        log.warning("No printer configured, saving PDF instead")
        return None, True

    if action is NoPrinterAction.PROMPT and prompt is not None:
        try:
            name = prompt("Printer name: ").strip()
        except EOFError:
            name = ""
        if name:
            return name, False

    raise SelectionError(
        "No printer specified. Use -p PRINTER, set PRINTER in the config file, "
        "or use -s to save to file or -n for dry-run.",
        exit_code=ExitCode.NO_PRINTER,
    )


def _say(config: AppConfig, message: str) -> None:
    """Print a status line to stdout unless running quietly."""
    if config.verbosity >= 1:
        print(message)


async def fetch_puzzle(
    context: ApplicationContext,
    args: ParsedArgs,
    selection: PuzzleSelection | None,
    prompt: Callable[[str], str] | None = None,
) -> int:
    """Select, download, validate, and save or print one puzzle.

    Args:
        context: Application context with the resolved configuration
        args: Parsed command-line arguments
        selection: Explicit selection, or None to use DEFAULT_MODE
        prompt: Used to ask for a printer name when NO_PRINTER_ACTION is prompt

    Returns:
        Exit code (errors are raised as AppError subclasses)
    """
    config = context.config

    if selection is None:
        if config.default_mode is DefaultMode.RANDOM:
            log.info("Using default random mode")
            selection = RandomPick()
        else:
            selection = ByOffset(0)

    options = args.format_options.merge(FormatOptions(
        large_print=config.default_large_print,
        left_handed=config.default_left_handed,
        ink_saver=config.default_ink_saver,
        solution=config.default_solution,
    ))

    save_only = args.save_only
    printer: str | None = None
    if not save_only and not args.dry_run:
        printer = args.printer or config.printer
        if not printer:
            printer, save_only = resolve_missing_printer(config.no_printer_action, prompt)
        if not save_only:
            context.printer.check_available()

    context.load_cookies()

    try:
        record = await context.selector.select(selection, context.listing.fetch)
        pdf_url = context.url_builder.build(record.puzzle_id, options)
        tmp_pdf = context.filesystem.temp_pdf_path(record.puzzle_id, pdf_url.file_suffix)

        _say(config, f"Puzzle id: {record.puzzle_id} ({record.print_date.isoformat()})")
        _say(config, f"PDF URL: {pdf_url.url}")

        if args.dry_run:
            print("Dry-run: would run:")
            print("  " + shlex.join(["curl", "-L", "-b", str(context.cookie_path), pdf_url.url, "-o", str(tmp_pdf)]))
            return ExitCode.OK

        log.info("Downloading PDF", url=pdf_url.url)
        await context.http_client.download_file(pdf_url.url, tmp_pdf)
    finally:
        await context.cleanup()

    context.filesystem.validate_pdf(tmp_pdf, keep_invalid=config.keep_invalid_downloads)

    if save_only:
        filename = render_filename(config.filename_pattern, record, pdf_url.file_suffix)
        saved = context.filesystem.save_pdf(tmp_pdf, config.save_dir, filename)
        print(f"Saved PDF to: {saved}")
        return ExitCode.OK

    if printer is None:
        raise SelectionError("No printer to send the PDF to.", exit_code=ExitCode.NO_PRINTER)
    context.printer.print_file(tmp_pdf, printer)
    context.filesystem.remove(tmp_pdf)
    _say(config, "Printed successfully.")
    return ExitCode.OK


def run_cli(argv: list[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    """Run the command line and return the process exit code."""
    # Errors only until the configured verbosity is known
    _ = setup_logging(verbosity=0)
    error_service = ErrorHandlingService()

    try:
        args = parse_arguments(argv)
        if args.show_help:
            build_parser().print_help()
            return ExitCode.USAGE

        selection = build_selection(args)

        config_service = ConfigurationService(config_path=args.config or default_config_path(environ))
        config = config_service.load_config(environ)

        _ = setup_logging(verbosity=config.verbosity, log_dir=config.log_dir)
        if config_service.file_found:
            log.debug("Loading configuration from", path=str(config_service.config_path))
        else:
            log.warning(
                "Config file not found, using built-in defaults",
                path=str(config_service.config_path),
            )

        cookie_path = Path(args.cookie_file).expanduser() if args.cookie_file else config.cookies
        context = ApplicationContext(config, cookie_path=cookie_path)
        prompt = input if sys.stdin.isatty() else None
        return asyncio.run(fetch_puzzle(context, args, selection, prompt=prompt))

    except KeyboardInterrupt:
        log.info("Interrupted by user")
        return ExitCode.INTERRUPTED

    except Exception as e:
        friendly = error_service.handle_error(e, operation="fetch_puzzle", component="cli")
        print(error_service.create_user_message(friendly), file=sys.stderr)
        return friendly.exit_code


def main() -> None:
    """Main entry point for the application."""
    sys.exit(int(run_cli()))


if __name__ == "__main__":
    main()
