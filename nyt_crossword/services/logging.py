"""Logging configuration service for the crossword fetcher."""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

# VERBOSITY setting -> minimum log level
VERBOSITY_LEVELS: dict[int, int] = {
    0: logging.ERROR,
    1: logging.INFO,
    2: logging.DEBUG,
    3: logging.DEBUG,
}

# Chatty third-party loggers, only shown at the highest verbosity
_LIBRARY_LOGGERS = ("httpx", "httpcore")


class LoggingService:
    """Service for configuring and managing application logging."""

    def __init__(
        self,
        verbosity: int = 1,
        log_dir: Path | None = None,
    ) -> None:
        """Initialize the logging service.

        Args:
            verbosity: 0 (errors only) through 3 (debug including HTTP traffic)
            log_dir: Directory for log files (None for console only)
        """
        self.verbosity = verbosity
        self.level = VERBOSITY_LEVELS.get(verbosity, logging.INFO)
        self.log_dir = log_dir
        self.is_development = os.getenv("ENVIRONMENT", "development") == "development"

    def configure(self) -> None:
        """Configure structlog with appropriate processors and handlers."""
        self._configure_stdlib_logging()

        structlog.configure(
            processors=self._get_processors(),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def _configure_stdlib_logging(self) -> None:
        """Configure standard library logging handlers."""
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(self.level)

        library_level = logging.DEBUG if self.verbosity >= 3 else max(self.level, logging.WARNING)
        for name in _LIBRARY_LOGGERS:
            logging.getLogger(name).setLevel(library_level)

        # Console logs go to stderr; stdout is reserved for command results
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(self.level)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(console_handler)

        if self.log_dir:
            self._setup_file_logging(root_logger, self.level)

    def _setup_file_logging(self, root_logger: logging.Logger, level: int) -> None:
        """Set up file-based logging with rotation."""
        if not self.log_dir:
            return

        self.log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "app.log",
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8"
        )
        file_handler.setLevel(level)

        file_formatter = logging.Formatter("%(message)s")
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)

        # Error log (ERROR and CRITICAL only)
        error_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "error.log",
            maxBytes=1024 * 1024,  # 1MB
            backupCount=3,
            encoding="utf-8"
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(file_formatter)
        root_logger.addHandler(error_handler)

    def _get_processors(self) -> list[Any]:
        """Get the appropriate structlog processors for the environment."""
        common_processors = [
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]

        if self.is_development and not self.log_dir:
            return common_processors + [
                structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
            ]
        # Files and production consoles get JSON
        return common_processors + [
            structlog.processors.JSONRenderer()
        ]

    def get_logger(self, name: str | None = None) -> structlog.stdlib.BoundLogger:
        """Get a configured logger instance.

        Args:
            name: Logger name (defaults to calling module)

        Returns:
            Configured structlog logger
        """
        return structlog.stdlib.get_logger(name)


def setup_logging(
    verbosity: int = 1,
    log_dir: Path | None = None,
    environment: str | None = None,
) -> LoggingService:
    """Set up application logging with the specified configuration.

    Args:
        verbosity: VERBOSITY setting, 0 through 3
        log_dir: Directory for log files (None for console only)
        environment: Environment name (development/production)

    Returns:
        Configured LoggingService instance
    """
    if environment:
        os.environ["ENVIRONMENT"] = environment

    service = LoggingService(verbosity=verbosity, log_dir=log_dir)
    service.configure()
    return service
