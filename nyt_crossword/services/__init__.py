"""Service layer for business logic and external integrations."""

from .config import ConfigurationService, ValidationResult
from .errors import (
    AppError,
    ConfigurationError,
    CookieFileError,
    DependencyError,
    DownloadError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorSeverity,
    ExitCode,
    FetchError,
    FileSystemError,
    NotFoundError,
    PdfValidationError,
    PrintError,
    SelectionError,
    UserFriendlyError,
)
from .filesystem import FileSystemService, render_filename
from .http_client import HttpClientService, RetryPolicy, fixed_backoff, load_cookie_jar
from .pdf_url import PdfUrlBuilder
from .printer import PrinterService
from .puzzle_listing import PuzzleListingService, parse_listing
from .puzzle_selector import PuzzleSelector
from .random_date import RandomDateSelector, days_in_month, is_leap_year

__all__ = [
    "AppError",
    "ConfigurationError",
    "ConfigurationService",
    "CookieFileError",
    "DependencyError",
    "DownloadError",
    "ErrorCategory",
    "ErrorHandlingService",
    "ErrorSeverity",
    "ExitCode",
    "FetchError",
    "FileSystemError",
    "FileSystemService",
    "HttpClientService",
    "NotFoundError",
    "PdfUrlBuilder",
    "PdfValidationError",
    "PrintError",
    "PrinterService",
    "PuzzleListingService",
    "PuzzleSelector",
    "RandomDateSelector",
    "RetryPolicy",
    "SelectionError",
    "UserFriendlyError",
    "ValidationResult",
    "days_in_month",
    "fixed_backoff",
    "is_leap_year",
    "load_cookie_jar",
    "parse_listing",
    "render_filename",
]
