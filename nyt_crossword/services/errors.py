"""Error handling for the crossword fetcher.

This module provides:
- Custom exception classes for each failure category (configuration, selection,
  network, download, validation, printing)
- Stable process exit codes, one per failure category
- User-friendly error message generation with suggested actions
- Centralized error handling service
"""

import json
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any

import httpx
import structlog

log = structlog.stdlib.get_logger()


class ExitCode(IntEnum):
    """Process exit codes. These values are a stable contract for scripts."""
    OK = 0
    USAGE = 1
    MISSING_DEPENDENCY = 2
    BAD_OFFSET = 3
    MISSING_COOKIE_FILE = 4
    FETCH_FAILED = 5
    NOT_FOUND = 6
    DOWNLOAD_FAILED = 7
    EMPTY_DOWNLOAD = 8
    NOT_A_PDF = 9
    PRINT_FAILED = 10
    NO_PRINTER = 11
    CONFLICTING_SELECTION = 12
    BAD_DATE_FORMAT = 13
    INVALID_DATE = 14
    CONFIG_VALIDATION = 15
    INTERRUPTED = 130


class ErrorCategory(Enum):
    """Categories of errors for classification and handling."""
    NETWORK = "network"
    FILE_SYSTEM = "file_system"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    DEPENDENCY = "dependency"
    SELECTION = "selection"
    NOT_FOUND = "not_found"
    DOWNLOAD = "download"
    PRINTING = "printing"
    UNEXPECTED = "unexpected"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ErrorContext:
    """Context information for an error."""
    operation: str
    component: str
    details: dict[str, Any]


@dataclass(frozen=True)
class UserFriendlyError:
    """User-friendly error representation with suggested actions."""
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    suggested_actions: list[str]
    exit_code: ExitCode
    technical_details: str | None = None


class AppError(Exception):
    """Base exception class for application errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNEXPECTED,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        suggested_actions: list[str] | None = None,
        technical_details: str | None = None,
        exit_code: ExitCode = ExitCode.USAGE,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.suggested_actions = suggested_actions or []
        self.technical_details = technical_details
        self.exit_code = exit_code
        self.context = context

    def to_user_friendly(self) -> UserFriendlyError:
        """Convert to user-friendly error representation."""
        return UserFriendlyError(
            message=self.message,
            category=self.category,
            severity=self.severity,
            suggested_actions=self.suggested_actions,
            exit_code=self.exit_code,
            technical_details=self.technical_details,
        )


class ConfigurationError(AppError):
    """Exception for configuration-related errors."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        current_value: Any = None,
        expected: str | None = None,
        exit_code: ExitCode = ExitCode.CONFIG_VALIDATION,
    ) -> None:
        suggested_actions = [
            "Check the configuration file and environment variables",
        ]
        if setting:
            suggested_actions.append(f"Fix or unset {setting.upper()}")
        if expected:
            suggested_actions.append(f"Expected: {expected}")

        technical_details = None
        if setting:
            technical_details = f"Setting: {setting}"
        if current_value is not None:
            technical_details = (technical_details or "") + f"\nCurrent: {current_value!r}"

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            exit_code=exit_code,
        )
        self.setting = setting
        self.current_value = current_value
        self.expected = expected


class DependencyError(AppError):
    """Exception for a required external command that is not installed."""

    def __init__(self, command: str, hint: str | None = None) -> None:
        suggested_actions = [f"Install '{command}' and make sure it is on your PATH"]
        if hint:
            suggested_actions.append(hint)
        super().__init__(
            message=f"required command '{command}' not found",
            category=ErrorCategory.DEPENDENCY,
            severity=ErrorSeverity.CRITICAL,
            suggested_actions=suggested_actions,
            exit_code=ExitCode.MISSING_DEPENDENCY,
        )
        self.command = command


class SelectionError(AppError):
    """Exception for invalid puzzle selection or output options given by the user."""

    def __init__(
        self,
        message: str,
        exit_code: ExitCode,
        value: Any = None,
        suggested_actions: list[str] | None = None,
    ) -> None:
        technical_details = None
        if value is not None:
            technical_details = f"Value: {str(value)[:100]}"
        super().__init__(
            message=message,
            category=ErrorCategory.SELECTION,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions or ["Run with -h to see the accepted options"],
            technical_details=technical_details,
            exit_code=exit_code,
        )
        self.value = value


class FileSystemError(AppError):
    """Exception for file system-related errors."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        path: str | None = None,
        operation: str | None = None,
        exit_code: ExitCode = ExitCode.USAGE,
    ) -> None:
        suggested_actions = self._get_suggested_actions(original_error)

        technical_details = None
        if original_error:
            technical_details = f"{type(original_error).__name__}: {str(original_error)}"
        if path:
            technical_details = f"Path: {path}" + (f"\n{technical_details}" if technical_details else "")

        super().__init__(
            message=message,
            category=ErrorCategory.FILE_SYSTEM,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            exit_code=exit_code,
        )
        self.original_error = original_error
        self.path = path
        self.operation = operation

    @staticmethod
    def _get_suggested_actions(original_error: Exception | None) -> list[str]:
        """Get suggested actions based on error type."""
        if isinstance(original_error, PermissionError):
            return [
                "Check file/directory permissions",
                "Choose a different location",
            ]
        elif isinstance(original_error, OSError):
            error_str = str(original_error).lower()
            if "no space" in error_str or "disk full" in error_str:
                return [
                    "Free up disk space",
                    "Choose a different save directory",
                ]

        return [
            "Check the file path and permissions",
            "Ensure sufficient disk space",
        ]


class CookieFileError(FileSystemError):
    """Exception for a cookie file that is missing or cannot be read."""

    def __init__(self, message: str, path: str, original_error: Exception | None = None) -> None:
        super().__init__(
            message=message,
            original_error=original_error,
            path=path,
            operation="load_cookies",
            exit_code=ExitCode.MISSING_COOKIE_FILE,
        )
        self.suggested_actions = [
            "Export cookies for https://www.nytimes.com in Netscape cookies.txt format",
            "Pass the file with -c or set COOKIES",
        ]


class FetchError(AppError):
    """Exception for failures fetching the puzzle listing."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        suggested_actions = [
            "Check your internet connection",
            "Try again in a few moments",
        ]

        if status_code:
            if status_code in (401, 403):
                suggested_actions = [
                    "Your cookies may have expired; export them again",
                    "Make sure your account has a crossword subscription",
                ]
            elif status_code == 429:
                suggested_actions = [
                    "Wait a few minutes before retrying",
                ]
            elif status_code >= 500:
                suggested_actions = [
                    "The server is experiencing issues",
                    "Try again later",
                ]

        technical_details = None
        if original_error:
            technical_details = f"{type(original_error).__name__}: {str(original_error)}"
        if url:
            technical_details = f"URL: {url}" + (f"\n{technical_details}" if technical_details else "")
        if status_code:
            technical_details = f"Status: {status_code}" + (f"\n{technical_details}" if technical_details else "")

        super().__init__(
            message=message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            exit_code=ExitCode.FETCH_FAILED,
        )
        self.original_error = original_error
        self.url = url
        self.status_code = status_code


class NotFoundError(AppError):
    """Exception for a valid query that matched no puzzle."""

    def __init__(
        self,
        message: str,
        available: list[str] | None = None,
        available_label: str = "Available",
    ) -> None:
        self.available = available or []
        technical_details = None
        if self.available:
            # Listed in the message so it reaches stderr
            technical_details = f"{available_label}: {', '.join(self.available)}"
            message = f"{message}\n{technical_details}"
        super().__init__(
            message=message,
            category=ErrorCategory.NOT_FOUND,
            severity=ErrorSeverity.ERROR,
            suggested_actions=[
                "Pick a different date or offset",
                "Check that your cookies grant archive access",
            ],
            technical_details=technical_details,
            exit_code=ExitCode.NOT_FOUND,
        )


class DownloadError(AppError):
    """Exception for download-related errors."""

    def __init__(
        self,
        message: str,
        file_name: str | None = None,
        url: str | None = None,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        suggested_actions = [
            "Check your internet connection",
            "Your cookies may have expired; export them again",
        ]

        technical_details = None
        if file_name:
            technical_details = f"File: {file_name}"
        if url:
            technical_details = (technical_details or "") + f"\nURL: {url}"
        if status_code:
            technical_details = (technical_details or "") + f"\nStatus: {status_code}"
        if original_error:
            technical_details = (technical_details or "") + f"\nError: {type(original_error).__name__}: {str(original_error)}"

        super().__init__(
            message=message,
            category=ErrorCategory.DOWNLOAD,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            exit_code=ExitCode.DOWNLOAD_FAILED,
        )
        self.file_name = file_name
        self.url = url
        self.status_code = status_code
        self.original_error = original_error


class PdfValidationError(AppError):
    """Exception for downloaded content that is not a usable PDF."""

    def __init__(self, message: str, path: str, preserved: bool, exit_code: ExitCode) -> None:
        suggested_actions = [
            "Your cookies may have expired; the server may have returned a login page",
        ]
        if preserved:
            suggested_actions.append(f"Inspect the downloaded file at {path}")
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=f"Path: {path}",
            exit_code=exit_code,
        )
        self.path = path
        self.preserved = preserved


class PrintError(AppError):
    """Exception for printer dispatch failures. The PDF is kept on disk."""

    def __init__(
        self,
        message: str,
        path: str,
        printer: str,
        returncode: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        technical_details = f"Printer: {printer}\nPath: {path}"
        if returncode is not None:
            technical_details += f"\nExit status: {returncode}"
        if original_error:
            technical_details += f"\nError: {type(original_error).__name__}: {str(original_error)}"
        super().__init__(
            message=message,
            category=ErrorCategory.PRINTING,
            severity=ErrorSeverity.ERROR,
            suggested_actions=[
                "Check the printer name with: lpstat -p",
                f"The PDF is saved at {path}",
            ],
            technical_details=technical_details,
            exit_code=ExitCode.PRINT_FAILED,
        )
        self.path = path
        self.printer = printer
        self.returncode = returncode
        self.original_error = original_error


class ErrorHandlingService:
    """Centralized error handling service.

    This service provides:
    - Error classification and user-friendly message generation
    - Error logging with technical details
    """

    def handle_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None = None,
    ) -> UserFriendlyError:
        """Handle an error and return a user-friendly representation.

        Args:
            error: The exception that occurred
            operation: The operation being performed
            component: The component where the error occurred
            context: Additional context information

        Returns:
            User-friendly error representation
        """
        app_error = self._convert_to_app_error(error, operation, component, context)
        self._log_error(app_error, operation, component, context)
        return app_error.to_user_friendly()

    def _convert_to_app_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None,
    ) -> AppError:
        """Convert a standard exception to an AppError."""
        if isinstance(error, AppError):
            return error

        if isinstance(error, httpx.HTTPStatusError):
            return FetchError(
                message=self._get_http_error_message(error.response.status_code),
                original_error=error,
                url=str(error.request.url),
                status_code=error.response.status_code,
            )
        elif isinstance(error, httpx.TimeoutException):
            return FetchError(
                message="The request timed out. The server may be slow or unavailable.",
                original_error=error,
                url=context.get("url") if context else None,
            )
        elif isinstance(error, httpx.RequestError):
            return FetchError(
                message="A network error occurred. Please check your connection.",
                original_error=error,
                url=context.get("url") if context else None,
            )
        elif isinstance(error, json.JSONDecodeError):
            return FetchError(
                message="The server returned data that is not valid JSON.",
                original_error=error,
            )
        elif isinstance(error, OSError):
            return FileSystemError(
                message=f"A file system error occurred: {str(error)}",
                original_error=error,
                path=context.get("path") if context else None,
                operation=operation,
            )

        return AppError(
            message="An unexpected error occurred.",
            category=ErrorCategory.UNEXPECTED,
            severity=ErrorSeverity.CRITICAL,
            technical_details=f"{type(error).__name__}: {str(error)}",
            context=ErrorContext(
                operation=operation,
                component=component,
                details=context or {},
            ),
        )

    @staticmethod
    def _get_http_error_message(status_code: int) -> str:
        """Get a user-friendly message for HTTP status codes."""
        messages = {
            401: "Authentication required. Your cookies may have expired.",
            403: "Access denied. Check that your cookies grant crossword access.",
            404: "The requested resource was not found.",
            429: "Too many requests. Please wait before trying again.",
            500: "The server encountered an error. Please try again later.",
            502: "The server is temporarily unavailable. Please try again later.",
            503: "The service is temporarily unavailable. Please try again later.",
        }
        return messages.get(status_code, f"HTTP error {status_code} occurred.")

    def _log_error(
        self,
        error: AppError,
        operation: str,
        component: str,
        context: dict[str, Any] | None,
    ) -> None:
        """Log error with full technical details.

        Logged at debug level; the caller writes the user-facing message.
        """
        log.debug(
            "Error occurred",
            error_message=error.message,
            category=error.category.value,
            severity=error.severity.value,
            exit_code=int(error.exit_code),
            operation=operation,
            component=component,
            technical_details=error.technical_details,
            context=context,
        )

    def create_user_message(
        self,
        error: UserFriendlyError,
        include_suggestions: bool = True,
    ) -> str:
        """Create a formatted user message from an error.

        Args:
            error: The user-friendly error
            include_suggestions: Whether to include suggested actions

        Returns:
            Formatted message string
        """
        parts = [f"ERROR: {error.message}"]

        if include_suggestions and error.suggested_actions:
            parts.append("Suggested actions:")
            for action in error.suggested_actions[:3]:
                parts.append(f"  • {action}")

        return "\n".join(parts)
