"""Configuration service: built-in defaults, then the config file, then the environment."""

import json
import os
import re
import shlex
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from ..models import AppConfig, DefaultMode, NoPrinterAction
from .errors import ConfigurationError, ExitCode

log = structlog.stdlib.get_logger()

CONFIG_PATH_ENV = "NYT_CROSSWORD_CONFIG"

DEFAULT_API_BASE_URL = "https://www.nytimes.com/svc/crosswords/v3/289669378/puzzles.json"
DEFAULT_PDF_BASE_URL = "https://www.nytimes.com/svc/crosswords/v2/puzzle"

# Setting name -> value kind. Environment variables use the upper-case name.
SETTING_KINDS: dict[str, str] = {
    "cookies": "path",
    "printer": "optional_str",
    "lpr_opts": "str",
    "tmpdir": "path",
    "save_dir": "path",
    "filename_pattern": "str",
    "verbosity": "int",
    "default_mode": "default_mode",
    "no_printer_action": "no_printer_action",
    "default_large_print": "bool",
    "default_left_handed": "bool",
    "default_ink_saver": "bool",
    "default_solution": "bool",
    "random_historical_weight": "int",
    "random_modern_weight": "int",
    "random_buffer_days": "int",
    "puzzle_list_limit": "int",
    "request_timeout": "int",
    "max_retries": "int",
    "retry_delay": "int",
    "keep_invalid_downloads": "bool",
    "log_dir": "optional_path",
    "api_base_url": "str",
    "pdf_base_url": "str",
}

# Inclusive bounds for integer settings
INT_RANGES: dict[str, tuple[int, int]] = {
    "verbosity": (0, 3),
    "random_historical_weight": (0, 100),
    "random_modern_weight": (0, 100),
    "random_buffer_days": (0, 3650),
    "puzzle_list_limit": (1, 1000),
    "request_timeout": (1, 300),
    "max_retries": (1, 10),
    "retry_delay": (0, 60),
}

_INTEGER_RE = re.compile(r"^\s*\d+\s*$")


def default_config_path(environ: Mapping[str, str] | None = None) -> Path:
    """Config file location: $NYT_CROSSWORD_CONFIG or ~/.config/nyt-crossword/config.json."""
    environ = os.environ if environ is None else environ
    override = environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "nyt-crossword" / "config.json"


class ValidationResult:
    """Result of configuration validation."""

    def __init__(self, issues: list[ConfigurationError] | None = None) -> None:
        self.issues: list[ConfigurationError] = issues or []

    @property
    def is_valid(self) -> bool:
        return not self.issues

    @property
    def errors(self) -> list[str]:
        return [issue.message for issue in self.issues]


class ConfigurationService:
    """Service for resolving and validating application configuration."""

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path: Path = config_path or default_config_path()
        self.file_found: bool = False

    def load_config(self, environ: Mapping[str, str] | None = None) -> AppConfig:
        """Read the config file if present and resolve it against the environment.

        Raises:
            ConfigurationError: If the file is unreadable or any setting is invalid
        """
        environ = os.environ if environ is None else environ
        file_data: dict[str, Any] | None = None

        if self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigurationError(
                    f"Could not read config file {self.config_path}: {e}",
                    expected="a readable JSON object",
                    exit_code=ExitCode.USAGE,
                ) from e

            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"Config file {self.config_path} must contain a JSON object, got {type(data).__name__}",
                    expected="a JSON object mapping setting names to values",
                    exit_code=ExitCode.USAGE,
                )
            self.file_found = True
            file_data = data
        else:
            self.file_found = False

        return self.resolve(file_data, environ)

    def resolve(
        self,
        file_data: Mapping[str, Any] | None,
        environ: Mapping[str, str],
    ) -> AppConfig:
        """Merge defaults, file values and environment overrides, then validate.

        Args:
            file_data: Parsed config file contents (None when there is no file)
            environ: Environment mapping; non-empty values win over everything else

        Returns:
            The validated configuration

        Raises:
            ConfigurationError: On the first setting that fails coercion or validation
        """
        raw: dict[str, Any] = self._get_default_values()

        if file_data:
            for key, value in file_data.items():
                name = str(key).lower()
                if name not in SETTING_KINDS:
                    log.debug("Ignoring unknown config file setting", setting=key)
                    continue
                raw[name] = value

        for name in SETTING_KINDS:
            env_value = environ.get(name.upper())
            if env_value:
                raw[name] = env_value

        config = self._dict_to_config(raw)
        validation_result = self.validate_config(config)
        if not validation_result.is_valid:
            raise validation_result.issues[0]
        return config

    def validate_config(self, config: AppConfig) -> ValidationResult:
        """Validate configuration settings."""
        issues: list[ConfigurationError] = []

        for name, (low, high) in INT_RANGES.items():
            value = getattr(config, name)
            if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
                issues.append(ConfigurationError(
                    f"{name.upper()} must be an integer between {low} and {high}, got {value!r}",
                    setting=name,
                    current_value=value,
                    expected=f"{low}..{high}",
                ))

        weight_total = config.random_historical_weight + config.random_modern_weight
        if weight_total != 100:
            issues.append(ConfigurationError(
                "RANDOM_HISTORICAL_WEIGHT and RANDOM_MODERN_WEIGHT must sum to 100 "
                f"(got {config.random_historical_weight} + {config.random_modern_weight} = {weight_total})",
                setting="random_modern_weight",
                current_value=config.random_modern_weight,
                expected="weights summing to 100",
            ))

        if "{puzzle_id}" not in config.filename_pattern:
            issues.append(ConfigurationError(
                f"FILENAME_PATTERN must contain the {{puzzle_id}} placeholder, got {config.filename_pattern!r}",
                setting="filename_pattern",
                current_value=config.filename_pattern,
                expected="a pattern such as nyt-crossword-{puzzle_id}.pdf",
            ))
        elif "/" in config.filename_pattern or "\\" in config.filename_pattern:
            issues.append(ConfigurationError(
                "FILENAME_PATTERN must be a file name, not a path; use SAVE_DIR for the directory, "
                f"got {config.filename_pattern!r}",
                setting="filename_pattern",
                current_value=config.filename_pattern,
            ))

        for name in ("api_base_url", "pdf_base_url"):
            value = getattr(config, name)
            if not value.startswith(("http://", "https://")):
                issues.append(ConfigurationError(
                    f"{name.upper()} must be an http(s) URL, got {value!r}",
                    setting=name,
                    current_value=value,
                ))

        if config.printer is not None and not config.printer.strip():
            issues.append(ConfigurationError(
                f"PRINTER must not be blank, got {config.printer!r}",
                setting="printer",
                current_value=config.printer,
            ))

        try:
            shlex.split(config.lpr_opts)
        except ValueError as e:
            issues.append(ConfigurationError(
                f"LPR_OPTS must be valid shell-style options ({e}), got {config.lpr_opts!r}",
                setting="lpr_opts",
                current_value=config.lpr_opts,
                expected="options with balanced quotes, e.g. -o media=Letter",
            ))

        return ValidationResult(issues)

    def _get_default_values(self) -> dict[str, Any]:
        """Get default configuration values."""
        return {
            "cookies": "./cookies/www.nytimes.com_cookies.txt",
            "printer": None,
            "lpr_opts": "-o media=Letter -o fit-to-page",
            "tmpdir": tempfile.gettempdir(),
            "save_dir": ".",
            "filename_pattern": "nyt-crossword-{puzzle_id}.pdf",
            "verbosity": 1,
            "default_mode": DefaultMode.RECENT,
            "no_printer_action": NoPrinterAction.ERROR,
            "default_large_print": False,
            "default_left_handed": False,
            "default_ink_saver": False,
            "default_solution": False,
            "random_historical_weight": 10,
            "random_modern_weight": 90,
            "random_buffer_days": 90,
            "puzzle_list_limit": 100,
            "request_timeout": 30,
            "max_retries": 3,
            "retry_delay": 2,
            "keep_invalid_downloads": True,
            "log_dir": None,
            "api_base_url": DEFAULT_API_BASE_URL,
            "pdf_base_url": DEFAULT_PDF_BASE_URL,
        }

    def _dict_to_config(self, data: dict[str, Any]) -> AppConfig:
        """Convert raw setting values to a typed AppConfig."""
        values = {name: self._coerce(name, kind, data[name]) for name, kind in SETTING_KINDS.items()}
        return AppConfig(**values)

    @staticmethod
    def _coerce(name: str, kind: str, value: Any) -> Any:
        """Coerce one raw value (from JSON or the environment) to its typed form."""
        env_name = name.upper()

        if kind == "bool":
            if isinstance(value, bool):
                return value
            if isinstance(value, str) and value.strip().lower() in ("true", "false"):
                return value.strip().lower() == "true"
            raise ConfigurationError(
                f"{env_name} must be 'true' or 'false', got {value!r}",
                setting=name,
                current_value=value,
                expected="true or false",
            )

        if kind == "int":
            if isinstance(value, bool):
                pass
            elif isinstance(value, int):
                return value
            elif isinstance(value, float) and value.is_integer():
                return int(value)
            elif isinstance(value, str) and _INTEGER_RE.match(value):
                return int(value)
            raise ConfigurationError(
                f"{env_name} must be a non-negative integer, got {value!r}",
                setting=name,
                current_value=value,
                expected="a whole number",
            )

        if kind in ("default_mode", "no_printer_action"):
            enum_type = DefaultMode if kind == "default_mode" else NoPrinterAction
            if isinstance(value, enum_type):
                return value
            try:
                return enum_type(str(value).strip().lower())
            except ValueError:
                choices = ", ".join(member.value for member in enum_type)
                raise ConfigurationError(
                    f"{env_name} must be one of: {choices}, got {value!r}",
                    setting=name,
                    current_value=value,
                    expected=choices,
                ) from None

        if kind in ("optional_str", "optional_path") and (value is None or value == ""):
            return None

        if not isinstance(value, (str, Path)):
            raise ConfigurationError(
                f"{env_name} must be a string, got {value!r}",
                setting=name,
                current_value=value,
            )

        if kind in ("path", "optional_path"):
            return Path(value).expanduser()
        return str(value)
