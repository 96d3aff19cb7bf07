"""Configuration data models."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class DefaultMode(Enum):
    """Selection mode used when no selection flag is given."""
    RECENT = "recent"
    RANDOM = "random"


class NoPrinterAction(Enum):
    """What to do when printing is requested but no printer is configured."""
    ERROR = "error"
    SAVE = "save"
    PROMPT = "prompt"


@dataclass(frozen=True)
class AppConfig:
    """Application configuration settings."""
    cookies: Path
    lpr_opts: str
    tmpdir: Path
    save_dir: Path
    filename_pattern: str
    verbosity: int
    default_mode: DefaultMode
    no_printer_action: NoPrinterAction
    default_large_print: bool
    default_left_handed: bool
    default_ink_saver: bool
    default_solution: bool
    random_historical_weight: int
    random_modern_weight: int
    random_buffer_days: int
    puzzle_list_limit: int
    request_timeout: int
    max_retries: int  # Total attempts, not extra attempts
    retry_delay: int
    keep_invalid_downloads: bool
    api_base_url: str
    pdf_base_url: str
    printer: str | None = None
    log_dir: Path | None = None
