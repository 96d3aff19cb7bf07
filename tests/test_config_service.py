"""Property-based tests for configuration resolution and validation."""

import dataclasses
import json
import tempfile
from pathlib import Path

import pytest
from hypothesis import given, strategies as st

from nyt_crossword.models import AppConfig, DefaultMode, NoPrinterAction
from nyt_crossword.services import ConfigurationError, ConfigurationService, ExitCode
from nyt_crossword.services.config import INT_RANGES, SETTING_KINDS


def default_config() -> AppConfig:
    return ConfigurationService(Path("/nonexistent/config.json")).resolve(None, {})


# (file value, environment value, expected typed values) for one setting each
PRECEDENCE_CASES: dict[str, tuple[object, str, object, object]] = {
    "cookies": ("/file/cookies.txt", "/env/cookies.txt", Path("/file/cookies.txt"), Path("/env/cookies.txt")),
    "printer": ("FilePrinter", "EnvPrinter", "FilePrinter", "EnvPrinter"),
    "lpr_opts": ("-o media=A4", "-o sides=two-sided", "-o media=A4", "-o sides=two-sided"),
    "tmpdir": ("/file/tmp", "/env/tmp", Path("/file/tmp"), Path("/env/tmp")),
    "save_dir": ("/file/save", "/env/save", Path("/file/save"), Path("/env/save")),
    "filename_pattern": ("f-{puzzle_id}.pdf", "e-{puzzle_id}.pdf", "f-{puzzle_id}.pdf", "e-{puzzle_id}.pdf"),
    "verbosity": (2, "3", 2, 3),
    "default_mode": ("random", "recent", DefaultMode.RANDOM, DefaultMode.RECENT),
    "no_printer_action": ("save", "prompt", NoPrinterAction.SAVE, NoPrinterAction.PROMPT),
    "default_large_print": (True, "false", True, False),
    "default_left_handed": (True, "false", True, False),
    "default_ink_saver": (True, "false", True, False),
    "default_solution": (True, "false", True, False),
    "random_buffer_days": (30, "60", 30, 60),
    "puzzle_list_limit": (50, "500", 50, 500),
    "request_timeout": (10, "120", 10, 120),
    "max_retries": (5, "1", 5, 1),
    "retry_delay": (0, "5", 0, 5),
    "keep_invalid_downloads": (False, "true", False, True),
    "log_dir": ("/file/logs", "/env/logs", Path("/file/logs"), Path("/env/logs")),
    "api_base_url": ("https://file.example/list.json", "https://env.example/list.json",
                     "https://file.example/list.json", "https://env.example/list.json"),
    "pdf_base_url": ("https://file.example/pdf", "https://env.example/pdf",
                     "https://file.example/pdf", "https://env.example/pdf"),
}


def test_every_setting_has_a_precedence_case() -> None:
    weights = {"random_historical_weight", "random_modern_weight"}
    assert set(PRECEDENCE_CASES) | weights == set(SETTING_KINDS)


@pytest.mark.parametrize("name", sorted(PRECEDENCE_CASES))
def test_environment_beats_file_beats_defaults(name: str) -> None:
    """For every setting: environment overrides the file, which overrides the defaults."""
    file_value, env_value, expected_file, expected_env = PRECEDENCE_CASES[name]
    service = ConfigurationService(Path("/nonexistent/config.json"))
    defaults = default_config()

    from_defaults = service.resolve(None, {})
    from_file = service.resolve({name: file_value}, {})
    from_env = service.resolve({name: file_value}, {name.upper(): env_value})

    assert getattr(from_defaults, name) == getattr(defaults, name)
    assert getattr(from_file, name) == expected_file
    assert getattr(from_env, name) == expected_env


def test_weight_precedence() -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))

    from_file = service.resolve({"random_historical_weight": 40, "random_modern_weight": 60}, {})
    from_env = service.resolve(
        {"random_historical_weight": 40, "random_modern_weight": 60},
        {"RANDOM_HISTORICAL_WEIGHT": "25", "RANDOM_MODERN_WEIGHT": "75"},
    )

    assert (from_file.random_historical_weight, from_file.random_modern_weight) == (40, 60)
    assert (from_env.random_historical_weight, from_env.random_modern_weight) == (25, 75)


def test_empty_environment_value_does_not_override() -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    config = service.resolve({"verbosity": 2}, {"VERBOSITY": ""})
    assert config.verbosity == 2


def test_file_keys_are_case_insensitive_and_unknown_keys_ignored() -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    config = service.resolve({"VERBOSITY": 0, "not_a_setting": "x"}, {})
    assert config.verbosity == 0


def test_defaults() -> None:
    config = default_config()
    assert config.random_historical_weight + config.random_modern_weight == 100
    assert config.filename_pattern == "nyt-crossword-{puzzle_id}.pdf"
    assert config.default_mode is DefaultMode.RECENT
    assert config.no_printer_action is NoPrinterAction.ERROR
    assert config.puzzle_list_limit == 100
    assert config.request_timeout == 30
    assert config.random_buffer_days == 90
    assert config.printer is None


@given(st.integers(min_value=0, max_value=100))
def test_weights_summing_to_100_are_accepted(historical: int) -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    config = service.resolve(
        {},
        {"RANDOM_HISTORICAL_WEIGHT": str(historical), "RANDOM_MODERN_WEIGHT": str(100 - historical)},
    )
    assert config.random_historical_weight + config.random_modern_weight == 100


@given(
    st.integers(min_value=0, max_value=100),
    st.integers(min_value=0, max_value=100),
)
def test_weights_not_summing_to_100_are_rejected(historical: int, modern: int) -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    environ = {"RANDOM_HISTORICAL_WEIGHT": str(historical), "RANDOM_MODERN_WEIGHT": str(modern)}

    if historical + modern == 100:
        service.resolve({}, environ)
        return

    with pytest.raises(ConfigurationError) as exc_info:
        service.resolve({}, environ)
    assert "must sum to 100" in exc_info.value.message
    assert exc_info.value.exit_code == ExitCode.CONFIG_VALIDATION


@pytest.mark.parametrize("name", sorted(set(INT_RANGES) - {"random_historical_weight", "random_modern_weight"}))
def test_integer_ranges_are_enforced(name: str) -> None:
    low, high = INT_RANGES[name]
    service = ConfigurationService(Path("/nonexistent/config.json"))

    assert getattr(service.resolve({name: low}, {}), name) == low
    assert getattr(service.resolve({name: high}, {}), name) == high

    with pytest.raises(ConfigurationError) as exc_info:
        service.resolve({name: high + 1}, {})
    assert exc_info.value.setting == name
    assert exc_info.value.current_value == high + 1


def test_limits_reject_zero() -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    for env_name in ("PUZZLE_LIST_LIMIT", "REQUEST_TIMEOUT"):
        with pytest.raises(ConfigurationError):
            service.resolve({}, {env_name: "0"})


@pytest.mark.parametrize("raw", ["maybe", "yes", "1", "TRUEISH"])
def test_boolean_settings_reject_non_booleans(raw: str) -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    with pytest.raises(ConfigurationError) as exc_info:
        service.resolve({}, {"DEFAULT_LARGE_PRINT": raw})
    assert "must be 'true' or 'false'" in exc_info.value.message
    assert exc_info.value.setting == "default_large_print"
    assert exc_info.value.current_value == raw


def test_boolean_settings_accept_any_case() -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    assert service.resolve({}, {"DEFAULT_INK_SAVER": "TRUE"}).default_ink_saver is True


@pytest.mark.parametrize("raw", ["abc", "-1", "2.5", " "])
def test_integer_settings_reject_non_integers(raw: str) -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    with pytest.raises(ConfigurationError) as exc_info:
        service.resolve({}, {"VERBOSITY": raw})
    assert exc_info.value.setting == "verbosity"


def test_enum_settings_reject_unknown_members() -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    with pytest.raises(ConfigurationError) as exc_info:
        service.resolve({}, {"DEFAULT_MODE": "oldest"})
    assert "recent, random" in exc_info.value.message

    with pytest.raises(ConfigurationError):
        service.resolve({"no_printer_action": "ignore"}, {})


def test_filename_pattern_requires_puzzle_id() -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    with pytest.raises(ConfigurationError) as exc_info:
        service.resolve({}, {"FILENAME_PATTERN": "crossword-{date}.pdf"})
    assert exc_info.value.setting == "filename_pattern"
    assert "{puzzle_id}" in exc_info.value.message


def test_filename_pattern_may_not_be_a_path() -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    with pytest.raises(ConfigurationError):
        service.resolve({}, {"FILENAME_PATTERN": "out/{puzzle_id}.pdf"})


def test_base_urls_must_be_http() -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    with pytest.raises(ConfigurationError) as exc_info:
        service.resolve({"pdf_base_url": "ftp://example.com/pdf"}, {})
    assert exc_info.value.setting == "pdf_base_url"


def test_first_violation_is_reported() -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    with pytest.raises(ConfigurationError) as exc_info:
        service.resolve({}, {"VERBOSITY": "9", "PUZZLE_LIST_LIMIT": "5000"})
    assert exc_info.value.setting == "verbosity"
    assert "got 9" in exc_info.value.message


@pytest.mark.parametrize("lpr_opts", ["-o 'media=Letter", "-o \"sides=two-sided"])
def test_unbalanced_lpr_opts_are_rejected(lpr_opts: str) -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    with pytest.raises(ConfigurationError) as exc_info:
        service.resolve({}, {"LPR_OPTS": lpr_opts})
    assert exc_info.value.setting == "lpr_opts"
    assert exc_info.value.exit_code == ExitCode.CONFIG_VALIDATION
    assert repr(lpr_opts) in exc_info.value.message


def test_validate_config_collects_every_issue() -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    config = dataclasses.replace(
        default_config(),
        verbosity=7,
        random_modern_weight=50,
        filename_pattern="crossword.pdf",
    )

    result = service.validate_config(config)

    assert not result.is_valid
    assert len(result.errors) == 3
    assert all(isinstance(error, str) for error in result.errors)


def test_valid_default_config_passes_validation() -> None:
    result = ConfigurationService(Path("/nonexistent/config.json")).validate_config(default_config())
    assert result.is_valid
    assert result.errors == []


def test_load_config_reads_file_and_environment() -> None:
    with tempfile.TemporaryDirectory() as temp_dir:
        config_path = Path(temp_dir) / "config.json"
        config_path.write_text(json.dumps({
            "printer": "Brother_HL_L2370DW_series",
            "verbosity": 2,
            "default_large_print": True,
        }), encoding="utf-8")
        service = ConfigurationService(config_path)

        config = service.load_config({"VERBOSITY": "0"})

        assert service.file_found
        assert config.printer == "Brother_HL_L2370DW_series"
        assert config.default_large_print is True
        assert config.verbosity == 0


def test_missing_config_file_falls_back_to_defaults() -> None:
    with tempfile.TemporaryDirectory() as temp_dir:
        service = ConfigurationService(Path(temp_dir) / "missing.json")
        config = service.load_config({})

        assert not service.file_found
        assert config == default_config()
        assert config.verbosity == 1
        assert config.default_mode is DefaultMode.RECENT


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_unreadable_config_file_is_a_usage_error(content: str) -> None:
    with tempfile.TemporaryDirectory() as temp_dir:
        config_path = Path(temp_dir) / "config.json"
        config_path.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigurationError) as exc_info:
            ConfigurationService(config_path).load_config({})

        assert exc_info.value.exit_code == ExitCode.USAGE


def test_config_path_from_environment() -> None:
    from nyt_crossword.services.config import default_config_path

    assert default_config_path({"NYT_CROSSWORD_CONFIG": "/etc/crossword.json"}) == Path("/etc/crossword.json")
    assert default_config_path({}).name == "config.json"


def test_cookie_path_expands_home() -> None:
    service = ConfigurationService(Path("/nonexistent/config.json"))
    config = service.resolve({}, {"COOKIES": "~/cookies.txt"})
    assert config.cookies == Path.home() / "cookies.txt"
