"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    # Tab delimiters are meaningful, so only fall back on a truly empty value.
    return value if value.strip() or value == "\t" else default


def _clamp_ratio(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class ImportSettings:
    """
    Runtime settings for the tabular import pipeline.
    """

    profile_sample_size: int = 5
    type_match_ratio: float = 0.7
    confirm_threshold: float = 0.7
    auto_detect_threshold: float = 0.5
    completeness_warning_ratio: float = 0.8
    case_inconsistency_ratio: float = 0.1
    profit_tolerance: float = 0.01
    max_issue_samples: int = 100
    strict_numbers: bool = False
    default_delimiter: str = ","
    max_upload_bytes: int = 20 * 1024 * 1024
    top_n: int = 5


@lru_cache(maxsize=1)
def get_import_settings() -> ImportSettings:
    """
    Return cached import settings from environment variables.
    """

    return ImportSettings(
        profile_sample_size=max(1, _get_int_env("IMPORT_PROFILE_SAMPLE_SIZE", 5)),
        type_match_ratio=_clamp_ratio(_get_float_env("IMPORT_TYPE_MATCH_RATIO", 0.7)),
        confirm_threshold=_clamp_ratio(_get_float_env("IMPORT_CONFIRM_THRESHOLD", 0.7)),
        auto_detect_threshold=_clamp_ratio(_get_float_env("IMPORT_AUTO_DETECT_THRESHOLD", 0.5)),
        completeness_warning_ratio=_clamp_ratio(
            _get_float_env("IMPORT_COMPLETENESS_WARNING_RATIO", 0.8)
        ),
        case_inconsistency_ratio=_clamp_ratio(
            _get_float_env("IMPORT_CASE_INCONSISTENCY_RATIO", 0.1)
        ),
        profit_tolerance=max(0.0, _get_float_env("IMPORT_PROFIT_TOLERANCE", 0.01)),
        max_issue_samples=max(1, _get_int_env("IMPORT_MAX_ISSUE_SAMPLES", 100)),
        strict_numbers=_get_bool_env("IMPORT_STRICT_NUMBERS", False),
        default_delimiter=_get_str_env("IMPORT_DEFAULT_DELIMITER", ","),
        max_upload_bytes=max(1, _get_int_env("IMPORT_MAX_UPLOAD_BYTES", 20 * 1024 * 1024)),
        top_n=max(1, _get_int_env("IMPORT_TOP_N", 5)),
    )
