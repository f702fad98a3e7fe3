"""
Configuration and environment setup for the SoundExchange log generator.

Centralizes defaults, the immutable run configuration, logging setup,
and startup validation so that problems are caught early and reported
clearly.
"""

import logging
import logging.handlers
import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

# ── Paths ─────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent
LOG_DIR = BASE_DIR / "logs"

# ── Station ───────────────────────────────────────────────
DEFAULT_CALL_LETTERS = "KTBG"

# ── Audio format of the music library ─────────────────────
DEFAULT_SAMPLE_RATE = 44_100      # Hz
DEFAULT_CHANNELS = 2
DEFAULT_BITS_PER_SAMPLE = 16

# ── Report layout ─────────────────────────────────────────
DEFAULT_DAYS_NEEDED = 14
DEFAULT_INPUT_DELIMITER = " "
DEFAULT_OUTPUT_DELIMITER = "\t"
DEFAULT_RECORD_SEPARATOR = "\n"
DEFAULT_PLAYLIST_FIELDS = ("Start Time", "Duration", "Artist", "Title", "Album", "Label")
DEFAULT_STREAM_FIELDS = (
    "IP Address", "Date", "Time", "Stream name", "Duration", "Status Code", "Referrer",
)

# ── Sources ───────────────────────────────────────────────
CATALOG_MODES = {"csv", "db"}
DEFAULT_STREAM_LOGS_DIR = "/mnt/stream_logs/WMS"
DEFAULT_PLAYLIST_LOGS_DIR = "/mnt/60gig/Logs"
DEFAULT_MUSIC_DIR = "/mnt/100gig/A3"

# ── Retry / backoff (mail delivery only) ─────────────────
MAX_RETRIES = 3
BACKOFF_BASE = 2          # seconds – exponential base
BACKOFF_MAX = 30          # seconds – cap per retry
SMTP_TIMEOUT = 30         # seconds

# ── Logging ───────────────────────────────────────────────
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "false").lower() == "true"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024   # 10 MB
LOG_FILE_BACKUP_COUNT = 5


def setup_logging(level: int = logging.INFO) -> None:
    """
    Configure root logger with console output and optional file rotation.

    Set LOG_TO_FILE=true in .env to enable file logging to logs/sxlogs.log
    with automatic rotation at 10 MB (5 backups kept).
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if LOG_TO_FILE:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            LOG_DIR / "sxlogs.log",
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
    )


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    return default if raw is None else raw


_ESCAPES = {"\\t": "\t", "\\n": "\n", "\\r": "\r"}


def _env_escaped(name: str, default: str) -> str:
    """Read a delimiter that may be written as an escape such as '\\t' in .env."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return re.sub(r"\\[tnr]", lambda m: _ESCAPES[m.group(0)], raw)


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class ReportConfig:
    """Everything one run needs, built once at start-up and passed down."""

    call_letters: str = DEFAULT_CALL_LETTERS
    sample_rate: int = DEFAULT_SAMPLE_RATE
    channels: int = DEFAULT_CHANNELS
    bits_per_sample: int = DEFAULT_BITS_PER_SAMPLE
    days_needed: int = DEFAULT_DAYS_NEEDED
    input_delimiter: str = DEFAULT_INPUT_DELIMITER
    output_delimiter: str = DEFAULT_OUTPUT_DELIMITER
    record_separator: str = DEFAULT_RECORD_SEPARATOR
    playlist_fields: Tuple[str, ...] = DEFAULT_PLAYLIST_FIELDS
    stream_fields: Tuple[str, ...] = DEFAULT_STREAM_FIELDS
    catalog_mode: str = "csv"
    catalog_file: str = "compilations.csv"
    catalog_db: str = ""
    catalog_key_prefix: str = ""
    stream_logs_dir: str = DEFAULT_STREAM_LOGS_DIR
    playlist_logs_dir: str = DEFAULT_PLAYLIST_LOGS_DIR
    playlist_extension: str = "lst"
    music_dir: str = DEFAULT_MUSIC_DIR
    output_dir: str = ""
    smtp_host: str = ""
    notify_from: str = ""
    notify_to: str = ""

    @property
    def delivery_enabled(self) -> bool:
        return bool(self.smtp_host)

    @classmethod
    def from_env(cls) -> "ReportConfig":
        """Build the run configuration from SX_* environment variables."""
        return cls(
            call_letters=_env_str("SX_CALL_LETTERS", DEFAULT_CALL_LETTERS),
            sample_rate=_env_int("SX_SAMPLE_RATE", DEFAULT_SAMPLE_RATE),
            channels=_env_int("SX_CHANNELS", DEFAULT_CHANNELS),
            bits_per_sample=_env_int("SX_BITS_PER_SAMPLE", DEFAULT_BITS_PER_SAMPLE),
            days_needed=_env_int("SX_DAYS_NEEDED", DEFAULT_DAYS_NEEDED),
            input_delimiter=_env_escaped("SX_INPUT_DELIMITER", DEFAULT_INPUT_DELIMITER),
            output_delimiter=_env_escaped("SX_OUTPUT_DELIMITER", DEFAULT_OUTPUT_DELIMITER),
            record_separator=_env_escaped("SX_RECORD_SEPARATOR", DEFAULT_RECORD_SEPARATOR),
            playlist_fields=_env_list("SX_PLAYLIST_FIELDS", DEFAULT_PLAYLIST_FIELDS),
            stream_fields=_env_list("SX_STREAM_FIELDS", DEFAULT_STREAM_FIELDS),
            catalog_mode=_env_str("SX_CATALOG_MODE", "csv").lower(),
            catalog_file=_env_str("SX_CATALOG_FILE", "compilations.csv"),
            catalog_db=_env_str("SX_CATALOG_DB", ""),
            catalog_key_prefix=_env_str("SX_CATALOG_KEY_PREFIX", ""),
            stream_logs_dir=_env_str("SX_STREAM_LOGS_DIR", DEFAULT_STREAM_LOGS_DIR),
            playlist_logs_dir=_env_str("SX_PLAYLIST_LOGS_DIR", DEFAULT_PLAYLIST_LOGS_DIR),
            playlist_extension=_env_str("SX_PLAYLIST_EXTENSION", "lst").lstrip("."),
            music_dir=_env_str("SX_MUSIC_DIR", DEFAULT_MUSIC_DIR),
            output_dir=_env_str("SX_OUTPUT_DIR", ""),
            smtp_host=_env_str("SX_SMTP_HOST", ""),
            notify_from=_env_str("SX_NOTIFY_FROM", ""),
            notify_to=_env_str("SX_NOTIFY_TO", ""),
        )


def _check_directory(label: str, path: str, errors: List[str]) -> None:
    if not path:
        errors.append(f"{label} is not set")
    elif not os.path.exists(path):
        errors.append(f'{label} "{path}" could not be found')
    elif not os.path.isdir(path):
        errors.append(f'{label} "{path}" is not a directory')


def validate_config(config: ReportConfig, known_columns: Optional[dict] = None) -> None:
    """
    Check that all required directories, sources and settings exist.

    Raises ConfigurationError with a clear message if anything
    is missing, so the run fails fast instead of halfway
    through processing.

    ``known_columns`` maps report name to the set of labels it accepts;
    when given, configured report fields are checked against it.
    """
    errors: List[str] = []

    _check_directory("Stream log directory", config.stream_logs_dir, errors)
    _check_directory("Playlist log directory", config.playlist_logs_dir, errors)
    _check_directory("Music directory", config.music_dir, errors)

    for name in ("sample_rate", "channels", "bits_per_sample", "days_needed"):
        if getattr(config, name) <= 0:
            errors.append(f"{name} must be positive, got {getattr(config, name)}")

    if len(config.input_delimiter) != 1:
        errors.append(f"input_delimiter must be one character, got {config.input_delimiter!r}")
    if len(config.output_delimiter) != 1:
        errors.append(f"output_delimiter must be one character, got {config.output_delimiter!r}")

    if config.catalog_mode not in CATALOG_MODES:
        errors.append(
            f"Unknown catalog mode '{config.catalog_mode}' "
            f"(expected one of {sorted(CATALOG_MODES)})"
        )
    elif config.catalog_mode == "csv" and not os.path.isfile(config.catalog_file):
        errors.append(f"Catalog file not found: {config.catalog_file}")
    elif config.catalog_mode == "db" and not os.path.isfile(config.catalog_db):
        errors.append(f"Catalog database not found: {config.catalog_db or '(unset)'}")

    if known_columns:
        for report, fields in (("playlist", config.playlist_fields),
                               ("stream", config.stream_fields)):
            unknown = [f for f in fields if f not in known_columns[report]]
            if unknown:
                errors.append(f"Unknown {report} report fields: {unknown}")

    if config.delivery_enabled and not (config.notify_from and config.notify_to):
        errors.append("SX_SMTP_HOST is set but SX_NOTIFY_FROM / SX_NOTIFY_TO are missing")
    elif not config.delivery_enabled:
        logging.getLogger(__name__).warning(
            "SX_SMTP_HOST not set; reports will be written but not mailed."
        )

    if errors:
        raise ConfigurationError(
            "Configuration errors:\n  • " + "\n  • ".join(errors)
        )
