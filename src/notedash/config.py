"""Configuration management for notedash."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

NOTEDASH_HOME = Path(os.environ.get("NOTEDASH_HOME", Path.home() / "notedash"))
CONFIG_FILE = NOTEDASH_HOME / "config" / "notedash.conf"
STATE_FILE = NOTEDASH_HOME / "config" / ".state.json"
TOKEN_DIR = NOTEDASH_HOME / "config" / "google"


@dataclass
class Config:
    """notedash configuration."""

    google_client_secret_file: str = ""
    firestore_project: str = ""
    firestore_credentials_file: str = ""
    tasks_collection: str = "tasks"
    dev_mode: bool = False
    timezone: str = "UTC"
    calendar_window_days: int = 7
    calendar_max_results: int = 20
    tasks_max_results: int = 50
    email_max_results: int = 5
    log_level: str = "WARNING"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_int(key: str, value: str, default: int) -> int:
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer value for {key.upper()}: {value!r}")
        return default
    if parsed < 1:
        logger.warning(f"Ignoring non-positive value for {key.upper()}: {parsed}")
        return default
    return parsed


def _strip_value(value: str) -> str:
    """Handle quoted values with inline comments: "value" # comment"""
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        if end_quote != -1:
            return value[1:end_quote]
        return value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        return value.split("#")[0].strip()
    return value


def load_config(config_file: Path | None = None) -> Config:
    """Load configuration from notedash.conf file."""
    config = Config()
    config_file = config_file or CONFIG_FILE

    if not config_file.exists():
        return config

    for line in config_file.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _strip_value(value.strip())

        match key:
            case "google_client_secret_file":
                config.google_client_secret_file = value
            case "firestore_project":
                config.firestore_project = value
            case "firestore_credentials_file":
                config.firestore_credentials_file = value
            case "tasks_collection":
                config.tasks_collection = value or config.tasks_collection
            case "dev_mode":
                config.dev_mode = _parse_bool(value)
            case "timezone":
                config.timezone = value
            case "calendar_window_days":
                config.calendar_window_days = _parse_int(key, value, config.calendar_window_days)
            case "calendar_max_results":
                config.calendar_max_results = _parse_int(key, value, config.calendar_max_results)
            case "tasks_max_results":
                config.tasks_max_results = _parse_int(key, value, config.tasks_max_results)
            case "email_max_results":
                config.email_max_results = _parse_int(key, value, config.email_max_results)
            case "log_level":
                config.log_level = value.upper()
            case _:
                logger.debug(f"Unknown config key: {key}")

    return config
