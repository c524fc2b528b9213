"""Pre-DB bootstrap configuration. Zero imports from the rest of the app
apart from constants.

Stores preferences that must be known before opening the DB (db_folder,
log level, generation throttle). Config lives in ~/.recur_ledger/config.json.
"""
import json
import os
from pathlib import Path

from utils.constants import MIN_GENERATION_INTERVAL_MINUTES

CONFIG_DIR = Path.home() / ".recur_ledger"
CONFIG_FILE = CONFIG_DIR / "config.json"


def load_config() -> dict:
    """Returns {} on missing or corrupt file, never raises."""
    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def save_config(config: dict) -> None:
    """Creates ~/.recur_ledger/ if needed; atomic write via .tmp + os.replace()."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    tmp = CONFIG_FILE.with_suffix(".tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        os.replace(tmp, CONFIG_FILE)
    except Exception:
        try:
            tmp.unlink(missing_ok=True)
        except Exception:
            pass


def get_db_folder() -> str | None:
    """Return config["db_folder"] or None if not set."""
    return load_config().get("db_folder")


def get_min_generation_interval() -> int:
    """Minutes between two generation passes; 0 disables the throttle."""
    value = load_config().get("min_generation_interval_minutes", MIN_GENERATION_INTERVAL_MINUTES)
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return MIN_GENERATION_INTERVAL_MINUTES


def get_log_level() -> str | None:
    return load_config().get("log_level")


def get_log_dir() -> str | None:
    """Folder for the rotating logfile; console-only logging when unset."""
    return load_config().get("log_dir")
