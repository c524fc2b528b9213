"""
Logging setup for the CLI host.

Console logging always; a daily-rotating logfile when a log directory is
given. The level comes from an explicit argument, then RECUR_LEDGER_LOG_LEVEL,
then the config file, then INFO.
"""
import logging
import os
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
LOG_FILE = "recur_ledger.log"
HANDLER_PREFIX = "recur_ledger."


def get_log_level(explicit: str | None = None, configured: str | None = None) -> str:
    """
    Resolve the log level name.

    Returns:
        str: `explicit` if valid, else RECUR_LEDGER_LOG_LEVEL if valid,
             else `configured` if valid, else INFO.
    """
    for candidate in (explicit, os.environ.get("RECUR_LEDGER_LOG_LEVEL"), configured):
        if candidate and candidate.upper() in VALID_LEVELS:
            return candidate.upper()
    return "INFO"


def setup_logging(
    level: str | None = None,
    log_dir: str | Path | None = None,
    configured: str | None = None,
) -> logging.Logger:
    """Configure the root logger. Safe to call more than once."""
    root = logging.getLogger()
    root.setLevel(get_log_level(level, configured))

    for handler in list(root.handlers):
        if (handler.get_name() or "").startswith(HANDLER_PREFIX):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console.set_name(HANDLER_PREFIX + "console")
    root.addHandler(console)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            path / LOG_FILE, when="midnight", backupCount=7, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        file_handler.set_name(HANDLER_PREFIX + "file")
        root.addHandler(file_handler)

    return root
