"""
------------------------------------------------------------------------------
Project:        ResearchKB
File:           researchkb/logger.py
Version:        1.0.0
Description:    Centralized logging system for ResearchKB.
                Logs go to stderr (stdout carries command output such as
                JSON results) and optionally to a file. Supports
                component-specific levels, per-paper ingest outcomes and
                SQL-level debugging for the storage layer.
------------------------------------------------------------------------------
"""

import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence

# Root logger for the entire application
APP_LOGGER_NAME = "researchkb"

DEFAULT_FORMAT = "%(asctime)s [%(levelname).4s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Level of each per-paper ingest outcome on 'researchkb.ingest.papers'
OUTCOME_LEVELS = {
    "indexed": logging.INFO,
    "updated": logging.INFO,
    "skipped": logging.DEBUG,
    "failed": logging.WARNING,
}


def _parse_level(level: str, default: int = logging.WARNING) -> int:
    value = getattr(logging, str(level).upper(), None)
    return value if isinstance(value, int) else default


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[str] = None,
    component_levels: Optional[Dict[str, str]] = None
) -> None:
    """
    Sets up the global logging configuration.

    An unknown level name falls back to WARNING. A log file that cannot be
    opened is reported on the console and skipped.

    Args:
        level: The default logging level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to a file where logs should be saved.
        component_levels: Dict mapping component names (e.g. 'ingest') to levels.
    """
    root = logging.getLogger(APP_LOGGER_NAME)

    # Remove existing handlers to avoid duplicates on re-setup
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    root.setLevel(_parse_level(level))

    formatter = logging.Formatter(DEFAULT_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(str(log_path), encoding="utf-8")
        except OSError as e:
            root.warning(f"File logging disabled, cannot open {log_path}: {e}")
        else:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    for component, cmp_level in (component_levels or {}).items():
        set_component_level(component, cmp_level)


def get_logger(name: str) -> logging.Logger:
    """
    Returns a logger instance for a specific component.
    Namespaced under 'researchkb.<name>'.
    """
    if name == APP_LOGGER_NAME or name.startswith(APP_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")


def set_component_level(component: str, level: str) -> None:
    """
    Dynamically changes the log level for a specific component.
    Unknown level names are ignored.
    """
    numeric_level = getattr(logging, str(level).upper(), None)
    if isinstance(numeric_level, int):
        get_logger(component).setLevel(numeric_level)


def log_ingest_outcome(status: str, paper_id: str, detail: str = "", error: bool = False) -> None:
    """
    One line per paper of an ingest run on 'researchkb.ingest.papers'.
    Skips are DEBUG, failures WARNING (ERROR when ``error`` marks a storage
    fault rather than a bad input file).
    """
    level = OUTCOME_LEVELS.get(status, logging.INFO)
    if error:
        level = logging.ERROR
    get_logger("ingest.papers").log(level, f"{status} {paper_id} {detail}".rstrip())


def log_sql_query(query: str, params: Optional[Sequence] = None, result_count: int = 0) -> None:
    """
    Specialized helper for database debugging.
    Logged at DEBUG level on 'researchkb.db.sql' with whitespace collapsed.
    """
    logger = get_logger("db.sql")
    if logger.isEnabledFor(logging.DEBUG):
        msg = f"SQL: {' '.join(query.split())}"
        if params:
            msg += f" | PARAMS: {tuple(params)}"
        msg += f" | RESULTS: {result_count}"
        logger.debug(msg)
