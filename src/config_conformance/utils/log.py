"""
Centralized logging configuration.

Usage:
    from config_conformance.utils.log import get_logger
    logger = get_logger(__name__)
    logger.info("Loaded artifact %s", artifact_id)
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

NAMESPACE = "config_conformance"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_configured = False
_log_files: set[Path] = set()


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    """
    Configure logging for the package.

    The first call installs the handlers. Later calls (e.g. `--verbose`
    after the configured level was applied) only change the level and add
    a file handler for a log file not seen yet.
    """
    global _configured
    root = logging.getLogger(NAMESPACE)
    root.setLevel(_level(level))

    fmt = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    if not _configured:
        # stdout carries the report
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(fmt)
        root.addHandler(console)
        _configured = True

    if log_file:
        log_file = Path(log_file).resolve()
        if log_file not in _log_files:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(str(log_file), encoding="utf-8")
            fh.setFormatter(fmt)
            root.addHandler(fh)
            _log_files.add(log_file)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module. Automatically namespaced under 'config_conformance'."""
    if not name.startswith(NAMESPACE):
        name = f"{NAMESPACE}.{name}"
    return logging.getLogger(name)
