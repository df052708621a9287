"""
Logging configuration — set up once by the CLI entrypoint.

Every module does ``logger = logging.getLogger(__name__)`` and inherits
this configuration.

Levels are resolved in precedence order:
    CLI flag  >  REBOOTCTL_LOG_LEVEL env var  >  WARNING (default)

Optional file output via REBOOTCTL_LOG_FILE / REBOOTCTL_LOG_FILE_LEVEL.
Reboot decisions are worth keeping: the process that scheduled a reboot
is gone by the time anyone asks why the host went down.
"""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_ENV = "REBOOTCTL_LOG_LEVEL"
LOG_FILE_ENV = "REBOOTCTL_LOG_FILE"
LOG_FILE_LEVEL_ENV = "REBOOTCTL_LOG_FILE_LEVEL"

# WARNING level: message only
_FMT_MINIMAL = "%(levelname)s: %(message)s"

# INFO level: timestamped with module context
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# DEBUG level: full diagnostic with file:line
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# File output: always full detail, full date
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
        log_file_level: Level for the log file. Defaults to ``level``.
    """
    numeric_level = parse_level(level)

    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_VERBOSE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    # Root level is the more verbose of console and file
    effective_level = numeric_level

    if log_file:
        file_level = parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)

    logging.raiseExceptions = False


def parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric


def console_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Console level from CLI flags, falling back to REBOOTCTL_LOG_LEVEL."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(LOG_LEVEL_ENV, "WARNING")


def setup_cli_logging(debug: bool = False, verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging for a CLI invocation, honouring the env overrides."""
    setup_logging(
        level=console_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(LOG_FILE_ENV),
        log_file_level=os.environ.get(LOG_FILE_LEVEL_ENV),
    )
