"""
Ledger file persistence — one reboot timestamp per line, newest last.

The file is plain text so an operator can read or prune it by hand:

    2026-10-17T03:12:44.120301+00:00
    2026-10-18T03:13:02.877415+00:00

Appends go straight to the end of the file. Rewrites (compaction) are
atomic: write to a temp file in the same directory, then replace.

Callers are expected to hold ``exclusive_lock(path)`` around any
read-then-write sequence.
"""

from __future__ import annotations

import logging
import tempfile
from datetime import datetime
from pathlib import Path

from rebootctl.core.errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_FILE = "reboot_retries.log"

# Older ledgers were written with Ruby's Time#to_s.
_LEGACY_FORMAT = "%Y-%m-%d %H:%M:%S %z"


def parse_timestamp(text: str) -> datetime:
    """Parse one ledger line into an aware datetime.

    Naive timestamps are taken as local time.

    Raises:
        ValueError: If the line is not a recognized timestamp.
    """
    text = text.strip()
    try:
        ts = datetime.fromisoformat(text)
    except ValueError:
        ts = datetime.strptime(text, _LEGACY_FORMAT)
    if ts.tzinfo is None:
        ts = ts.astimezone()
    return ts


def format_timestamp(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.astimezone()
    return ts.isoformat()


def ensure_ledger(path: Path) -> None:
    """Create an empty ledger if none exists."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch(exist_ok=True)
    except OSError as e:
        raise StorageError(f"Cannot create ledger {path}: {e}") from e


def read_timestamps(path: Path) -> list[datetime]:
    """Read all ledger entries, oldest first.

    A missing file is an empty ledger. Blank lines are ignored.

    Raises:
        StorageError: If the file cannot be read or a line is not a timestamp.
    """
    if not path.exists():
        return []

    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise StorageError(f"Cannot read ledger {path}: {e}") from e

    entries: list[datetime] = []
    for line_num, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            entries.append(parse_timestamp(line))
        except ValueError as e:
            raise StorageError(f"Corrupt ledger entry at {path}:{line_num}: {line!r}") from e

    logger.debug("Read %d ledger entries from %s", len(entries), path)
    return entries


def append_timestamp(path: Path, ts: datetime) -> None:
    """Append one entry to the end of the ledger."""
    line = format_timestamp(ts) + "\n"
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(line)
    except OSError as e:
        raise StorageError(f"Cannot append to ledger {path}: {e}") from e
    logger.debug("Ledger entry appended to %s: %s", path, line.strip())


def write_timestamps(path: Path, entries: list[datetime]) -> None:
    """Replace the ledger contents atomically."""
    content = "".join(format_timestamp(ts) + "\n" for ts in entries)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".ledger_", suffix=".tmp")
        tmp = Path(tmp_name)
        try:
            with open(fd, "w", encoding="utf-8") as f:
                f.write(content)
            tmp.replace(path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
    except OSError as e:
        raise StorageError(f"Cannot rewrite ledger {path}: {e}") from e
    logger.debug("Ledger %s rewritten with %d entries", path, len(entries))
