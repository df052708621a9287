"""
Retry ledger — persisted sliding-window budget for reboots.

Every permitted reboot appends its timestamp to the ledger file. Before the
next reboot, the ledger looks at the entry ``max_retries`` positions from
the end: if that entry is still inside the retry window, the host has
already rebooted ``max_retries`` times in the window and the reboot is
denied.

    entries:  t0  t1  t2  t3        max_retries = 2
                      ^^ boundary (index total - max_retries)

    boundary older than now - window  →  ALLOW, append now
    boundary inside the window        →  DENY

Fewer entries than ``max_retries`` means there is no boundary, so the
reboot is allowed. ``max_retries = 0`` disables the check entirely and
never touches the file.

The ledger outlives the process: the controlling run exits before the
reboot actually happens, and the next run must see it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
from pathlib import Path
from typing import Any

from rebootctl.core.persistence.file_lock import exclusive_lock
from rebootctl.core.persistence.ledger_file import (
    append_timestamp,
    ensure_ledger,
    read_timestamps,
    write_timestamps,
)

logger = logging.getLogger(__name__)


class Verdict(StrEnum):
    """Ledger verdicts."""

    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class LedgerDecision:
    """Outcome of a ledger check."""

    verdict: Verdict
    total: int = 0
    boundary: datetime | None = None
    window_start: datetime | None = None
    recorded: bool = False

    @property
    def allowed(self) -> bool:
        return self.verdict == Verdict.ALLOW

    def to_dict(self) -> dict[str, Any]:
        return {
            "verdict": self.verdict.value,
            "total": self.total,
            "boundary": self.boundary.isoformat() if self.boundary else None,
            "window_start": self.window_start.isoformat() if self.window_start else None,
            "recorded": self.recorded,
        }


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.astimezone()


def find_boundary(entries: list[datetime], max_retries: int) -> datetime | None:
    """The entry that must have aged out of the window, or None."""
    index = len(entries) - max_retries
    if index < 0:
        return None
    return entries[index]


class RetryLedger:
    """Append-only reboot history with a sliding-window budget.

    The file is created lazily on the first rate-limited check, and every
    read-decide-append runs under an exclusive lock.
    """

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def entries(self) -> list[datetime]:
        """All recorded reboot instants, oldest first."""
        return read_timestamps(self._path)

    def is_reboot_permitted(
        self,
        now: datetime,
        max_retries: int,
        window_hours: int,
        record: bool = True,
    ) -> LedgerDecision:
        """Decide whether another reboot fits in the budget.

        Args:
            now: The instant of the attempted reboot.
            max_retries: Reboots allowed per window. 0 disables the check.
            window_hours: Length of the trailing window.
            record: Append ``now`` when allowed. False for dry runs.

        Returns:
            LedgerDecision. ALLOW has already been recorded when ``record``.

        Raises:
            ValueError: If ``max_retries`` is negative, or if the check is
                enabled and ``window_hours`` is not positive.
            StorageError: If the ledger cannot be read, written or locked.
        """
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        if max_retries == 0:
            return LedgerDecision(verdict=Verdict.ALLOW)
        if window_hours <= 0:
            raise ValueError(f"window_hours must be > 0, got {window_hours}")

        now = _aware(now)
        window_start = now - timedelta(hours=window_hours)

        with exclusive_lock(self._path):
            ensure_ledger(self._path)
            entries = read_timestamps(self._path)
            boundary = find_boundary(entries, max_retries)

            logger.info(
                "total_reboots = %d - boundary = %s - window_start = %s",
                len(entries),
                boundary.isoformat() if boundary else None,
                window_start.isoformat(),
            )

            if boundary is not None and boundary >= window_start:
                logger.info(
                    "Reboot skipped because the maximum number of retries (%d) "
                    "in the last %dh has been exceeded",
                    max_retries,
                    window_hours,
                )
                return LedgerDecision(
                    verdict=Verdict.DENY,
                    total=len(entries),
                    boundary=boundary,
                    window_start=window_start,
                )

            if record:
                append_timestamp(self._path, now)
            logger.info("Retries count not exceeded. Triggering reboot.")
            return LedgerDecision(
                verdict=Verdict.ALLOW,
                total=len(entries) + (1 if record else 0),
                boundary=boundary,
                window_start=window_start,
                recorded=record,
            )

    def compact(self, now: datetime, window_hours: int) -> int:
        """Drop entries older than the window.

        Entries are in time order, so any entry older than the window can
        only ever be a boundary that allows. Removing them never changes a
        decision for this window length (or any shorter one).

        Returns:
            Number of entries removed.
        """
        now = _aware(now)
        window_start = now - timedelta(hours=window_hours)
        with exclusive_lock(self._path):
            entries = read_timestamps(self._path)
            kept = [ts for ts in entries if ts >= window_start]
            removed = len(entries) - len(kept)
            if removed:
                write_timestamps(self._path, kept)
                logger.info("Compacted ledger %s: removed %d entries", self._path, removed)
            return removed

