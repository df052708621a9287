"""
Ledger use cases — inspect and compact the retry ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

from rebootctl.core.config.loader import ConfigError, find_manifest_file, load_manifest
from rebootctl.core.engine.decision import Clock, utc_now
from rebootctl.core.errors import StorageError
from rebootctl.core.models.manifest import Settings
from rebootctl.core.persistence.ledger_file import DEFAULT_LEDGER_FILE
from rebootctl.core.reliability.retry_ledger import RetryLedger

DEFAULT_WINDOW_HOURS = 24


@dataclass
class LedgerResult:
    """Result of a ledger operation."""

    path: Path | None = None
    entries: list[datetime] = field(default_factory=list)
    window_hours: int | None = None
    in_window: int | None = None
    removed: int = 0
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {
            "path": str(self.path) if self.path else None,
            "total": len(self.entries),
            "entries": [ts.isoformat() for ts in self.entries],
            "removed": self.removed,
        }
        if self.window_hours is not None:
            result["window_hours"] = self.window_hours
            result["in_window"] = self.in_window
        if self.error:
            result["error"] = self.error
        return result


def resolve_ledger(
    config_path: Path | None = None,
    state_dir: Path | None = None,
) -> tuple[RetryLedger, int]:
    """The retry ledger for this host, and the widest window that uses it.

    The manifest's ``settings.state_dir`` and ``retries_interval`` values
    are honoured when a manifest can be found; otherwise the defaults apply.

    Raises:
        ConfigError: If the manifest exists but cannot be loaded.
    """
    settings = Settings()
    widest = DEFAULT_WINDOW_HOURS
    if config_path is None:
        config_path = find_manifest_file()
    if config_path is not None:
        manifest = load_manifest(config_path)
        settings = manifest.settings
        windows = [p.retry_window_hours for p in manifest.reboots if p.rate_limited]
        if windows:
            widest = max(windows)
    ledger = RetryLedger(settings.resolve_state_dir(state_dir) / DEFAULT_LEDGER_FILE)
    return ledger, widest


def show_ledger(
    config_path: Path | None = None,
    state_dir: Path | None = None,
    window_hours: int | None = None,
    clock: Clock = utc_now,
) -> LedgerResult:
    """List the recorded reboots, optionally counting those in a window."""
    result = LedgerResult()
    try:
        ledger, _ = resolve_ledger(config_path, state_dir)
        result.path = ledger.path
        result.entries = ledger.entries()
    except (ConfigError, StorageError) as e:
        result.error = str(e)
        return result

    if window_hours is not None:
        window_start = clock() - timedelta(hours=window_hours)
        result.window_hours = window_hours
        result.in_window = sum(1 for ts in result.entries if ts >= window_start)
    return result


def compact_ledger(
    window_hours: int | None = None,
    config_path: Path | None = None,
    state_dir: Path | None = None,
    clock: Clock = utc_now,
) -> LedgerResult:
    """Drop ledger entries older than ``window_hours``.

    Defaults to the widest ``retries_interval`` of the manifest's
    rate-limited resources; a narrower window could change their decisions.
    """
    result = LedgerResult()
    try:
        ledger, widest = resolve_ledger(config_path, state_dir)
        if window_hours is None:
            window_hours = widest
        result.window_hours = window_hours
        result.path = ledger.path
        if ledger.path.exists():
            result.removed = ledger.compact(clock(), window_hours)
        result.entries = ledger.entries()
    except (ConfigError, StorageError) as e:
        result.error = str(e)
        return result

    result.in_window = len(result.entries)
    return result
