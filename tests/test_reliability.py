"""
Tests for reliability — the retry ledger's sliding-window budget.
"""

from datetime import timedelta
from pathlib import Path

import pytest

from rebootctl.core.errors import StorageError
from rebootctl.core.persistence.ledger_file import read_timestamps, write_timestamps
from rebootctl.core.reliability.retry_ledger import (
    RetryLedger,
    Verdict,
    find_boundary,
)


def _hours(n: float) -> timedelta:
    return timedelta(hours=n)


# ── Boundary selection ───────────────────────────────────────────────


class TestFindBoundary:
    def test_fewer_entries_than_budget(self, now):
        assert find_boundary([now], 2) is None

    def test_empty(self):
        assert find_boundary([], 1) is None

    def test_exactly_budget(self, now):
        entries = [now - _hours(5), now - _hours(1)]
        assert find_boundary(entries, 2) == entries[0]

    def test_more_than_budget(self, now):
        entries = [now - _hours(9), now - _hours(5), now - _hours(1)]
        assert find_boundary(entries, 2) == entries[1]


# ── RetryLedger decisions ────────────────────────────────────────────


class TestRetryLedger:
    def test_zero_retries_always_allows(self, ledger_path: Path, now):
        write_timestamps(ledger_path, [now - _hours(1)] * 10)
        ledger = RetryLedger(ledger_path)
        decision = ledger.is_reboot_permitted(now, max_retries=0, window_hours=24)
        assert decision.allowed
        assert len(ledger.entries()) == 10  # not appended

    def test_zero_retries_never_creates_file(self, ledger_path: Path, now):
        RetryLedger(ledger_path).is_reboot_permitted(now, max_retries=0, window_hours=24)
        assert not ledger_path.exists()

    def test_empty_ledger_allows_and_records(self, ledger_path: Path, now):
        ledger = RetryLedger(ledger_path)
        decision = ledger.is_reboot_permitted(now, max_retries=1, window_hours=24)
        assert decision.verdict == Verdict.ALLOW
        assert decision.recorded
        assert ledger.entries() == [now]

    def test_missing_parent_directory_created(self, tmp_path: Path, now):
        ledger = RetryLedger(tmp_path / "deep" / "nested" / "reboot_retries.log")
        assert ledger.is_reboot_permitted(now, max_retries=3, window_hours=24).allowed
        assert ledger.path.is_file()

    def test_boundary_outside_window_allows(self, ledger_path: Path, now):
        write_timestamps(ledger_path, [now - _hours(48), now - _hours(1)])
        ledger = RetryLedger(ledger_path)

        decision = ledger.is_reboot_permitted(now, max_retries=2, window_hours=24)

        assert decision.allowed
        assert decision.boundary == now - _hours(48)
        assert len(ledger.entries()) == 3
        assert ledger.entries()[-1] == now

    def test_boundary_inside_window_denies(self, ledger_path: Path, now):
        write_timestamps(ledger_path, [now - _hours(23), now - _hours(1)])
        ledger = RetryLedger(ledger_path)

        decision = ledger.is_reboot_permitted(now, max_retries=2, window_hours=24)

        assert decision.verdict == Verdict.DENY
        assert decision.boundary == now - _hours(23)
        assert decision.window_start == now - _hours(24)
        assert len(ledger.entries()) == 2  # nothing appended on deny

    def test_boundary_exactly_at_window_start_denies(self, ledger_path: Path, now):
        write_timestamps(ledger_path, [now - _hours(24)])
        decision = RetryLedger(ledger_path).is_reboot_permitted(now, max_retries=1, window_hours=24)
        assert not decision.allowed

    def test_budget_larger_than_history_allows(self, ledger_path: Path, now):
        write_timestamps(ledger_path, [now - _hours(0.5)] * 3)
        decision = RetryLedger(ledger_path).is_reboot_permitted(now, max_retries=5, window_hours=24)
        assert decision.allowed

    def test_budget_fills_then_denies(self, ledger_path: Path, now):
        ledger = RetryLedger(ledger_path)
        results = [
            ledger.is_reboot_permitted(now + _hours(i), max_retries=3, window_hours=24).allowed
            for i in range(4)
        ]
        assert results == [True, True, True, False]

    def test_window_slides(self, ledger_path: Path, now):
        ledger = RetryLedger(ledger_path)
        assert ledger.is_reboot_permitted(now, max_retries=1, window_hours=2).allowed
        assert not ledger.is_reboot_permitted(now + _hours(1), max_retries=1, window_hours=2).allowed
        assert ledger.is_reboot_permitted(now + _hours(3), max_retries=1, window_hours=2).allowed

    def test_dry_run_does_not_record(self, ledger_path: Path, now):
        ledger = RetryLedger(ledger_path)
        decision = ledger.is_reboot_permitted(now, max_retries=1, window_hours=24, record=False)
        assert decision.allowed
        assert not decision.recorded
        assert ledger.entries() == []

    def test_naive_now_accepted(self, ledger_path: Path, now):
        ledger = RetryLedger(ledger_path)
        naive = now.astimezone().replace(tzinfo=None)
        assert ledger.is_reboot_permitted(naive, max_retries=1, window_hours=24).allowed

    def test_corrupt_ledger_fails_closed(self, ledger_path: Path, now):
        ledger_path.write_text("not a timestamp\n")
        with pytest.raises(StorageError):
            RetryLedger(ledger_path).is_reboot_permitted(now, max_retries=1, window_hours=24)

    def test_negative_retries_rejected(self, ledger_path: Path, now):
        write_timestamps(ledger_path, [now - _hours(1)] * 3)
        ledger = RetryLedger(ledger_path)
        with pytest.raises(ValueError, match="max_retries"):
            ledger.is_reboot_permitted(now, max_retries=-1, window_hours=24)
        assert len(ledger.entries()) == 3

    @pytest.mark.parametrize("window_hours", [0, -24])
    def test_non_positive_window_rejected(self, ledger_path: Path, now, window_hours):
        with pytest.raises(ValueError, match="window_hours"):
            RetryLedger(ledger_path).is_reboot_permitted(now, max_retries=1, window_hours=window_hours)
        assert not ledger_path.exists()

    def test_denial_logged_at_info(self, ledger_path: Path, now, caplog):
        write_timestamps(ledger_path, [now - _hours(1)])
        with caplog.at_level("INFO", logger="rebootctl.core.reliability.retry_ledger"):
            decision = RetryLedger(ledger_path).is_reboot_permitted(now, max_retries=1, window_hours=24)
        assert not decision.allowed
        denials = [r for r in caplog.records if "maximum number of retries" in r.getMessage()]
        assert [r.levelname for r in denials] == ["INFO"]

    def test_to_dict(self, ledger_path: Path, now):
        decision = RetryLedger(ledger_path).is_reboot_permitted(now, max_retries=1, window_hours=24)
        d = decision.to_dict()
        assert d["verdict"] == "allow"
        assert d["total"] == 1
        assert d["boundary"] is None


# ── Compaction ───────────────────────────────────────────────────────


class TestCompaction:
    def test_drops_only_expired_entries(self, ledger_path: Path, now):
        write_timestamps(ledger_path, [now - _hours(72), now - _hours(30), now - _hours(2)])
        ledger = RetryLedger(ledger_path)
        assert ledger.compact(now, window_hours=24) == 2
        assert read_timestamps(ledger_path) == [now - _hours(2)]

    def test_nothing_to_drop(self, ledger_path: Path, now):
        write_timestamps(ledger_path, [now - _hours(1)])
        assert RetryLedger(ledger_path).compact(now, window_hours=24) == 0

    @pytest.mark.parametrize(
        "ages,max_retries",
        [
            ([72, 48, 23, 1], 2),
            ([72, 30, 25, 1], 2),
            ([50, 40, 30], 1),
            ([20, 10, 5], 3),
        ],
    )
    def test_compaction_preserves_decision(self, tmp_path: Path, now, ages, max_retries):
        entries = [now - _hours(a) for a in ages]
        full = RetryLedger(tmp_path / "full.log")
        compacted = RetryLedger(tmp_path / "compacted.log")
        write_timestamps(full.path, entries)
        write_timestamps(compacted.path, entries)
        compacted.compact(now, window_hours=24)

        before = full.is_reboot_permitted(now, max_retries, 24, record=False)
        after = compacted.is_reboot_permitted(now, max_retries, 24, record=False)
        assert before.verdict == after.verdict
