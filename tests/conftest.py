"""
Shared test fixtures and configuration.
"""

import textwrap
from datetime import UTC, datetime
from pathlib import Path

import pytest

from rebootctl.adapters.mock import MockPendingProbe, MockRebootAdapter
from rebootctl.adapters.registry import AdapterRegistry

# A fixed "now" so window arithmetic is exact.
NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for ledger and audit files."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def ledger_path(tmp_state_dir: Path) -> Path:
    return tmp_state_dir / "reboot_retries.log"


@pytest.fixture
def mock_executor() -> MockRebootAdapter:
    return MockRebootAdapter()


@pytest.fixture
def make_registry(mock_executor: MockRebootAdapter):
    """Build a mock registry whose probe reports the given reasons pending."""

    def _make(pending=(), supported=None, failing=()) -> AdapterRegistry:
        probe = MockPendingProbe(pending=pending, supported=supported, failing=failing)
        return AdapterRegistry(mock_executor, probe, mock_mode=True)

    return _make


@pytest.fixture
def write_manifest(tmp_path: Path):
    """Write a reboot.yml into tmp_path and return its path."""

    def _write(content: str) -> Path:
        path = tmp_path / "reboot.yml"
        path.write_text(textwrap.dedent(content))
        return path

    return _write


@pytest.fixture(autouse=True)
def _no_state_dir_env(monkeypatch):
    monkeypatch.delenv("REBOOTCTL_STATE_DIR", raising=False)
