"""
Error taxonomy for reboot decisions.

Each error maps to one failure class of the reboot resource:

    InvalidPolicy      → malformed declaration, fatal to that resource's setup
    ExecutorError      → the reboot command could not be issued
    RateLimitExceeded  → the retry ledger denied a reboot and the host aborts
    StorageError       → the retry ledger could not be read, written or locked

Adapters never raise these: they return failed receipts, and the decision
engine converts them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rebootctl.core.models.action import Receipt
    from rebootctl.core.models.outcome import RebootOutcome


class RebootError(Exception):
    """Base class for all rebootctl errors."""


class InvalidPolicy(RebootError):
    """Raised when a reboot declaration fails validation."""

    def __init__(self, message: str, resource: str | None = None):
        self.resource = resource
        prefix = f"Reboot[{resource}]: " if resource else ""
        super().__init__(f"{prefix}{message}")


class ExecutorError(RebootError):
    """Raised when the reboot executor reports a failure."""

    def __init__(self, message: str, receipt: Receipt | None = None):
        self.receipt = receipt
        super().__init__(message)


class RateLimitExceeded(RebootError):
    """Raised by the host when a denied reboot must end the run."""

    def __init__(self, outcome: RebootOutcome):
        self.outcome = outcome
        super().__init__(
            f"Reboot[{outcome.resource}]: maximum number of reboots in the "
            "retry window has been exceeded"
        )


class StorageError(RebootError):
    """Raised when the retry ledger cannot be read, written or locked."""
