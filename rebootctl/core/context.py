"""
Run context — the state shared by every reboot resource in one run.

One RunContext is created per convergence run by whichever entry point
drives it (the ``apply`` use case, or a test) and handed to each decision
engine. It owns:

    - the "reboot already scheduled" flag: goes False → True at most once
      and is never reset, so several triggers in one run issue one reboot
    - the halt request: set when an immediate reboot was issued, so the
      host stops applying further resources

Nothing here is persisted; the context dies with the run.
"""

from __future__ import annotations

import threading
import uuid
from datetime import UTC, datetime


def generate_run_id() -> str:
    """Generate a unique run ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    return f"run-{now}-{uuid.uuid4().hex[:6]}"


class RunContext:
    """Per-run reboot bookkeeping. Safe to share between threads."""

    def __init__(self, run_id: str | None = None):
        self.run_id = run_id or generate_run_id()
        self._lock = threading.Lock()
        self._rebooting = False
        self._scheduled_by: str | None = None
        self._halt_requested = False

    @property
    def rebooting(self) -> bool:
        """Whether a reboot has been scheduled in this run."""
        with self._lock:
            return self._rebooting

    @property
    def scheduled_by(self) -> str | None:
        """Name of the resource that scheduled the reboot."""
        with self._lock:
            return self._scheduled_by

    @property
    def halt_requested(self) -> bool:
        with self._lock:
            return self._halt_requested

    def try_schedule(self, resource: str) -> bool:
        """Claim the run's single reboot.

        Returns:
            True for exactly one caller per run; False once already claimed.
        """
        with self._lock:
            if self._rebooting:
                return False
            self._rebooting = True
            self._scheduled_by = resource
            return True

    def request_halt(self) -> None:
        with self._lock:
            self._halt_requested = True

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "run_id": self.run_id,
                "rebooting": self._rebooting,
                "scheduled_by": self._scheduled_by,
                "halt_requested": self._halt_requested,
            }
