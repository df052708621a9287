"""
Shell command helpers — run a command, or leave one running detached.

Reboot executors and probes are built on these. Both helpers report
failures in their return value instead of raising, matching the adapter
contract.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of one command invocation."""

    argv: list[str] = field(default_factory=list)
    returncode: int | None = None
    stdout: str = ""
    stderr: str = ""
    error: str | None = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and self.returncode == 0


def run_command(argv: list[str], timeout: int = 60) -> CommandResult:
    """Run ``argv`` to completion and capture its output."""
    logger.debug("Executing: %s", argv)
    start = time.monotonic()
    result = CommandResult(argv=list(argv))

    try:
        proc = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        result.returncode = proc.returncode
        result.stdout = proc.stdout.strip()
        result.stderr = proc.stderr.strip()
    except subprocess.TimeoutExpired:
        result.error = f"Command timed out after {timeout}s"
    except OSError as e:
        result.error = f"Command execution error: {e}"

    result.duration_ms = int((time.monotonic() - start) * 1000)
    return result


def spawn_detached(argv: list[str]) -> tuple[int | None, str | None]:
    """Start ``argv`` in the background, detached from this process.

    Returns:
        (pid, error). pid is None when the spawn failed.
    """
    logger.debug("Spawning detached: %s", argv)
    kwargs: dict = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
        "close_fds": True,
    }
    if sys.platform == "win32":
        kwargs["creationflags"] = (
            subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
        )
    else:
        kwargs["start_new_session"] = True

    try:
        proc = subprocess.Popen(argv, **kwargs)
    except OSError as e:
        return None, f"Cannot start watcher: {e}"
    return proc.pid, None


def current_pid() -> int:
    return os.getpid()
