"""
Shutdown-command executor — the common part of the platform reboot adapters.

Immediate reboots run the platform's shutdown command right away (the
command itself honours the timeout). Deferred reboots start a detached
watcher that waits for this process to exit and only then runs the
command, so the rest of the run can finish first.
"""

from __future__ import annotations

import logging
import shutil
from abc import abstractmethod

from rebootctl.adapters.base import RebootAdapter
from rebootctl.adapters.shell.command import current_pid, run_command, spawn_detached
from rebootctl.core.models.action import Receipt, RebootRequest

logger = logging.getLogger(__name__)


class ShutdownCommandAdapter(RebootAdapter):
    """Reboot by invoking a shutdown executable."""

    executable: str = "shutdown"

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    @abstractmethod
    def build_command(self, request: RebootRequest) -> list[str]:
        """The shutdown invocation for ``request``."""

    @abstractmethod
    def build_watcher(self, command: list[str], pid: int) -> list[str]:
        """A command that waits for ``pid`` to exit, then runs ``command``."""

    def validate(self, request: RebootRequest) -> tuple[bool, str]:
        if not request.message:
            return False, "Missing reboot message"
        if request.timeout_seconds < 0:
            return False, f"Invalid timeout: {request.timeout_seconds}"
        if not self.is_available():
            return False, f"'{self.executable}' not found on PATH"
        return True, ""

    def execute(self, request: RebootRequest) -> Receipt:
        command = self.build_command(request)

        if request.deferred:
            watcher = self.build_watcher(command, current_pid())
            pid, error = spawn_detached(watcher)
            if error:
                return Receipt.failure(
                    adapter=self.name,
                    resource=request.resource,
                    error=error,
                    metadata={"command": command},
                )
            logger.info("Reboot deferred until run exits (watcher pid %s)", pid)
            return Receipt.success(
                adapter=self.name,
                resource=request.resource,
                output=f"Reboot deferred until pid {current_pid()} exits",
                metadata={"command": command, "watcher_pid": pid, "deferred": True},
            )

        result = run_command(command)
        metadata = {"command": command, "return_code": result.returncode}
        if result.ok:
            return Receipt.success(
                adapter=self.name,
                resource=request.resource,
                output=result.stdout,
                duration_ms=result.duration_ms,
                metadata={**metadata, "stderr": result.stderr},
            )
        return Receipt.failure(
            adapter=self.name,
            resource=request.resource,
            error=result.error or result.stderr or f"Command exited with code {result.returncode}",
            duration_ms=result.duration_ms,
            metadata={**metadata, "stdout": result.stdout},
        )
