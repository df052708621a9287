"""
POSIX reboot adapter — ``shutdown -r``.

``shutdown`` schedules in whole minutes, so the timeout is rounded up;
a zero timeout reboots ``now``.
"""

from __future__ import annotations

import math
import shlex

from rebootctl.adapters.reboot.shutdown import ShutdownCommandAdapter
from rebootctl.core.models.action import RebootRequest


class PosixRebootAdapter(ShutdownCommandAdapter):
    """Reboot Linux and other POSIX hosts."""

    executable = "shutdown"

    @property
    def name(self) -> str:
        return "posix"

    def build_command(self, request: RebootRequest) -> list[str]:
        if request.timeout_seconds == 0:
            when = "now"
        else:
            when = f"+{math.ceil(request.timeout_seconds / 60)}"
        return [self.executable, "-r", when, request.message]

    def build_watcher(self, command: list[str], pid: int) -> list[str]:
        script = (
            f"while kill -0 {pid} 2>/dev/null; do sleep 1; done; "
            f"exec {shlex.join(command)}"
        )
        return ["/bin/sh", "-c", script]
