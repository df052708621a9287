"""
Windows reboot adapter — ``shutdown.exe /r``.

The reboot is logged with reason code p:4:1 (planned, application
maintenance). Deferred reboots wait for the run's process with
PowerShell's Wait-Process, then call shutdown.exe directly from PowerShell
with every argument as a single-quoted literal, so the message is never
seen by cmd.exe. The script is passed with -EncodedCommand.
"""

from __future__ import annotations

import base64

from rebootctl.adapters.reboot.shutdown import ShutdownCommandAdapter
from rebootctl.core.models.action import RebootRequest

SHUTDOWN_REASON = "p:4:1"


class WindowsRebootAdapter(ShutdownCommandAdapter):
    """Reboot Windows hosts."""

    executable = "shutdown.exe"

    @property
    def name(self) -> str:
        return "windows"

    def build_command(self, request: RebootRequest) -> list[str]:
        return [
            self.executable,
            "/r",
            "/t", str(request.timeout_seconds),
            "/d", SHUTDOWN_REASON,
            "/c", request.message,
        ]

    def watcher_script(self, command: list[str], pid: int) -> str:
        # Single quotes are doubled inside a PowerShell literal string.
        args = " ".join("'" + arg.replace("'", "''") + "'" for arg in command)
        return f"Wait-Process -Id {pid} -ErrorAction SilentlyContinue; & {args}"

    def build_watcher(self, command: list[str], pid: int) -> list[str]:
        script = self.watcher_script(command, pid)
        encoded = base64.b64encode(script.encode("utf-16-le")).decode("ascii")
        return ["powershell.exe", "-NoProfile", "-NonInteractive", "-EncodedCommand", encoded]
