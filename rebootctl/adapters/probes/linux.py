"""
Linux pending-reboot probe.

Two markers are understood:

    reboot_required    → /run/reboot-required exists (Debian/Ubuntu
                         update-notifier and unattended-upgrades)
    package_installer  → ``needs-restarting -r`` exits 1 (yum-utils /
                         dnf-utils on RHEL-family hosts)

``package_installer`` is only supported when ``needs-restarting`` is on
PATH.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from rebootctl.adapters.base import PendingProbe
from rebootctl.adapters.shell.command import run_command
from rebootctl.core.models.policy import ReasonCode

logger = logging.getLogger(__name__)

REBOOT_REQUIRED_MARKERS = (
    Path("/run/reboot-required"),
    Path("/var/run/reboot-required"),
)

NEEDS_RESTARTING = "needs-restarting"


class LinuxPendingProbe(PendingProbe):
    """Pending-reboot markers on Linux."""

    def __init__(
        self,
        markers: tuple[Path, ...] = REBOOT_REQUIRED_MARKERS,
        needs_restarting: str = NEEDS_RESTARTING,
    ):
        self._markers = markers
        self._needs_restarting = needs_restarting

    @property
    def name(self) -> str:
        return "linux"

    def supported_reasons(self) -> frozenset[ReasonCode]:
        reasons = {ReasonCode.REBOOT_REQUIRED}
        if shutil.which(self._needs_restarting):
            reasons.add(ReasonCode.PACKAGE_INSTALLER)
        return frozenset(reasons)

    def probe(self, code: ReasonCode) -> bool:
        if code == ReasonCode.REBOOT_REQUIRED:
            return self._marker_present()
        if code == ReasonCode.PACKAGE_INSTALLER:
            return self._packages_need_reboot()
        return False

    def _marker_present(self) -> bool:
        for marker in self._markers:
            try:
                if marker.exists():
                    logger.debug("Reboot marker present: %s", marker)
                    return True
            except OSError:
                continue
        return False

    def _packages_need_reboot(self) -> bool:
        # Exit 1 means a reboot is required, 0 means it is not.
        result = run_command([self._needs_restarting, "-r"], timeout=120)
        if result.error:
            logger.debug("needs-restarting unavailable: %s", result.error)
            return False
        return result.returncode == 1
