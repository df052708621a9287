"""
Windows pending-reboot probe.

Most reasons are registry markers under HKEY_LOCAL_MACHINE:

    component_based_servicing       ...\\Component Based Servicing\\RebootPending (key)
    windows_auto_update             ...\\WindowsUpdate\\Auto Update\\RebootRequired (key)
    pending_file_rename_operations  Session Manager\\PendingFileRenameOperations (non-empty value)
    package_installer               SOFTWARE\\Microsoft\\Updates\\UpdateExeVolatile (non-zero value)
    pending_computer_rename         ActiveComputerName differs from ComputerName

The DSC Local Configuration Manager and the ConfigMgr (CCM) client are
asked through PowerShell. ``reboot_required`` is the union of the registry
markers.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from rebootctl.adapters.base import PendingProbe
from rebootctl.adapters.shell.command import run_command
from rebootctl.core.models.policy import ALL_REASONS, ReasonCode

logger = logging.getLogger(__name__)

CBS_REBOOT_PENDING = r"SOFTWARE\Microsoft\Windows\CurrentVersion\Component Based Servicing\RebootPending"
WAU_REBOOT_REQUIRED = r"SOFTWARE\Microsoft\Windows\CurrentVersion\WindowsUpdate\Auto Update\RebootRequired"
SESSION_MANAGER = r"SYSTEM\CurrentControlSet\Control\Session Manager"
UPDATES = r"SOFTWARE\Microsoft\Updates"
ACTIVE_COMPUTER_NAME = r"SYSTEM\CurrentControlSet\Control\ComputerName\ActiveComputerName"
COMPUTER_NAME = r"SYSTEM\CurrentControlSet\Control\ComputerName\ComputerName"

DSC_QUERY = "(Get-DscLocalConfigurationManager).LCMState"
CCM_QUERY = (
    "(Invoke-CimMethod -Namespace root/ccm/ClientSDK -ClassName CCM_ClientUtilities "
    "-MethodName DetermineIfRebootPending).RebootPending"
)

_REGISTRY_REASONS = (
    ReasonCode.COMPONENT_BASED_SERVICING,
    ReasonCode.WINDOWS_AUTO_UPDATE,
    ReasonCode.PENDING_FILE_RENAME_OPERATIONS,
    ReasonCode.PACKAGE_INSTALLER,
    ReasonCode.PENDING_COMPUTER_RENAME,
)


class RegistryReader(Protocol):
    def key_exists(self, path: str) -> bool: ...

    def read_value(self, path: str, name: str) -> Any: ...


class WinRegReader:
    """HKEY_LOCAL_MACHINE reader backed by ``winreg``."""

    def key_exists(self, path: str) -> bool:
        import winreg

        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, path):
                return True
        except OSError:
            return False

    def read_value(self, path: str, name: str) -> Any:
        import winreg

        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, path) as key:
                value, _kind = winreg.QueryValueEx(key, name)
                return value
        except OSError:
            return None


def _powershell(command: str) -> str | None:
    result = run_command(
        ["powershell.exe", "-NoProfile", "-NonInteractive", "-Command", command],
        timeout=120,
    )
    if not result.ok:
        logger.debug("PowerShell query failed (%s): %s", command, result.error or result.stderr)
        return None
    return result.stdout.strip()


class WindowsPendingProbe(PendingProbe):
    """Pending-reboot markers on Windows."""

    def __init__(self, reader: RegistryReader | None = None, powershell=_powershell):
        self._reader = reader or WinRegReader()
        self._powershell = powershell

    @property
    def name(self) -> str:
        return "windows"

    def supported_reasons(self) -> frozenset[ReasonCode]:
        return frozenset(ALL_REASONS)

    def probe(self, code: ReasonCode) -> bool:
        checks = {
            ReasonCode.REBOOT_REQUIRED: self._any_registry_reason,
            ReasonCode.COMPONENT_BASED_SERVICING: lambda: self._reader.key_exists(CBS_REBOOT_PENDING),
            ReasonCode.WINDOWS_AUTO_UPDATE: lambda: self._reader.key_exists(WAU_REBOOT_REQUIRED),
            ReasonCode.PENDING_FILE_RENAME_OPERATIONS: self._pending_renames,
            ReasonCode.PACKAGE_INSTALLER: self._update_exe_volatile,
            ReasonCode.PENDING_COMPUTER_RENAME: self._computer_renamed,
            ReasonCode.PENDING_DSC_REBOOT: self._dsc_pending,
            ReasonCode.PENDING_CCM_REBOOT: self._ccm_pending,
        }
        return bool(checks[code]())

    def _any_registry_reason(self) -> bool:
        return any(self.probe(code) for code in _REGISTRY_REASONS)

    def _pending_renames(self) -> bool:
        value = self._reader.read_value(SESSION_MANAGER, "PendingFileRenameOperations")
        if not value:
            return False
        # REG_MULTI_SZ: a list of paths, with empty strings as separators.
        if isinstance(value, (list, tuple)):
            return any(v for v in value)
        return True

    def _update_exe_volatile(self) -> bool:
        value = self._reader.read_value(UPDATES, "UpdateExeVolatile")
        try:
            return int(value or 0) != 0
        except (TypeError, ValueError):
            return False

    def _computer_renamed(self) -> bool:
        active = self._reader.read_value(ACTIVE_COMPUTER_NAME, "ComputerName")
        pending = self._reader.read_value(COMPUTER_NAME, "ComputerName")
        if not active or not pending:
            return False
        return str(active).lower() != str(pending).lower()

    def _dsc_pending(self) -> bool:
        return self._powershell(DSC_QUERY) == "PendingReboot"

    def _ccm_pending(self) -> bool:
        return (self._powershell(CCM_QUERY) or "").lower() == "true"
