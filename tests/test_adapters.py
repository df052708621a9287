"""
Tests for adapters — reboot executors, pending probes, registry dispatch.

No test here runs a real shutdown command: subprocess helpers are
monkeypatched at the module that imported them.
"""

import base64
import subprocess
from pathlib import Path

import pytest

from rebootctl.adapters.mock import MockPendingProbe, MockRebootAdapter
from rebootctl.adapters.probes.linux import LinuxPendingProbe
from rebootctl.adapters.probes.null import NullPendingProbe
from rebootctl.adapters.probes.windows import (
    ACTIVE_COMPUTER_NAME,
    CBS_REBOOT_PENDING,
    COMPUTER_NAME,
    SESSION_MANAGER,
    UPDATES,
    WAU_REBOOT_REQUIRED,
    WindowsPendingProbe,
)
from rebootctl.adapters.reboot import shutdown as shutdown_mod
from rebootctl.adapters.reboot.posix import PosixRebootAdapter
from rebootctl.adapters.reboot.windows import WindowsRebootAdapter
from rebootctl.adapters.registry import AdapterRegistry
from rebootctl.adapters.shell.command import CommandResult, run_command
from rebootctl.core.models.action import RebootRequest
from rebootctl.core.models.policy import ALL_REASONS, ApplyTiming, ReasonCode


def _request(**overrides) -> RebootRequest:
    data = {"resource": "after", "message": "Rebooting the computer", "timeout_seconds": 60}
    data.update(overrides)
    return RebootRequest(**data)


# ── Shell helpers ────────────────────────────────────────────────────


class TestRunCommand:
    def test_missing_executable(self):
        result = run_command(["definitely-not-a-real-binary-xyz"])
        assert not result.ok
        assert "execution error" in result.error

    def test_timeout(self, monkeypatch):
        def fake_run(*args, **kwargs):
            raise subprocess.TimeoutExpired(cmd=args[0], timeout=1)

        monkeypatch.setattr(subprocess, "run", fake_run)
        result = run_command(["sleep", "10"], timeout=1)
        assert result.error == "Command timed out after 1s"

    def test_nonzero_exit_is_not_ok(self):
        assert not CommandResult(argv=["x"], returncode=1).ok
        assert CommandResult(argv=["x"], returncode=0).ok


# ── POSIX executor ──────────────────────────────────────────────────


class TestPosixCommand:
    def test_minutes_rounded_up(self):
        cmd = PosixRebootAdapter().build_command(_request(timeout_seconds=90))
        assert cmd == ["shutdown", "-r", "+2", "Rebooting the computer"]

    def test_exact_minute(self):
        cmd = PosixRebootAdapter().build_command(_request(timeout_seconds=60))
        assert cmd[2] == "+1"

    def test_zero_is_now(self):
        cmd = PosixRebootAdapter().build_command(_request(timeout_seconds=0))
        assert cmd[2] == "now"

    def test_watcher_waits_for_pid(self):
        adapter = PosixRebootAdapter()
        watcher = adapter.build_watcher(["shutdown", "-r", "+1", "it's time"], pid=4242)
        assert watcher[:2] == ["/bin/sh", "-c"]
        assert "kill -0 4242" in watcher[2]
        assert "'it'\"'\"'s time'" in watcher[2]


class TestShutdownExecute:
    @pytest.fixture
    def adapter(self, monkeypatch):
        monkeypatch.setattr(shutdown_mod.shutil, "which", lambda exe: f"/sbin/{exe}")
        return PosixRebootAdapter()

    def test_validate_ok(self, adapter):
        assert adapter.validate(_request()) == (True, "")

    def test_validate_missing_executable(self, monkeypatch):
        monkeypatch.setattr(shutdown_mod.shutil, "which", lambda exe: None)
        ok, error = PosixRebootAdapter().validate(_request())
        assert not ok
        assert "not found" in error

    def test_validate_negative_timeout(self, adapter):
        ok, _ = adapter.validate(_request(timeout_seconds=-1))
        assert not ok

    def test_immediate_success(self, adapter, monkeypatch):
        calls = []

        def fake_run(argv, timeout=60):
            calls.append(argv)
            return CommandResult(argv=argv, returncode=0, stdout="Shutdown scheduled")

        monkeypatch.setattr(shutdown_mod, "run_command", fake_run)
        receipt = adapter.execute(_request())

        assert receipt.ok
        assert receipt.output == "Shutdown scheduled"
        assert calls == [["shutdown", "-r", "+1", "Rebooting the computer"]]

    def test_immediate_failure(self, adapter, monkeypatch):
        monkeypatch.setattr(
            shutdown_mod,
            "run_command",
            lambda argv, timeout=60: CommandResult(argv=argv, returncode=1, stderr="must be root"),
        )
        receipt = adapter.execute(_request())
        assert receipt.failed
        assert receipt.error == "must be root"
        assert receipt.metadata["return_code"] == 1

    def test_deferred_spawns_watcher(self, adapter, monkeypatch):
        spawned = []

        def fake_spawn(argv):
            spawned.append(argv)
            return 999, None

        def no_run(*args, **kwargs):
            raise AssertionError("deferred reboot must not run shutdown directly")

        monkeypatch.setattr(shutdown_mod, "spawn_detached", fake_spawn)
        monkeypatch.setattr(shutdown_mod, "run_command", no_run)
        monkeypatch.setattr(shutdown_mod, "current_pid", lambda: 1234)

        receipt = adapter.execute(_request(apply_timing=ApplyTiming.DEFERRED))

        assert receipt.ok
        assert receipt.metadata["watcher_pid"] == 999
        assert receipt.metadata["deferred"] is True
        assert "kill -0 1234" in spawned[0][2]

    def test_deferred_spawn_failure(self, adapter, monkeypatch):
        monkeypatch.setattr(shutdown_mod, "spawn_detached", lambda argv: (None, "Cannot start watcher: x"))
        receipt = adapter.execute(_request(apply_timing=ApplyTiming.DEFERRED))
        assert receipt.failed
        assert "watcher" in receipt.error


# ── Windows executor ────────────────────────────────────────────────


class TestWindowsCommand:
    def test_command(self):
        cmd = WindowsRebootAdapter().build_command(_request(timeout_seconds=0, message="bye"))
        assert cmd == ["shutdown.exe", "/r", "/t", "0", "/d", "p:4:1", "/c", "bye"]

    def test_timeout_in_seconds(self):
        cmd = WindowsRebootAdapter().build_command(_request(timeout_seconds=90))
        assert cmd[3] == "90"

    def test_watcher_quotes_message(self):
        adapter = WindowsRebootAdapter()
        cmd = adapter.build_command(_request(message="it's time"))
        watcher = adapter.build_watcher(cmd, pid=77)
        assert watcher[0] == "powershell.exe"
        assert watcher[-2] == "-EncodedCommand"
        script = base64.b64decode(watcher[-1]).decode("utf-16-le")
        assert script == adapter.watcher_script(cmd, pid=77)
        assert script.startswith("Wait-Process -Id 77 ")
        assert "'it''s time'" in script

    def test_watcher_message_never_reaches_cmd(self):
        adapter = WindowsRebootAdapter()
        message = 'maint&calc.exe "quoted" %PATH% $env:TEMP'
        cmd = adapter.build_command(_request(timeout_seconds=60, message=message))
        script = adapter.watcher_script(cmd, pid=5)
        assert "cmd.exe" not in script
        assert script.endswith(
            "& 'shutdown.exe' '/r' '/t' '60' '/d' 'p:4:1' '/c' "
            "'maint&calc.exe \"quoted\" %PATH% $env:TEMP'"
        )


# ── Linux probe ─────────────────────────────────────────────────────


class TestLinuxProbe:
    def test_marker_present(self, tmp_path: Path):
        marker = tmp_path / "reboot-required"
        marker.write_text("*** System restart required ***\n")
        probe = LinuxPendingProbe(markers=(tmp_path / "missing", marker))
        assert probe.probe(ReasonCode.REBOOT_REQUIRED)

    def test_marker_absent(self, tmp_path: Path):
        probe = LinuxPendingProbe(markers=(tmp_path / "missing",))
        assert not probe.probe(ReasonCode.REBOOT_REQUIRED)

    def test_unsupported_reason_is_false(self, tmp_path: Path):
        probe = LinuxPendingProbe(markers=(tmp_path / "missing",))
        assert not probe.probe(ReasonCode.PENDING_DSC_REBOOT)

    def test_supported_without_needs_restarting(self, tmp_path: Path):
        probe = LinuxPendingProbe(markers=(), needs_restarting="no-such-tool-xyz")
        assert probe.supported_reasons() == {ReasonCode.REBOOT_REQUIRED}

    def test_supported_with_needs_restarting(self, monkeypatch):
        import rebootctl.adapters.probes.linux as linux_mod

        monkeypatch.setattr(linux_mod.shutil, "which", lambda exe: "/usr/bin/" + exe)
        assert ReasonCode.PACKAGE_INSTALLER in LinuxPendingProbe().supported_reasons()

    @pytest.mark.parametrize("returncode,expected", [(1, True), (0, False)])
    def test_needs_restarting_exit_code(self, monkeypatch, returncode, expected):
        import rebootctl.adapters.probes.linux as linux_mod

        monkeypatch.setattr(
            linux_mod,
            "run_command",
            lambda argv, timeout=60: CommandResult(argv=argv, returncode=returncode),
        )
        assert LinuxPendingProbe().probe(ReasonCode.PACKAGE_INSTALLER) is expected

    def test_needs_restarting_error(self, monkeypatch):
        import rebootctl.adapters.probes.linux as linux_mod

        monkeypatch.setattr(
            linux_mod,
            "run_command",
            lambda argv, timeout=60: CommandResult(argv=argv, error="Command execution error"),
        )
        assert not LinuxPendingProbe().probe(ReasonCode.PACKAGE_INSTALLER)


# ── Windows probe ───────────────────────────────────────────────────


class FakeRegistry:
    def __init__(self, keys=(), values=None):
        self.keys = set(keys)
        self.values = values or {}

    def key_exists(self, path):
        return path in self.keys

    def read_value(self, path, name):
        return self.values.get((path, name))


class TestWindowsProbe:
    def test_supports_everything(self):
        assert WindowsPendingProbe(reader=FakeRegistry()).supported_reasons() == set(ALL_REASONS)

    def test_clean_host(self):
        probe = WindowsPendingProbe(reader=FakeRegistry(), powershell=lambda cmd: None)
        assert not any(probe.probe(code) for code in ALL_REASONS)

    def test_cbs_key(self):
        probe = WindowsPendingProbe(reader=FakeRegistry(keys={CBS_REBOOT_PENDING}))
        assert probe.probe(ReasonCode.COMPONENT_BASED_SERVICING)
        assert probe.probe(ReasonCode.REBOOT_REQUIRED)

    def test_wau_key(self):
        probe = WindowsPendingProbe(reader=FakeRegistry(keys={WAU_REBOOT_REQUIRED}))
        assert probe.probe(ReasonCode.WINDOWS_AUTO_UPDATE)

    @pytest.mark.parametrize(
        "value,expected",
        [
            (["\\??\\C:\\tmp\\a", ""], True),
            (["", ""], False),
            ([], False),
            (None, False),
        ],
    )
    def test_pending_file_renames(self, value, expected):
        reader = FakeRegistry(values={(SESSION_MANAGER, "PendingFileRenameOperations"): value})
        probe = WindowsPendingProbe(reader=reader)
        assert probe.probe(ReasonCode.PENDING_FILE_RENAME_OPERATIONS) is expected

    @pytest.mark.parametrize("value,expected", [(1, True), (0, False), (None, False), ("junk", False)])
    def test_update_exe_volatile(self, value, expected):
        reader = FakeRegistry(values={(UPDATES, "UpdateExeVolatile"): value})
        assert WindowsPendingProbe(reader=reader).probe(ReasonCode.PACKAGE_INSTALLER) is expected

    def test_computer_rename(self):
        reader = FakeRegistry(
            values={
                (ACTIVE_COMPUTER_NAME, "ComputerName"): "OLDNAME",
                (COMPUTER_NAME, "ComputerName"): "NEWNAME",
            }
        )
        probe = WindowsPendingProbe(reader=reader)
        assert probe.probe(ReasonCode.PENDING_COMPUTER_RENAME)
        assert probe.probe(ReasonCode.REBOOT_REQUIRED)

    def test_computer_name_case_insensitive(self):
        reader = FakeRegistry(
            values={
                (ACTIVE_COMPUTER_NAME, "ComputerName"): "host1",
                (COMPUTER_NAME, "ComputerName"): "HOST1",
            }
        )
        assert not WindowsPendingProbe(reader=reader).probe(ReasonCode.PENDING_COMPUTER_RENAME)

    def test_dsc(self):
        probe = WindowsPendingProbe(reader=FakeRegistry(), powershell=lambda cmd: "PendingReboot")
        assert probe.probe(ReasonCode.PENDING_DSC_REBOOT)

    def test_ccm(self):
        probe = WindowsPendingProbe(reader=FakeRegistry(), powershell=lambda cmd: "True")
        assert probe.probe(ReasonCode.PENDING_CCM_REBOOT)

    def test_reboot_required_ignores_powershell(self):
        probe = WindowsPendingProbe(reader=FakeRegistry(), powershell=lambda cmd: "PendingReboot")
        assert not probe.probe(ReasonCode.REBOOT_REQUIRED)


# ── Registry ────────────────────────────────────────────────────────


class TestAdapterRegistry:
    def test_linux(self):
        registry = AdapterRegistry.for_platform("linux")
        assert registry.reboot_adapter.name == "posix"
        assert registry.probe.name == "linux"

    def test_windows(self):
        registry = AdapterRegistry.for_platform("win32")
        assert registry.reboot_adapter.name == "windows"
        assert registry.probe.name == "windows"

    def test_other_posix(self):
        registry = AdapterRegistry.for_platform("darwin")
        assert registry.reboot_adapter.name == "posix"
        assert isinstance(registry.probe, NullPendingProbe)
        assert registry.probe.supported_reasons() == frozenset()

    def test_mock(self):
        registry = AdapterRegistry.mock()
        assert registry.mock_mode
        assert isinstance(registry.reboot_adapter, MockRebootAdapter)

    def test_adapter_status(self, make_registry):
        status = make_registry(supported=[ReasonCode.REBOOT_REQUIRED]).adapter_status()
        assert status["reboot"]["name"] == "mock"
        assert status["reboot"]["available"] is True
        assert status["probe"]["supported"] == ["reboot_required"]

    def test_execute_success(self, make_registry, mock_executor):
        receipt = make_registry().execute_reboot(_request())
        assert receipt.ok
        assert mock_executor.call_count == 1

    def test_dry_run_does_not_execute(self, make_registry, mock_executor):
        receipt = make_registry().execute_reboot(_request(), dry_run=True)
        assert receipt.status == "skipped"
        assert "[dry-run]" in receipt.output
        assert mock_executor.call_count == 0

    def test_failure_receipt(self, make_registry, mock_executor):
        mock_executor.set_failure("shutdown refused")
        receipt = make_registry().execute_reboot(_request())
        assert receipt.failed
        assert receipt.error == "shutdown refused"

    def test_validation_failure(self, monkeypatch):
        monkeypatch.setattr(shutdown_mod.shutil, "which", lambda exe: None)
        registry = AdapterRegistry(PosixRebootAdapter(), NullPendingProbe())
        receipt = registry.execute_reboot(_request())
        assert receipt.failed
        assert receipt.error.startswith("Validation failed")

    def test_adapter_exception_captured(self):
        class Exploding(MockRebootAdapter):
            def execute(self, request):
                raise RuntimeError("kaboom")

        registry = AdapterRegistry(Exploding(), MockPendingProbe())
        receipt = registry.execute_reboot(_request())
        assert receipt.failed
        assert "kaboom" in receipt.error


class TestMockAdapters:
    def test_mock_probe_records_calls(self):
        probe = MockPendingProbe(pending=[ReasonCode.REBOOT_REQUIRED])
        assert probe.probe(ReasonCode.REBOOT_REQUIRED)
        assert not probe.probe(ReasonCode.PACKAGE_INSTALLER)
        assert probe.probed == [ReasonCode.REBOOT_REQUIRED, ReasonCode.PACKAGE_INSTALLER]

    def test_mock_probe_failing(self):
        probe = MockPendingProbe(failing=[ReasonCode.PENDING_CCM_REBOOT])
        with pytest.raises(RuntimeError):
            probe.probe(ReasonCode.PENDING_CCM_REBOOT)

    def test_mock_executor_reset(self, mock_executor):
        mock_executor.set_failure()
        mock_executor.execute(_request())
        mock_executor.reset()
        assert mock_executor.call_count == 0
        assert mock_executor.execute(_request()).ok
