"""
Adapter registry — platform selection and reboot dispatch.

The registry is picked once at startup for the current platform (or
swapped for mocks) and then handed to every decision engine. It owns one
reboot adapter and one pending probe. The engine never talks to the
reboot adapter directly, only through ``execute_reboot``.
"""

from __future__ import annotations

import logging
import sys
import time

from rebootctl.adapters.base import PendingProbe, RebootAdapter
from rebootctl.core.models.action import Receipt, RebootRequest

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Holds the platform's reboot adapter and pending probe."""

    def __init__(
        self,
        reboot_adapter: RebootAdapter,
        probe: PendingProbe,
        mock_mode: bool = False,
    ):
        self._reboot_adapter = reboot_adapter
        self._probe = probe
        self._mock_mode = mock_mode

    @classmethod
    def for_platform(cls, platform: str | None = None) -> AdapterRegistry:
        """Build the registry for ``platform`` (default: ``sys.platform``)."""
        platform = platform or sys.platform

        if platform == "win32":
            from rebootctl.adapters.probes.windows import WindowsPendingProbe
            from rebootctl.adapters.reboot.windows import WindowsRebootAdapter

            registry = cls(WindowsRebootAdapter(), WindowsPendingProbe())
        elif platform.startswith("linux"):
            from rebootctl.adapters.probes.linux import LinuxPendingProbe
            from rebootctl.adapters.reboot.posix import PosixRebootAdapter

            registry = cls(PosixRebootAdapter(), LinuxPendingProbe())
        else:
            from rebootctl.adapters.probes.null import NullPendingProbe
            from rebootctl.adapters.reboot.posix import PosixRebootAdapter

            registry = cls(PosixRebootAdapter(), NullPendingProbe())

        logger.debug("Adapters for %s: %r, %r", platform, registry.reboot_adapter, registry.probe)
        return registry

    @classmethod
    def mock(cls, probe: PendingProbe | None = None) -> AdapterRegistry:
        """Registry that never reboots anything."""
        from rebootctl.adapters.mock import MockPendingProbe, MockRebootAdapter

        return cls(MockRebootAdapter(), probe or MockPendingProbe(), mock_mode=True)

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    @property
    def reboot_adapter(self) -> RebootAdapter:
        return self._reboot_adapter

    @property
    def probe(self) -> PendingProbe:
        return self._probe

    def adapter_status(self) -> dict[str, dict]:
        """Availability of the selected adapters."""
        try:
            available = self._reboot_adapter.is_available()
        except Exception:
            available = False
        return {
            "reboot": {
                "name": self._reboot_adapter.name,
                "available": available,
                "type": self._reboot_adapter.__class__.__name__,
            },
            "probe": {
                "name": self._probe.name,
                "supported": sorted(r.value for r in self._probe.supported_reasons()),
                "type": self._probe.__class__.__name__,
            },
        }

    def execute_reboot(self, request: RebootRequest, dry_run: bool = False) -> Receipt:
        """Validate and issue a reboot. Never raises.

        Args:
            request: What to reboot with.
            dry_run: Validate only; return a skip receipt.
        """
        start_time = time.monotonic()
        adapter = self._reboot_adapter

        try:
            is_valid, error_msg = adapter.validate(request)
        except Exception as e:
            return Receipt.failure(adapter=adapter.name, resource=request.resource, error=f"Validation error: {e}")
        if not is_valid:
            return Receipt.failure(
                adapter=adapter.name,
                resource=request.resource,
                error=f"Validation failed: {error_msg}",
            )

        if dry_run:
            return Receipt.skip(
                adapter=adapter.name,
                resource=request.resource,
                reason=f"[dry-run] Would reboot via {adapter.name}",
                metadata={"dry_run": True},
            )

        try:
            receipt = adapter.execute(request)
        except Exception as e:
            logger.error("Adapter %s raised during execution: %s", adapter.name, e)
            receipt = Receipt.failure(adapter=adapter.name, resource=request.resource, error=f"Unexpected error: {e}")

        receipt.duration_ms = int((time.monotonic() - start_time) * 1000)
        return receipt
