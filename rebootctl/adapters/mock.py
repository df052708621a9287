"""
Mock adapters — test doubles for rebooting and pending-reboot probes.

Used in mock mode (``--mock``) and throughout the tests: nothing is ever
actually rebooted, and "pending" is whatever the mock is told.
"""

from __future__ import annotations

from collections.abc import Iterable

from rebootctl.adapters.base import PendingProbe, RebootAdapter
from rebootctl.core.models.action import Receipt, RebootRequest
from rebootctl.core.models.policy import ALL_REASONS, ReasonCode


class MockRebootAdapter(RebootAdapter):
    """Records reboot requests instead of issuing them.

    Succeeds by default; ``set_failure`` makes every later call fail.
    """

    def __init__(self, adapter_name: str = "mock", available: bool = True):
        self._name = adapter_name
        self._available = available
        self._failure: str | None = None
        self._call_log: list[RebootRequest] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[RebootRequest]:
        """All requests this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def is_available(self) -> bool:
        return self._available

    def set_failure(self, error: str = "Mock failure") -> None:
        self._failure = error

    def validate(self, request: RebootRequest) -> tuple[bool, str]:
        return True, ""

    def execute(self, request: RebootRequest) -> Receipt:
        self._call_log.append(request)

        if self._failure is not None:
            return Receipt.failure(adapter=self._name, resource=request.resource, error=self._failure)

        return Receipt.success(
            adapter=self._name,
            resource=request.resource,
            output=f"[mock] reboot in {request.timeout_seconds}s ({request.apply_timing.value})",
            metadata={"mock": True},
        )

    def reset(self) -> None:
        self._call_log.clear()
        self._failure = None


class MockPendingProbe(PendingProbe):
    """Reports a fixed set of pending reasons.

    Args:
        pending: Reasons that probe as pending.
        supported: Reasons this "platform" supports. Default: all.
        failing: Reasons whose probe raises RuntimeError.
    """

    def __init__(
        self,
        pending: Iterable[ReasonCode] = (),
        supported: Iterable[ReasonCode] | None = None,
        failing: Iterable[ReasonCode] = (),
    ):
        self._pending = frozenset(pending)
        self._supported = frozenset(ALL_REASONS if supported is None else supported)
        self._failing = frozenset(failing)
        self.probed: list[ReasonCode] = []

    @property
    def name(self) -> str:
        return "mock"

    def supported_reasons(self) -> frozenset[ReasonCode]:
        return self._supported

    def probe(self, code: ReasonCode) -> bool:
        self.probed.append(code)
        if code in self._failing:
            raise RuntimeError(f"[mock] probe failure for {code.value}")
        return code in self._pending
