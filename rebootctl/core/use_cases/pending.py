"""
Pending use case — report whether this host has a reboot pending.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from rebootctl.adapters.registry import AdapterRegistry
from rebootctl.core.engine.pending import PendingReasonEvaluator, PendingResult
from rebootctl.core.models.policy import ALL_REASONS, ReasonCode
from rebootctl.core.use_cases.apply import build_registry


@dataclass
class PendingCheckResult:
    """Result of a pending-reboot check."""

    probe: str = ""
    supported: list[ReasonCode] = field(default_factory=list)
    pending: PendingResult = field(default_factory=PendingResult)
    adapters: dict[str, dict] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "probe": self.probe,
            "supported_reasons": [r.value for r in self.supported],
            **self.pending.to_dict(),
            "adapters": self.adapters,
        }


def check_pending(
    include: Iterable[ReasonCode] = (),
    exclude: Iterable[ReasonCode] = (),
    mock_mode: bool = False,
    mock_reasons: Iterable[ReasonCode] = (),
    registry: AdapterRegistry | None = None,
) -> PendingCheckResult:
    """Probe for pending reboots, filtered like a ``when: pending`` resource.

    Args:
        include: Only check these reasons (empty = all supported).
        exclude: Never check these reasons.
        mock_mode: Use a mock probe.
        mock_reasons: Reasons the mock probe reports as pending.
        registry: Optional pre-configured adapter registry.
    """
    if registry is None:
        registry = build_registry(mock_mode=mock_mode, mock_reasons=mock_reasons)

    probe = registry.probe
    supported = probe.supported_reasons()
    evaluator = PendingReasonEvaluator(probe)

    return PendingCheckResult(
        probe=probe.name,
        supported=[r for r in ALL_REASONS if r in supported],
        pending=evaluator.evaluate(include=include, exclude=exclude),
        adapters=registry.adapter_status(),
    )
