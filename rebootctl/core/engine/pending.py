"""
Pending-reason evaluator — "is a reboot pending, and why?"

Only the reasons that can matter are probed: the platform's supported
set, narrowed to ``include`` when given, minus ``exclude``. Probes can be
slow (PowerShell, package managers), so excluded reasons are never run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from rebootctl.adapters.base import PendingProbe
from rebootctl.core.models.policy import ALL_REASONS, ReasonCode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingResult:
    """Which reasons were checked and which of them are pending."""

    matched_reasons: frozenset[ReasonCode] = field(default_factory=frozenset)
    checked_reasons: frozenset[ReasonCode] = field(default_factory=frozenset)

    @property
    def is_pending(self) -> bool:
        return bool(self.matched_reasons)

    def sorted_matches(self) -> list[ReasonCode]:
        return [r for r in ALL_REASONS if r in self.matched_reasons]

    def to_dict(self) -> dict:
        return {
            "is_pending": self.is_pending,
            "matched_reasons": [r.value for r in self.sorted_matches()],
            "checked_reasons": [r.value for r in ALL_REASONS if r in self.checked_reasons],
        }


class PendingReasonEvaluator:
    """Runs a platform probe over the requested reasons."""

    def __init__(self, probe: PendingProbe):
        self._probe = probe

    def candidates(
        self,
        include: Iterable[ReasonCode] = (),
        exclude: Iterable[ReasonCode] = (),
    ) -> list[ReasonCode]:
        """Reasons that would be probed, in declaration order."""
        include = frozenset(include)
        exclude = frozenset(exclude)
        selected = set(self._probe.supported_reasons())
        if include:
            selected &= include
        selected -= exclude
        return [r for r in ALL_REASONS if r in selected]

    def evaluate(
        self,
        include: Iterable[ReasonCode] | None = None,
        exclude: Iterable[ReasonCode] | None = None,
    ) -> PendingResult:
        """Probe the candidate reasons.

        A probe that raises counts as not pending.
        """
        checked = self.candidates(include or (), exclude or ())
        matched: set[ReasonCode] = set()

        for code in checked:
            try:
                pending = self._probe.probe(code)
            except Exception as e:
                logger.warning("Pending probe %s failed for %s: %s", self._probe.name, code.value, e)
                continue
            if pending:
                logger.debug("Reboot pending: %s", code.value)
                matched.add(code)

        result = PendingResult(matched_reasons=frozenset(matched), checked_reasons=frozenset(checked))
        logger.debug(
            "Pending check via %s: checked=%s matched=%s",
            self._probe.name,
            [r.value for r in checked],
            [r.value for r in result.sorted_matches()],
        )
        return result
