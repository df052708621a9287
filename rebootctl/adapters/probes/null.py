"""Null probe — for platforms with no known pending-reboot markers."""

from __future__ import annotations

from rebootctl.adapters.base import PendingProbe
from rebootctl.core.models.policy import ReasonCode


class NullPendingProbe(PendingProbe):
    """Supports no reasons; nothing is ever pending."""

    @property
    def name(self) -> str:
        return "null"

    def supported_reasons(self) -> frozenset[ReasonCode]:
        return frozenset()

    def probe(self, code: ReasonCode) -> bool:
        return False
