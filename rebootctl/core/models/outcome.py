"""
RebootOutcome — what one trigger of a reboot resource led to.

Outcomes are returned by the decision engine for both triggers (refresh
signal and sync check). A rate-limit denial is an outcome, not an
exception: the host decides whether it ends the run.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from rebootctl.core.models.action import Receipt
from rebootctl.core.models.policy import ReasonCode

OutcomeStatus = Literal["scheduled", "already_scheduled", "skipped", "in_sync", "denied"]


class RebootOutcome(BaseModel):
    """Result of asking a reboot resource whether it should act."""

    resource: str
    trigger: Literal["refresh", "sync"]
    status: OutcomeStatus
    message: str = ""
    matched_reasons: list[ReasonCode] = Field(default_factory=list)
    receipt: Receipt | None = None
    ledger: dict[str, Any] | None = None
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())

    @property
    def scheduled(self) -> bool:
        return self.status == "scheduled"

    @property
    def denied(self) -> bool:
        return self.status == "denied"
