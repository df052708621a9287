"""
RebootRequest and Receipt models — the executor contract.

The decision engine sends a RebootRequest; the reboot executor returns a
Receipt. Executors never raise: a failed shutdown invocation comes back as
a Receipt with status='failed', and the engine decides what that means.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from rebootctl.core.models.policy import ApplyTiming, RebootPolicy


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class RebootRequest(BaseModel):
    """What the executor needs to issue one reboot."""

    resource: str
    message: str
    timeout_seconds: int = 60
    apply_timing: ApplyTiming = ApplyTiming.IMMEDIATE

    @classmethod
    def from_policy(cls, policy: RebootPolicy) -> RebootRequest:
        return cls(
            resource=policy.name,
            message=policy.message,
            timeout_seconds=policy.timeout_seconds,
            apply_timing=policy.apply_timing,
        )

    @property
    def deferred(self) -> bool:
        return self.apply_timing == ApplyTiming.DEFERRED


class Receipt(BaseModel):
    """Result of a reboot executor invocation."""

    adapter: str
    resource: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(cls, adapter: str, resource: str, output: str = "", **kwargs: Any) -> Receipt:
        """Create a success receipt."""
        return cls(adapter=adapter, resource=resource, status="ok", output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, resource: str, error: str, **kwargs: Any) -> Receipt:
        """Create a failure receipt."""
        return cls(adapter=adapter, resource=resource, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, adapter: str, resource: str, reason: str = "", **kwargs: Any) -> Receipt:
        """Create a skip receipt."""
        return cls(adapter=adapter, resource=resource, status="skipped", output=reason, **kwargs)
