"""
Reboot decision engine — should this resource reboot the host now?

The host drives each reboot resource through two triggers:

    on_refresh_signal()  another resource changed and notified this one
    on_sync_check()      the host checks the ``when`` property

State machine (per run, held in RunContext):

    Idle ──(first trigger that reboots)──> RebootScheduled   (terminal)

Refresh path (when: refreshed):
    already scheduled → already_scheduled
    otherwise         → schedule + executor             (no pending/ledger check)

Sync path (when: pending):
    nothing pending   → in_sync
    already scheduled → already_scheduled
    ledger denies     → denied     (only when retries > 0)
    otherwise         → schedule + executor

A refreshed resource is always in sync; a pending resource ignores
refresh signals.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from rebootctl.adapters.registry import AdapterRegistry
from rebootctl.core.context import RunContext
from rebootctl.core.engine.pending import PendingReasonEvaluator, PendingResult
from rebootctl.core.errors import ExecutorError
from rebootctl.core.models.action import Receipt, RebootRequest
from rebootctl.core.models.outcome import RebootOutcome
from rebootctl.core.models.policy import ApplyTiming, RebootPolicy, TriggerMode
from rebootctl.core.reliability.retry_ledger import LedgerDecision, RetryLedger

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class RebootDecisionEngine:
    """Decides and issues the reboot for one policy.

    Args:
        policy: The resource's declared policy.
        run_context: Shared per-run state (the scheduled flag).
        registry: Platform adapters.
        ledger: Retry ledger. Required when the policy sets retries.
        evaluator: Pending evaluator. Default: one over the registry's probe.
        clock: Source of "now" for the ledger.
        dry_run: Check everything, record nothing, reboot nothing.
    """

    def __init__(
        self,
        policy: RebootPolicy,
        run_context: RunContext,
        registry: AdapterRegistry,
        ledger: RetryLedger | None = None,
        evaluator: PendingReasonEvaluator | None = None,
        clock: Clock = utc_now,
        dry_run: bool = False,
    ):
        if policy.rate_limited and ledger is None:
            raise ValueError(f"Reboot[{policy.name}] sets retries but no retry ledger was given")
        self._policy = policy
        self._run = run_context
        self._registry = registry
        self._ledger = ledger
        self._evaluator = evaluator or PendingReasonEvaluator(registry.probe)
        self._clock = clock
        self._dry_run = dry_run

    @property
    def policy(self) -> RebootPolicy:
        return self._policy

    # ── Refresh trigger ─────────────────────────────────────────

    def on_refresh_signal(self) -> RebootOutcome:
        """Handle a refresh event from another resource."""
        name = self._policy.name

        if self._policy.trigger_mode != TriggerMode.ON_REFRESH:
            logger.debug("Reboot[%s]: Skipping reboot", name)
            return self._outcome("refresh", "skipped", "Skipping reboot")

        if not self._run.try_schedule(name):
            logger.debug("Reboot[%s]: Reboot already scheduled; skipping", name)
            return self._outcome("refresh", "already_scheduled", "Reboot already scheduled; skipping")

        return self._reboot("refresh")

    # ── Sync trigger ────────────────────────────────────────────

    def check_pending(self) -> PendingResult:
        return self._evaluator.evaluate(
            include=self._policy.include_reasons,
            exclude=self._policy.exclude_reasons,
        )

    def is_in_sync(self) -> bool:
        """Whether the ``when`` property needs no correction."""
        if self._policy.trigger_mode == TriggerMode.ON_REFRESH:
            return True
        return not self.check_pending().is_pending

    def on_sync_check(self) -> RebootOutcome:
        """Check the ``when`` property and reboot if a reboot is pending."""
        name = self._policy.name

        if self._policy.trigger_mode == TriggerMode.ON_REFRESH:
            return self._outcome("sync", "in_sync")

        pending = self.check_pending()
        matched = pending.sorted_matches()
        if not pending.is_pending:
            logger.debug("Reboot[%s]: no reboot pending", name)
            return self._outcome("sync", "in_sync", "No reboot pending")

        logger.info(
            "Reboot[%s]: reboot pending (%s)",
            name,
            ", ".join(r.value for r in matched),
        )

        if self._run.rebooting:
            logger.debug("Reboot[%s]: Reboot already scheduled; skipping", name)
            return self._outcome(
                "sync", "already_scheduled", "Reboot already scheduled; skipping", matched=matched
            )

        ledger_decision: LedgerDecision | None = None
        if self._policy.rate_limited:
            assert self._ledger is not None
            ledger_decision = self._ledger.is_reboot_permitted(
                self._clock(),
                max_retries=self._policy.max_retries,
                window_hours=self._policy.retry_window_hours,
                record=not self._dry_run,
            )
            if not ledger_decision.allowed:
                logger.warning(
                    "Reboot[%s]: Reboot skipped because the maximum number of retries "
                    "in the given retries_interval has been exceeded",
                    name,
                )
                return self._outcome(
                    "sync",
                    "denied",
                    f"More than {self._policy.max_retries} reboots in the last "
                    f"{self._policy.retry_window_hours}h",
                    matched=matched,
                    ledger=ledger_decision,
                )

        if not self._run.try_schedule(name):
            return self._outcome(
                "sync", "already_scheduled", "Reboot already scheduled; skipping", matched=matched
            )

        return self._reboot("sync", matched=matched, ledger=ledger_decision)

    # ── Internals ───────────────────────────────────────────────

    def _reboot(
        self,
        trigger: str,
        matched: list | None = None,
        ledger: LedgerDecision | None = None,
    ) -> RebootOutcome:
        policy = self._policy
        logger.info('Reboot[%s]: Scheduling system reboot with message: "%s"', policy.name, policy.message)

        request = RebootRequest.from_policy(policy)
        receipt = self._registry.execute_reboot(request, dry_run=self._dry_run)
        if receipt.failed:
            raise ExecutorError(f"Reboot[{policy.name}]: {receipt.error}", receipt=receipt)

        if policy.apply_timing == ApplyTiming.IMMEDIATE:
            self._run.request_halt()

        return self._outcome(
            trigger,
            "scheduled",
            f'Scheduling system reboot with message: "{policy.message}"',
            matched=matched,
            ledger=ledger,
            receipt=receipt,
        )

    def _outcome(
        self,
        trigger: str,
        status: str,
        message: str = "",
        matched: list | None = None,
        ledger: LedgerDecision | None = None,
        receipt: Receipt | None = None,
    ) -> RebootOutcome:
        return RebootOutcome(
            resource=self._policy.name,
            trigger=trigger,
            status=status,
            message=message,
            matched_reasons=matched or [],
            ledger=ledger.to_dict() if ledger else None,
            receipt=receipt,
        )
