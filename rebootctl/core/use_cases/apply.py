"""
Apply use case — converge every reboot resource in a manifest.

This is the minimal host around the decision engine: it loads the
manifest, builds one RunContext for the run, and walks the resources in
order. Each resource gets its sync check, then the refresh signal if the
caller named it. Declarations that failed validation are reported and
audited but never stop the valid resources from converging; they do make
the run exit non-zero. The run stops early when:

    - an immediate reboot was scheduled (the host is going down)
    - the executor failed or the retry ledger is unusable
    - the ledger denied a reboot and settings.on_rate_limit is 'abort'
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from rebootctl.adapters.mock import MockPendingProbe
from rebootctl.adapters.registry import AdapterRegistry
from rebootctl.core.config.loader import ConfigError, load_manifest
from rebootctl.core.context import RunContext
from rebootctl.core.engine.decision import Clock, RebootDecisionEngine, utc_now
from rebootctl.core.errors import (
    ExecutorError,
    RateLimitExceeded,
    StorageError,
)
from rebootctl.core.models.manifest import Manifest
from rebootctl.core.models.outcome import RebootOutcome
from rebootctl.core.models.policy import ReasonCode
from rebootctl.core.persistence.audit import AuditEntry, AuditWriter
from rebootctl.core.persistence.ledger_file import DEFAULT_LEDGER_FILE
from rebootctl.core.reliability.retry_ledger import RetryLedger

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Result of applying a manifest."""

    run_id: str = ""
    state_dir: Path | None = None
    outcomes: list[RebootOutcome] = field(default_factory=list)
    not_applied: list[str] = field(default_factory=list)
    halted: bool = False
    rate_limited: bool = False
    invalid: list[str] = field(default_factory=list)
    run: dict = field(default_factory=dict)
    error: str | None = None

    @property
    def scheduled(self) -> RebootOutcome | None:
        for outcome in self.outcomes:
            if outcome.scheduled:
                return outcome
        return None

    @property
    def exit_code(self) -> int:
        if self.rate_limited:
            return 2
        if self.error or self.invalid:
            return 1
        return 0

    def to_dict(self) -> dict:
        result: dict = {
            "run_id": self.run_id,
            "state_dir": str(self.state_dir) if self.state_dir else None,
            "halted": self.halted,
            "rate_limited": self.rate_limited,
            "not_applied": self.not_applied,
            "invalid": self.invalid,
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
        }
        if self.run:
            result["run"] = self.run
        if self.error:
            result["error"] = self.error
        return result


def build_registry(mock_mode: bool = False, mock_reasons: Iterable[ReasonCode] = ()) -> AdapterRegistry:
    """Adapters for this host, or mocks that report ``mock_reasons`` pending."""
    if mock_mode:
        return AdapterRegistry.mock(MockPendingProbe(pending=mock_reasons))
    return AdapterRegistry.for_platform()


def apply_manifest(
    config_path: Path | None = None,
    refresh: Iterable[str] = (),
    state_dir: Path | None = None,
    dry_run: bool = False,
    mock_mode: bool = False,
    mock_reasons: Iterable[ReasonCode] = (),
    registry: AdapterRegistry | None = None,
    manifest: Manifest | None = None,
    clock: Clock = utc_now,
) -> ApplyResult:
    """Run every reboot resource of a manifest once.

    Args:
        config_path: Optional explicit path to reboot.yml.
        refresh: Names of resources that received a refresh event.
        state_dir: Override for the ledger/audit directory.
        dry_run: Decide but record nothing and reboot nothing.
        mock_mode: Use mock adapters.
        mock_reasons: Pending reasons the mock probe reports.
        registry: Optional pre-configured adapter registry.
        manifest: Optional already-loaded manifest (skips loading).
        clock: Source of "now" for the retry ledger.

    Returns:
        ApplyResult with one outcome per trigger.
    """
    result = ApplyResult()

    # ── Load manifest ────────────────────────────────────────────
    if manifest is None:
        try:
            manifest = load_manifest(config_path)
        except ConfigError as e:
            result.error = str(e)
            return result

    result.invalid = [d.error for d in manifest.invalid]

    # A refresh aimed at an invalid declaration is reported with it, not rejected.
    refreshed = set(refresh)
    unknown = sorted(refreshed - set(manifest.names()) - set(manifest.invalid_names()))
    if unknown:
        result.error = f"Unknown reboot resource(s) to refresh: {', '.join(unknown)}"
        return result

    # ── Shared run state ─────────────────────────────────────────
    result.state_dir = manifest.settings.resolve_state_dir(state_dir)
    ledger = RetryLedger(result.state_dir / DEFAULT_LEDGER_FILE)
    audit = AuditWriter(state_dir=result.state_dir)

    if registry is None:
        registry = build_registry(mock_mode=mock_mode, mock_reasons=mock_reasons)

    run = RunContext()
    result.run_id = run.run_id
    logger.info("Run %s: %d reboot resources", run.run_id, len(manifest.reboots))

    for declaration in manifest.invalid:
        audit.write(
            AuditEntry(
                run_id=run.run_id,
                resource=declaration.label,
                status="invalid",
                dry_run=dry_run,
                error=declaration.error,
            )
        )
        logger.error("%s", declaration.error)

    def _record(outcome: RebootOutcome) -> None:
        result.outcomes.append(outcome)
        audit.write(AuditEntry.from_outcome(outcome, run_id=run.run_id, dry_run=dry_run))

    # ── Converge ─────────────────────────────────────────────────
    for index, policy in enumerate(manifest.reboots):
        if run.halt_requested:
            result.halted = True
            result.not_applied = [p.name for p in manifest.reboots[index:]]
            logger.info("Reboot scheduled by %s; not applying %s", run.scheduled_by, result.not_applied)
            break

        engine = RebootDecisionEngine(
            policy,
            run,
            registry,
            ledger=ledger,
            clock=clock,
            dry_run=dry_run,
        )

        try:
            outcome = engine.on_sync_check()
            _record(outcome)
            if outcome.denied:
                if manifest.settings.on_rate_limit == "abort":
                    raise RateLimitExceeded(outcome)
                logger.warning("Reboot[%s]: rate limited; continuing run", policy.name)

            if policy.name in refreshed:
                _record(engine.on_refresh_signal())

        except RateLimitExceeded as e:
            result.rate_limited = True
            result.error = str(e)
            result.not_applied = [p.name for p in manifest.reboots[index + 1:]]
            logger.error("%s; aborting run", e)
            break
        except (ExecutorError, StorageError) as e:
            result.error = str(e)
            result.not_applied = [p.name for p in manifest.reboots[index + 1:]]
            audit.write(
                AuditEntry(
                    run_id=run.run_id,
                    resource=policy.name,
                    status="failed",
                    dry_run=dry_run,
                    error=str(e),
                )
            )
            logger.error("%s", e)
            break

    if run.halt_requested and not result.halted and not result.error:
        result.halted = True

    result.run = run.to_dict()
    return result
