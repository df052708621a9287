"""
Audit ledger — append-only log of reboot decisions.

Every outcome of every trigger is written as one JSON line to
``<state_dir>/audit.ndjson``. Unlike the retry ledger, the audit log is
informational: failing to write it is logged, never fatal.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from rebootctl.core.models.outcome import RebootOutcome

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_FILE = "audit.ndjson"


class AuditEntry(BaseModel):
    """A single audit log entry."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    run_id: str = ""
    resource: str = ""
    trigger: str = ""              # refresh, sync
    status: str = ""               # scheduled, already_scheduled, skipped, in_sync, denied, failed, invalid
    matched_reasons: list[str] = Field(default_factory=list)
    message: str = ""
    dry_run: bool = False
    error: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_outcome(cls, outcome: RebootOutcome, run_id: str = "", dry_run: bool = False) -> AuditEntry:
        context: dict[str, Any] = {}
        if outcome.ledger:
            context["ledger"] = outcome.ledger
        if outcome.receipt:
            context["adapter"] = outcome.receipt.adapter
            context["receipt_status"] = outcome.receipt.status
        return cls(
            run_id=run_id,
            resource=outcome.resource,
            trigger=outcome.trigger,
            status=outcome.status,
            matched_reasons=[r.value for r in outcome.matched_reasons],
            message=outcome.message,
            dry_run=dry_run,
            context=context,
        )


class AuditWriter:
    """Append-only audit ledger writer."""

    def __init__(self, path: Path | None = None, state_dir: Path | None = None):
        if path is not None:
            self._path = path
        elif state_dir is not None:
            self._path = state_dir / DEFAULT_AUDIT_FILE
        else:
            self._path = Path(DEFAULT_AUDIT_FILE)

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append an audit entry."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Audit entry written: %s/%s", entry.resource, entry.status)
        except OSError as e:
            logger.error("Failed to write audit entry: %s", e)

    def read_all(self) -> list[AuditEntry]:
        """Read all entries, oldest first. Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate(json.loads(line)))
                    except ValueError as e:
                        logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read audit ledger: %s", e)

        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        return self.read_all()[-n:]
