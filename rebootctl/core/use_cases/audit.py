"""
Audit use case — read back the decisions recorded by earlier runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from rebootctl.core.config.loader import ConfigError, find_manifest_file, load_manifest
from rebootctl.core.models.manifest import Settings
from rebootctl.core.persistence.audit import AuditEntry, AuditWriter


@dataclass
class AuditResult:
    """Recent audit entries, oldest first."""

    path: Path | None = None
    entries: list[AuditEntry] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {
            "path": str(self.path) if self.path else None,
            "total": len(self.entries),
            "entries": [e.model_dump(mode="json") for e in self.entries],
        }
        if self.error:
            result["error"] = self.error
        return result


def show_audit(
    config_path: Path | None = None,
    state_dir: Path | None = None,
    last: int = 20,
    resource: str | None = None,
) -> AuditResult:
    """The last ``last`` audit entries, optionally for one resource.

    The audit log lives in the same state directory as the retry ledger,
    so the manifest's ``settings.state_dir`` is honoured when one is found.
    """
    result = AuditResult()
    settings = Settings()
    if config_path is None:
        config_path = find_manifest_file()
    if config_path is not None:
        try:
            settings = load_manifest(config_path).settings
        except ConfigError as e:
            result.error = str(e)
            return result

    writer = AuditWriter(state_dir=settings.resolve_state_dir(state_dir))
    result.path = writer.path
    if resource is None:
        result.entries = writer.read_recent(last)
    else:
        result.entries = [e for e in writer.read_all() if e.resource == resource][-last:]
    return result
