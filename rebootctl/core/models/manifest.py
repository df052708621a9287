"""
Manifest model — a file of reboot declarations plus run settings.

Loaded from reboot.yml:

    settings:
      state_dir: /var/lib/rebootctl
      on_rate_limit: abort
    reboots:
      - name: after_install
        when: refreshed
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from rebootctl.core.models.policy import RebootPolicy

STATE_DIR_ENV = "REBOOTCTL_STATE_DIR"


def default_state_dir(platform: str | None = None) -> Path:
    """Host-wide persistent state directory."""
    platform = platform or sys.platform
    if platform == "win32":
        base = os.environ.get("ProgramData", r"C:\ProgramData")
        return Path(base) / "rebootctl"
    return Path("/var/lib/rebootctl")


class Settings(BaseModel):
    """Run-wide settings."""

    model_config = ConfigDict(extra="forbid")

    state_dir: Path | None = None
    on_rate_limit: Literal["abort", "skip"] = "abort"

    def resolve_state_dir(self, override: Path | None = None) -> Path:
        """State directory: explicit override > env var > manifest > default."""
        if override is not None:
            return override
        env = os.environ.get(STATE_DIR_ENV)
        if env:
            return Path(env)
        if self.state_dir is not None:
            return self.state_dir
        return default_state_dir()


class InvalidDeclaration(BaseModel):
    """A reboot entry that failed validation. Only that resource is lost."""

    index: int
    name: str | None = None
    error: str

    @property
    def label(self) -> str:
        return self.name or f"entry #{self.index + 1}"


class Manifest(BaseModel):
    """Validated manifest.

    ``reboots`` holds the declarations that validated; the rest are kept in
    ``invalid`` so the valid resources can still converge.
    """

    settings: Settings = Field(default_factory=Settings)
    reboots: list[RebootPolicy] = Field(default_factory=list)
    invalid: list[InvalidDeclaration] = Field(default_factory=list)

    def get(self, name: str) -> RebootPolicy | None:
        """Look up a reboot resource by name."""
        for policy in self.reboots:
            if policy.name == name:
                return policy
        return None

    def names(self) -> list[str]:
        return [p.name for p in self.reboots]

    def invalid_names(self) -> list[str]:
        return [d.name for d in self.invalid if d.name]
