"""
Config check use case — validate reboot.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from rebootctl.core.config.loader import ConfigError, find_manifest_file, load_manifest
from rebootctl.core.models.manifest import Manifest
from rebootctl.core.models.policy import ApplyTiming, TriggerMode


@dataclass
class ConfigCheckResult:
    """Result of manifest validation."""

    valid: bool = False
    manifest: Manifest | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "resources": [p.to_declaration() for p in self.manifest.reboots] if self.manifest else [],
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate the manifest and report issues.

    Args:
        config_path: Optional explicit path to reboot.yml.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_manifest_file()
    if config_path is None:
        result.errors.append("No reboot.yml found.")
        return result
    result.config_path = config_path

    try:
        manifest = load_manifest(config_path)
    except ConfigError as e:
        result.errors.append(str(e))
        return result
    result.manifest = manifest
    result.errors.extend(d.error for d in manifest.invalid)

    # Semantic checks
    if not manifest.reboots:
        result.warnings.append("No reboot resources declared.")

    for policy in manifest.reboots:
        if policy.trigger_mode == TriggerMode.ON_REFRESH:
            if policy.include_reasons or policy.exclude_reasons:
                result.warnings.append(
                    f"{policy.name}: onlyif/unless only apply to 'when: pending' resources"
                )
            if policy.rate_limited:
                result.warnings.append(
                    f"{policy.name}: retries only apply to 'when: pending' resources"
                )
        if (
            policy.include_reasons
            and policy.exclude_reasons
            and policy.include_reasons <= policy.exclude_reasons
        ):
            result.warnings.append(
                f"{policy.name}: every 'onlyif' reason is also in 'unless'; it can never reboot"
            )

    immediate = [
        p.name for p in manifest.reboots[:-1] if p.apply_timing == ApplyTiming.IMMEDIATE
    ]
    if immediate:
        result.warnings.append(
            "Resources after an immediate reboot are not applied when it fires: "
            + ", ".join(immediate)
        )

    result.valid = not result.errors
    return result
