"""
Configuration loader — reads reboot.yml into domain models.

Reads YAML, validates each reboot declaration into a RebootPolicy, and
returns a Manifest. File-level problems (missing, unreadable, not a
mapping) raise ConfigError. A bad declaration is fatal only to its own
resource: it is recorded in Manifest.invalid and the other declarations
still load.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from rebootctl.core.errors import InvalidPolicy
from rebootctl.core.models.manifest import InvalidDeclaration, Manifest, Settings
from rebootctl.core.models.policy import RebootPolicy

logger = logging.getLogger(__name__)

MANIFEST_FILE = "reboot.yml"


class ConfigError(Exception):
    """Raised when the manifest file is missing or unreadable."""


def find_manifest_file(start_dir: Path | None = None) -> Path | None:
    """Search for reboot.yml starting from the given directory, walking up.

    Returns:
        Path to reboot.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / MANIFEST_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def parse_manifest(data: Any, source: str = "<manifest>") -> Manifest:
    """Validate already-parsed YAML data.

    Declarations that fail validation (not a mapping, bad fields, a repeated
    name) land in ``Manifest.invalid``; the first declaration of a name wins.

    Raises:
        ConfigError: If the document shape is wrong.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {source}, got {type(data).__name__}")

    unknown = set(data) - {"settings", "reboots"}
    if unknown:
        raise ConfigError(f"Unknown top-level keys in {source}: {', '.join(sorted(unknown))}")

    try:
        settings = Settings.model_validate(data.get("settings") or {})
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {source}: {e}") from e

    raw_reboots = data.get("reboots") or []
    if not isinstance(raw_reboots, list):
        raise ConfigError(f"'reboots' in {source} must be a list")

    policies: list[RebootPolicy] = []
    invalid: list[InvalidDeclaration] = []
    seen: set[str] = set()
    for index, entry in enumerate(raw_reboots):
        try:
            if not isinstance(entry, dict):
                raise InvalidPolicy(f"entry #{index + 1} in {source} must be a mapping")
            policy = RebootPolicy.from_declaration(entry)
            if policy.name in seen:
                raise InvalidPolicy("duplicate resource name", resource=policy.name)
        except InvalidPolicy as e:
            logger.warning("Skipping invalid reboot declaration: %s", e)
            invalid.append(InvalidDeclaration(index=index, name=e.resource, error=str(e)))
            continue
        seen.add(policy.name)
        policies.append(policy)

    return Manifest(settings=settings, reboots=policies, invalid=invalid)


def load_manifest(path: Path | None = None) -> Manifest:
    """Load and validate a reboot manifest.

    Args:
        path: Explicit path to reboot.yml. If None, searches upward.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        path = find_manifest_file()

    if path is None:
        raise ConfigError(f"No {MANIFEST_FILE} found. Specify one with --config.")

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading manifest from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    manifest = parse_manifest(data, source=str(path))
    logger.info(
        "Loaded %d reboot resources from %s (%d invalid)",
        len(manifest.reboots), path, len(manifest.invalid),
    )
    return manifest
