"""
Reboot policy — the declared intent of one reboot resource.

A policy is built once from a manifest entry and never changes afterwards.
Field aliases match the declaration surface (``when``, ``apply``,
``timeout``, ``retries``, ``retries_interval``, ``onlyif``, ``unless``);
the attribute names describe what each field means to the engine.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from rebootctl.core.errors import InvalidPolicy

MAX_MESSAGE_LENGTH = 8000
DEFAULT_MESSAGE = "Rebooting the computer"


class TriggerMode(StrEnum):
    """What drives the reboot: a refresh event or a pending-reboot check."""

    ON_REFRESH = "refreshed"
    ON_PENDING = "pending"


class ApplyTiming(StrEnum):
    """When the reboot is applied relative to the rest of the run."""

    IMMEDIATE = "immediately"
    DEFERRED = "finished"


class ReasonCode(StrEnum):
    """Causes of a pending-reboot state."""

    REBOOT_REQUIRED = "reboot_required"
    COMPONENT_BASED_SERVICING = "component_based_servicing"
    WINDOWS_AUTO_UPDATE = "windows_auto_update"
    PENDING_FILE_RENAME_OPERATIONS = "pending_file_rename_operations"
    PACKAGE_INSTALLER = "package_installer"
    PENDING_COMPUTER_RENAME = "pending_computer_rename"
    PENDING_DSC_REBOOT = "pending_dsc_reboot"
    PENDING_CCM_REBOOT = "pending_ccm_reboot"


ALL_REASONS: tuple[ReasonCode, ...] = tuple(ReasonCode)


def parse_reasons(value: Any) -> frozenset[ReasonCode]:
    """Parse a reason declaration (one code or a list of codes).

    Raises:
        ValueError: If the list is empty or holds an unknown code.
    """
    if isinstance(value, (str, ReasonCode)):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise ValueError(f"expected a reason code or a list of codes, got {type(value).__name__}")
    if len(value) == 0:
        raise ValueError("There must be at least one element in the list")

    allowed = ", ".join(r.value for r in ALL_REASONS)
    codes: set[ReasonCode] = set()
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"value must be one of {allowed}")
        try:
            codes.add(ReasonCode(item))
        except ValueError:
            raise ValueError(f"value must be one of {allowed}") from None
    return frozenset(codes)


def _parse_count(value: Any, field: str) -> int:
    # Integers or digit-only strings; bools and floats are not counts.
    if isinstance(value, bool):
        raise ValueError(f"The {field} must be an integer.")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"The {field} must be an integer.")
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    raise ValueError(f"The {field} must be an integer.")


class RebootPolicy(BaseModel):
    """One declared reboot resource."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    name: str
    trigger_mode: TriggerMode = Field(default=TriggerMode.ON_REFRESH, alias="when")
    apply_timing: ApplyTiming = Field(default=ApplyTiming.IMMEDIATE, alias="apply")
    message: str = DEFAULT_MESSAGE
    timeout_seconds: int = Field(default=60, alias="timeout")
    max_retries: int = Field(default=0, alias="retries")
    retry_window_hours: int = Field(default=24, alias="retries_interval")
    include_reasons: frozenset[ReasonCode] | None = Field(default=None, alias="onlyif")
    exclude_reasons: frozenset[ReasonCode] | None = Field(default=None, alias="unless")

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be empty")
        return value

    @field_validator("message", mode="before")
    @classmethod
    def _check_message(cls, value: Any) -> Any:
        if value is None or value == "":
            raise ValueError("A non-empty message must be specified.")
        # Windows caps a command line at 8191 characters; leave room for the
        # rest of the shutdown invocation.
        if isinstance(value, str) and len(value) > MAX_MESSAGE_LENGTH:
            raise ValueError(f"The given message must not exceed {MAX_MESSAGE_LENGTH} characters.")
        return value

    @field_validator("timeout_seconds", mode="before")
    @classmethod
    def _check_timeout(cls, value: Any) -> int:
        return _parse_count(value, "timeout")

    @field_validator("max_retries", mode="before")
    @classmethod
    def _check_retries(cls, value: Any) -> int:
        return _parse_count(value, "retries")

    @field_validator("retry_window_hours", mode="before")
    @classmethod
    def _check_window(cls, value: Any) -> int:
        hours = _parse_count(value, "retries_interval")
        if hours == 0:
            raise ValueError("The retries_interval must be a positive integer.")
        return hours

    @field_validator("include_reasons", "exclude_reasons", mode="before")
    @classmethod
    def _check_reasons(cls, value: Any) -> frozenset[ReasonCode] | None:
        if value is None:
            return None
        return parse_reasons(value)

    @property
    def rate_limited(self) -> bool:
        """Whether the retry ledger must be consulted before rebooting."""
        return self.max_retries > 0

    @classmethod
    def from_declaration(cls, data: dict[str, Any]) -> RebootPolicy:
        """Build a policy from a manifest entry.

        Raises:
            InvalidPolicy: If any field fails validation.
        """
        resource = data.get("name") if isinstance(data, dict) else None
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'policy'}: {err['msg']}"
                for err in e.errors()
            )
            raise InvalidPolicy(problems, resource=resource if isinstance(resource, str) else None) from e

    def to_declaration(self) -> dict[str, Any]:
        """Serialize back to the manifest keys."""
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        for key in ("onlyif", "unless"):
            if key in data:
                data[key] = sorted(data[key])
        return data
