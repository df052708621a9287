"""
Domain models — Pydantic types for reboot decisions.

    from rebootctl.core.models import RebootPolicy, ReasonCode, RebootRequest, Receipt
"""

from rebootctl.core.models.action import Receipt, RebootRequest
from rebootctl.core.models.manifest import Manifest, Settings, default_state_dir
from rebootctl.core.models.outcome import RebootOutcome
from rebootctl.core.models.policy import (
    ALL_REASONS,
    ApplyTiming,
    ReasonCode,
    RebootPolicy,
    TriggerMode,
    parse_reasons,
)

__all__ = [
    "ALL_REASONS",
    "ApplyTiming",
    "Manifest",
    "ReasonCode",
    "RebootOutcome",
    "RebootPolicy",
    "RebootRequest",
    "Receipt",
    "Settings",
    "TriggerMode",
    "default_state_dir",
    "parse_reasons",
]
