"""Adapters — platform bindings for rebooting and pending-reboot probes.

Public re-exports for convenient access.
"""

from rebootctl.adapters.base import PendingProbe, RebootAdapter
from rebootctl.adapters.mock import MockPendingProbe, MockRebootAdapter
from rebootctl.adapters.registry import AdapterRegistry

__all__ = [
    "AdapterRegistry",
    "MockPendingProbe",
    "MockRebootAdapter",
    "PendingProbe",
    "RebootAdapter",
]
