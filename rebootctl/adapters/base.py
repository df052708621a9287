"""
Adapter base — the capability contracts between engine and platform.

Two capabilities vary by platform:

    RebootAdapter  → issues the reboot (shutdown command, or a mock)
    PendingProbe   → answers "is a reboot pending for reason X?"

The engine only talks to them through these interfaces, and the registry
picks the implementations for the current platform at startup.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from rebootctl.core.models.action import Receipt, RebootRequest
from rebootctl.core.models.policy import ReasonCode


class RebootAdapter(ABC):
    """Abstract base class for reboot executors.

    Executors perform the side effect and return receipts.
    They NEVER raise exceptions; failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'posix', 'windows')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the underlying shutdown tool exists. Never raises."""

    @abstractmethod
    def validate(self, request: RebootRequest) -> tuple[bool, str]:
        """Validate that the request can be issued.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, request: RebootRequest) -> Receipt:
        """Issue the reboot and return a receipt.

        MUST never raise exceptions.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class PendingProbe(ABC):
    """Abstract base class for pending-reboot probes.

    A probe knows which reason codes it can check on its platform.
    Asking about an unsupported reason, or about a reason whose marker is
    absent, returns False rather than raising.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The probe identifier (e.g., 'linux', 'windows')."""

    @abstractmethod
    def supported_reasons(self) -> frozenset[ReasonCode]:
        """Reason codes this probe can check."""

    @abstractmethod
    def probe(self, code: ReasonCode) -> bool:
        """Whether a reboot is pending for ``code``."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
