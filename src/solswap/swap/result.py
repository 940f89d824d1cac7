"""Outcome of a swap submission."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ConfirmationStatus(str, Enum):
    """Final state of a submitted transaction."""
    CONFIRMED = "confirmed"
    FAILED = "failed"
    UNKNOWN = "unknown"  # Submitted, outcome not observed; check the explorer


@dataclass(frozen=True)
class SubmissionResult:
    """Result of one execution attempt.

    Attributes:
        status: confirmed, failed or unknown
        signature: Transaction signature, if the network accepted the transaction
        reason: Failure reason (failed) or last error seen (unknown)
    """
    status: ConfirmationStatus
    signature: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def confirmed(cls, signature: str) -> "SubmissionResult":
        return cls(status=ConfirmationStatus.CONFIRMED, signature=signature)

    @classmethod
    def failed(cls, reason: str, signature: Optional[str] = None) -> "SubmissionResult":
        return cls(status=ConfirmationStatus.FAILED, signature=signature, reason=reason)

    @classmethod
    def unknown(cls, signature: str, reason: Optional[str] = None) -> "SubmissionResult":
        return cls(status=ConfirmationStatus.UNKNOWN, signature=signature, reason=reason)

    @property
    def is_confirmed(self) -> bool:
        return self.status == ConfirmationStatus.CONFIRMED

    @property
    def is_failed(self) -> bool:
        return self.status == ConfirmationStatus.FAILED

    @property
    def is_unknown(self) -> bool:
        return self.status == ConfirmationStatus.UNKNOWN
