"""
Closed value sets of the interpretation protocol.

Every status that is persisted as text is modelled as a `str` Enum so it
serializes unchanged into SQL and JSON while remaining a closed set in code.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class GradingStatus(str, Enum):
    """Judgment on one interpretation."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ArbitrationResult(str, Enum):
    """Terminal ruling issued by the arbitrator."""

    ACCEPT = "accept"
    REJECT = "reject"


class ArbitrationTrigger(str, Enum):
    """Why an arbitration ran."""

    DISPUTE = "dispute"
    MAX_ATTEMPTS = "max_attempts"


RULING_COMPLETED = "completed"
"""`ruling_status` stored on every arbitration; rulings are issued synchronously."""


class MessageStatus(str, Enum):
    """Icon shown next to a message for the viewing user (display only)."""

    NEEDS_INTERPRETATION = "brain"
    CAN_RESPOND = "speaking"
    DONE = "checkmark"
    NONE = "none"


class SubjectKind(str, Enum):
    MESSAGE = "message"
    INTERPRETATION = "interpretation"


@dataclass(frozen=True)
class BreakdownSubject:
    """
    What a breakdown decomposes: exactly one message *or* one interpretation.

    Use the `message` / `interpretation` constructors rather than building the
    pair by hand.
    """

    kind: SubjectKind
    subject_id: UUID

    @classmethod
    def message(cls, message_id: UUID) -> "BreakdownSubject":
        return cls(SubjectKind.MESSAGE, message_id)

    @classmethod
    def interpretation(cls, interpretation_id: UUID) -> "BreakdownSubject":
        return cls(SubjectKind.INTERPRETATION, interpretation_id)
