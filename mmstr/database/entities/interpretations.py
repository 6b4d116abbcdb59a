"""
Interpretation ORM Model
========================

An ``Interpretation`` is a user's restatement of someone else's message,
submitted before they may reply to it. Attempts are numbered per
(message, user) starting at 1; the unique constraint on
``(message_id, user_id, attempt_number)`` keeps the numbering gapless even
under concurrent submissions.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import TEXT, CheckConstraint, DateTime, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from mmstr.database.config.connection_engine import declarativeBase


class Interpretation(declarativeBase):
    """
    ORM model for the `interpretation` table.

    Attributes
    ----------
    id : UUID
        Primary key.
    message_id : UUID
        The interpreted message.
    user_id : str
        The interpreter.
    text : str
        The restatement.
    attempt_number : int
        1-based attempt counter within (message_id, user_id).
    created_at : datetime
        Submission time (UTC).
    """

    __tablename__ = "interpretation"
    __table_args__ = (
        UniqueConstraint("message_id", "user_id", "attempt_number", name="uq_interpretation_attempt"),
        CheckConstraint("attempt_number >= 1", name="ck_interpretation_attempt_number"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    """Primary key. UUID of the interpretation."""

    message_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("message.id", ondelete="CASCADE"), nullable=False, index=True
    )
    """Foreign key to the interpreted message."""

    user_id: Mapped[str] = mapped_column(TEXT, nullable=False)
    """Identifier of the interpreting user."""

    text: Mapped[str] = mapped_column(TEXT, nullable=False)

    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    def __init__(
        self,
        message_id: UUID,
        user_id: str,
        text: str,
        attempt_number: int,
        interpretation_id: Optional[UUID] = None,
    ):
        self.id = interpretation_id or uuid4()
        self.message_id = message_id
        self.user_id = user_id
        self.text = text
        self.attempt_number = attempt_number
        self.created_at = datetime.now(timezone.utc)

    def __str__(self) -> str:
        return (
            f"Interpretation: id:{self.id}, message: {self.message_id}, "
            f"user: {self.user_id}, attempt: {self.attempt_number}, text: {self.text}"
        )
