"""
Arbitration ORM Model
=====================

An ``Arbitration`` is the terminal ruling on an interpretation, issued either
because the interpreter disputed a rejection or because the final allowed
attempt was rejected. ``interpretation_id`` is unique, so inserting a second
ruling for the same interpretation fails at the database and the DAO can
fall back to the existing row.

``grading_response_id`` is NULL for rulings triggered by max-attempts
exhaustion, and references the dispute otherwise.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import TEXT, DateTime, ForeignKey, Uuid
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from mmstr.database.config.connection_engine import declarativeBase
from mmstr.protocol.states import RULING_COMPLETED, ArbitrationResult, ArbitrationTrigger


class Arbitration(declarativeBase):
    """
    ORM model for the `arbitration` table.

    Attributes
    ----------
    id : UUID
        Primary key.
    message_id : UUID
        Original message.
    interpretation_id : UUID
        Ruled interpretation (unique).
    grading_id : UUID
        Grading the ruling resolves.
    grading_response_id : UUID | None
        The dispute, or None for a max-attempts ruling.
    result : ArbitrationResult
        accept / reject.
    ruling_status : str
        Always ``"completed"``; rulings are issued synchronously.
    explanation : str
        Arbitrator's reasoning.
    created_at : datetime
        Ruling time (UTC).
    """

    __tablename__ = "arbitration"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)

    message_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("message.id", ondelete="CASCADE"), nullable=False, index=True
    )

    interpretation_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("interpretation.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    """At most one arbitration per interpretation."""

    grading_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("interpretation_grading.id", ondelete="CASCADE"), nullable=False
    )

    grading_response_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("interpretation_grading_response.id", ondelete="SET NULL"), nullable=True
    )

    result: Mapped[ArbitrationResult] = mapped_column(
        SAEnum(
            ArbitrationResult,
            name="arbitration_result",
            native_enum=False,
            create_constraint=True,
            length=16,
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
    )

    ruling_status: Mapped[str] = mapped_column(TEXT, nullable=False, default=RULING_COMPLETED)

    explanation: Mapped[str] = mapped_column(TEXT, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    def __init__(
        self,
        message_id: UUID,
        interpretation_id: UUID,
        grading_id: UUID,
        result: ArbitrationResult,
        explanation: str,
        grading_response_id: Optional[UUID] = None,
        arbitration_id: Optional[UUID] = None,
    ):
        self.id = arbitration_id or uuid4()
        self.message_id = message_id
        self.interpretation_id = interpretation_id
        self.grading_id = grading_id
        self.grading_response_id = grading_response_id
        self.result = result
        self.ruling_status = RULING_COMPLETED
        self.explanation = explanation
        self.created_at = datetime.now(timezone.utc)

    @property
    def trigger(self) -> ArbitrationTrigger:
        """Which path produced this ruling."""
        if self.grading_response_id is None:
            return ArbitrationTrigger.MAX_ATTEMPTS
        return ArbitrationTrigger.DISPUTE

    def __str__(self) -> str:
        return (
            f"Arbitration: id:{self.id}, interpretation: {self.interpretation_id}, "
            f"result: {self.result.value}, trigger: {self.trigger.value}"
        )
