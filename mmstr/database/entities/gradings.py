"""
Grading & Grading Response ORM Models
=====================================

``Grading`` is the single judgment attached to an interpretation (1:1). It is
created by automatic grading and may later be changed by the message author.

``GradingResponse`` is the interpreter's dispute of a rejected grading. At most
one exists per grading; creating it forces arbitration.

Key features
~~~~~~~~~~~~
- ``status`` stored as a non-native SQL enum with a CHECK constraint over
  ``pending`` / ``accepted`` / ``rejected``
- ``similarity_score`` constrained to [0, 100]
- Unique foreign keys encode the 1:1 and 0..1 relationships
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import TEXT, Boolean, CheckConstraint, DateTime, Float, ForeignKey, Uuid
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from mmstr.database.config.connection_engine import declarativeBase
from mmstr.protocol.states import GradingStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Grading(declarativeBase):
    """
    ORM model for the `interpretation_grading` table.

    Attributes
    ----------
    id : UUID
        Primary key.
    interpretation_id : UUID
        The graded interpretation (unique).
    status : GradingStatus
        pending / accepted / rejected.
    similarity_score : float
        Semantic score from the judge, in [0, 100].
    auto_accept_suggested : bool
        Whether the judge suggested accepting without author review.
    notes : str | None
        Judge reasoning, lexical rejection notes, or the author's notes.
    created_at, updated_at : datetime
        Timestamps (UTC).
    """

    __tablename__ = "interpretation_grading"
    __table_args__ = (
        CheckConstraint("similarity_score >= 0 AND similarity_score <= 100", name="ck_grading_similarity_score"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)

    interpretation_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("interpretation.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    """Exactly one grading per interpretation."""

    status: Mapped[GradingStatus] = mapped_column(
        SAEnum(
            GradingStatus,
            name="grading_status",
            native_enum=False,
            create_constraint=True,
            length=16,
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
    )

    similarity_score: Mapped[float] = mapped_column(Float, nullable=False)

    auto_accept_suggested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    notes: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    def __init__(
        self,
        interpretation_id: UUID,
        status: GradingStatus,
        similarity_score: float,
        auto_accept_suggested: bool,
        notes: Optional[str] = None,
        grading_id: Optional[UUID] = None,
    ):
        """
        Initialize a new Grading object.

        Parameters
        ----------
        interpretation_id : UUID
            Interpretation being graded.
        status : GradingStatus
            Initial status decided by automatic grading.
        similarity_score : float
            Judge score in [0, 100].
        auto_accept_suggested : bool
            Judge's auto-accept suggestion.
        notes : str | None, optional
            Reasoning shown to both parties.
        grading_id : UUID, optional
            Identifier to use; a random UUID4 by default.
        """
        self.id = grading_id or uuid4()
        self.interpretation_id = interpretation_id
        self.status = status
        self.similarity_score = similarity_score
        self.auto_accept_suggested = auto_accept_suggested
        self.notes = notes
        self.created_at = _utcnow()
        self.updated_at = self.created_at

    def __str__(self) -> str:
        return (
            f"Grading: id:{self.id}, interpretation: {self.interpretation_id}, "
            f"status: {self.status.value}, score: {self.similarity_score}"
        )


class GradingResponse(declarativeBase):
    """
    ORM model for the `interpretation_grading_response` table (a dispute).

    Attributes
    ----------
    id : UUID
        Primary key.
    grading_id : UUID
        Disputed grading (unique: one dispute per grading).
    text : str
        The interpreter's argument.
    created_at : datetime
        Filing time (UTC).
    """

    __tablename__ = "interpretation_grading_response"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)

    grading_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("interpretation_grading.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    text: Mapped[str] = mapped_column(TEXT, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __init__(self, grading_id: UUID, text: str, response_id: Optional[UUID] = None):
        self.id = response_id or uuid4()
        self.grading_id = grading_id
        self.text = text
        self.created_at = _utcnow()

    def __str__(self) -> str:
        return f"GradingResponse: id:{self.id}, grading: {self.grading_id}, text: {self.text}"
