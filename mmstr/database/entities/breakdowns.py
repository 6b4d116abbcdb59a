"""
Breakdown & Point ORM Models
============================

A ``Breakdown`` decomposes exactly one subject, a message or an
interpretation, into an ordered list of ``Point`` rows (atomic assertions).
Breakdowns are generated by the judge the first time arbitration needs them
and reused afterwards.

The two nullable subject columns are an implementation detail of the table:
the model is constructed from a `BreakdownSubject` and exposes one through
the ``subject`` property, and a CHECK constraint rejects rows that reference
both or neither.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import TEXT, CheckConstraint, DateTime, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from mmstr.database.config.connection_engine import declarativeBase
from mmstr.protocol.states import BreakdownSubject, SubjectKind


class Breakdown(declarativeBase):
    """
    ORM model for the `breakdown` table.

    Attributes
    ----------
    id : UUID
        Primary key.
    message_id : UUID | None
        Set when the subject is a message.
    interpretation_id : UUID | None
        Set when the subject is an interpretation.
    created_at : datetime
        Generation time (UTC).
    """

    __tablename__ = "breakdown"
    __table_args__ = (
        CheckConstraint(
            "(message_id IS NOT NULL AND interpretation_id IS NULL) "
            "OR (message_id IS NULL AND interpretation_id IS NOT NULL)",
            name="ck_breakdown_single_subject",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)

    message_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("message.id", ondelete="CASCADE"), nullable=True, unique=True
    )

    interpretation_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("interpretation.id", ondelete="CASCADE"), nullable=True, unique=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    def __init__(self, subject: BreakdownSubject, breakdown_id: Optional[UUID] = None):
        """
        Initialize a new Breakdown for one subject.

        Parameters
        ----------
        subject : BreakdownSubject
            The message or interpretation being decomposed.
        breakdown_id : UUID, optional
            Identifier to use; a random UUID4 by default.
        """
        self.id = breakdown_id or uuid4()
        self.message_id = subject.subject_id if subject.kind == SubjectKind.MESSAGE else None
        self.interpretation_id = subject.subject_id if subject.kind == SubjectKind.INTERPRETATION else None
        self.created_at = datetime.now(timezone.utc)

    @property
    def subject(self) -> BreakdownSubject:
        if self.message_id is not None:
            return BreakdownSubject.message(self.message_id)
        return BreakdownSubject.interpretation(self.interpretation_id)

    def __str__(self) -> str:
        return f"Breakdown: id:{self.id}, subject: {self.subject.kind.value}:{self.subject.subject_id}"


class Point(declarativeBase):
    """
    ORM model for the `point` table: one assertion of a breakdown.

    ``order`` is 0-based and unique within its breakdown.
    """

    __tablename__ = "point"
    __table_args__ = (UniqueConstraint("breakdown_id", "order", name="uq_point_breakdown_order"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)

    breakdown_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("breakdown.id", ondelete="CASCADE"), nullable=False, index=True
    )

    text: Mapped[str] = mapped_column(TEXT, nullable=False)

    order: Mapped[int] = mapped_column("order", Integer, nullable=False)

    def __init__(self, breakdown_id: UUID, text: str, order: int, point_id: Optional[UUID] = None):
        self.id = point_id or uuid4()
        self.breakdown_id = breakdown_id
        self.text = text
        self.order = order

    def __str__(self) -> str:
        return f"Point: breakdown:{self.breakdown_id}, order: {self.order}, text: {self.text}"
