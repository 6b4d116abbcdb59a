"""
Conversation & Participation ORM Models
=======================================

The ``Conversation`` model is the policy holder of the protocol: it carries
``max_attempts`` (how many interpretations a participant may submit for one
message before arbitration is forced) and ``participant_limit``.

``Participation`` records which users joined which conversation. A user joins
implicitly when posting their first message.

Key features
~~~~~~~~~~~~
- Portable UUID primary keys (``Uuid``), native on PostgreSQL, CHAR(32) on SQLite
- Timezone-aware ``created_at`` / ``updated_at`` timestamps (UTC)
- One participation row per (conversation, user)
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import TEXT, CheckConstraint, DateTime, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from mmstr.database.config.connection_engine import declarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Conversation(declarativeBase):
    """
    ORM model for the `conversation` table.

    Attributes
    ----------
    id : UUID
        Primary key. Unique identifier for the conversation.
    title : str
        Human-readable title.
    max_attempts : int
        Interpretation attempts allowed per (message, user) before arbitration.
    participant_limit : int
        Maximum number of distinct participants.
    created_at : datetime
        Creation timestamp (UTC).
    updated_at : datetime
        Last modification timestamp (UTC).
    """

    __tablename__ = "conversation"
    __table_args__ = (
        CheckConstraint("max_attempts >= 1", name="ck_conversation_max_attempts"),
        CheckConstraint("participant_limit >= 2", name="ck_conversation_participant_limit"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    """Primary key. UUID of the conversation."""

    title: Mapped[str] = mapped_column(TEXT, nullable=False)
    """Title of the conversation (cannot be null)."""

    max_attempts: Mapped[int] = mapped_column(Integer, nullable=False)
    """Attempts a non-author may make on any message of this conversation."""

    participant_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    """Upper bound on distinct participants."""

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    """Timestamp when the conversation was created (UTC, timezone-aware)."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )
    """Timestamp of the last update (UTC, timezone-aware)."""

    def __init__(
        self,
        title: str,
        max_attempts: int,
        participant_limit: int,
        conversation_id: Optional[UUID] = None,
        created_at=None,
    ):
        """
        Initialize a new Conversation object.

        Parameters
        ----------
        title : str
            Title of the conversation.
        max_attempts : int
            Interpretation attempts allowed per message.
        participant_limit : int
            Maximum number of participants.
        conversation_id : UUID, optional
            Identifier to use; a random UUID4 by default.
        created_at : datetime | str, optional
            Creation timestamp. Accepts datetime or ISO8601 string; now (UTC) by default.
        """
        self.id = conversation_id or uuid4()
        self.title = title
        self.max_attempts = max_attempts
        self.participant_limit = participant_limit
        if isinstance(created_at, str):
            self.created_at = datetime.fromisoformat(created_at)
        else:
            self.created_at = created_at or _utcnow()
        self.updated_at = self.created_at

    def __str__(self) -> str:
        return (
            f"Conversation: id:{self.id}, title: {self.title}, "
            f"max_attempts: {self.max_attempts}, participant_limit: {self.participant_limit}"
        )


class Participation(declarativeBase):
    """
    ORM model for the `participation` table: membership of a user in a conversation.

    Attributes
    ----------
    id : UUID
        Primary key.
    conversation_id : UUID
        Foreign key to `conversation.id`.
    user_id : str
        External user identifier.
    joined_at : datetime
        When the user joined (UTC).
    """

    __tablename__ = "participation"
    __table_args__ = (UniqueConstraint("conversation_id", "user_id", name="uq_participation_conversation_user"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)

    conversation_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("conversation.id", ondelete="CASCADE"), nullable=False, index=True
    )

    user_id: Mapped[str] = mapped_column(TEXT, nullable=False)

    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __init__(self, conversation_id: UUID, user_id: str, participation_id: Optional[UUID] = None):
        self.id = participation_id or uuid4()
        self.conversation_id = conversation_id
        self.user_id = user_id
        self.joined_at = _utcnow()

    def __str__(self) -> str:
        return f"Participation: conversation:{self.conversation_id}, user: {self.user_id}, joined: {self.joined_at}"
