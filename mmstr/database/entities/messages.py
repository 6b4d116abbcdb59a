"""
Message ORM Model
=================

The ``Message`` ORM model represents one message posted to a conversation.
Messages are immutable once created: the text has already passed length and
word-count validation and is never edited afterwards.

Key features
~~~~~~~~~~~~
- Portable UUID primary key (``id``)
- Foreign key reference to ``conversation.id`` (``conversation_id``)
- External author identifier (``author_id``)
- Optional self-reference to the message being replied to (``replying_to_message_id``)
- Timezone-aware ``created_at`` timestamp (UTC)
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import TEXT, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from mmstr.database.config.connection_engine import declarativeBase


class Message(declarativeBase):
    """
    ORM model for the `message` table.

    Attributes
    ----------
    id : UUID
        Primary key. Unique identifier for the message.
    conversation_id : UUID
        Foreign key reference to the `conversation` table.
    author_id : str
        Identifier of the user who wrote the message.
    text : str
        Validated, trimmed content of the message.
    replying_to_message_id : UUID | None
        Message this one replies to, if any.
    created_at : datetime
        Timestamp when the message was created.
    """

    __tablename__ = "message"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    """Primary key. UUID of the message."""

    conversation_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("conversation.id", ondelete="CASCADE"), nullable=False, index=True
    )
    """Foreign key to the conversation this message belongs to."""

    author_id: Mapped[str] = mapped_column(TEXT, nullable=False)
    """Identifier of the author."""

    text: Mapped[str] = mapped_column(TEXT, nullable=False)
    """Text content of the message (cannot be null)."""

    replying_to_message_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("message.id", ondelete="SET NULL"), nullable=True
    )
    """Optional parent message."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    """Timestamp when the message was created. Defaults to current UTC time."""

    def __init__(
        self,
        conversation_id: UUID,
        author_id: str,
        text: str,
        replying_to_message_id: Optional[UUID] = None,
        message_id: Optional[UUID] = None,
        created_at=None,
    ):
        """
        Initialize a new Message object.

        Parameters
        ----------
        conversation_id : UUID
            ID of the conversation this message belongs to.
        author_id : str
            The author of the message.
        text : str
            The content of the message.
        replying_to_message_id : UUID | None, optional
            Message being replied to.
        message_id : UUID, optional
            Identifier to use; a random UUID4 by default.
        created_at : datetime | str, optional
            Timestamp when the message was created. Accepts datetime or ISO8601 string.
        """
        self.id = message_id or uuid4()
        self.conversation_id = conversation_id
        self.author_id = author_id
        self.text = text
        self.replying_to_message_id = replying_to_message_id
        if isinstance(created_at, str):
            self.created_at = datetime.fromisoformat(created_at)
        else:
            self.created_at = created_at or datetime.now(timezone.utc)

    def __str__(self) -> str:
        return (
            f"Message: id:{self.id}, "
            f"conversation: {self.conversation_id}, "
            f"author: {self.author_id}, "
            f"text: {self.text}, "
            f"time_created: {self.created_at}"
        )
