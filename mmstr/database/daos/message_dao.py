"""
Messages DAO

Purpose
-------
Data-access layer for the `Message` ORM entity. Provides:
- Message creation
- Retrieval by id
- Retrieval by conversation (chronological)
- Retrieval of direct replies to a message

Design
------
- Requires an active SQLAlchemy `Session` provided by the caller.
- Keeps business rules (validation, participant limits) in higher layers.
- Messages are immutable, so there is no update method.

Error Handling
--------------
- Methods catch generic `Exception`, log it with `logger.exception(...)`, and re-raise.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import asc
from sqlalchemy.orm import Session

from mmstr.database.entities.messages import Message

logger = logging.getLogger(__name__)


class MessageDao:
    """
    Data Access Object (DAO) for managing Messages.
    Provides methods to create and fetch messages within conversations.
    """

    def createMessage(self, session: Session, message: Message) -> Message:
        """
        Create a new message record.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        message : Message
            Message entity instance to be added.

        Returns
        -------
        Message
            The message object that was added.

        Raises
        ------
        Exception
            If the insert operation fails.
        """
        try:
            session.add(message)
            session.flush()
            return message
        except Exception:
            logger.exception("Error in MessageDao.createMessage")
            raise

    def fetchMessageById(self, session: Session, message_id: UUID) -> Optional[Message]:
        """Return the `Message` with the given id, or None."""
        try:
            return session.query(Message).filter(Message.id == message_id).one_or_none()
        except Exception:
            logger.exception("Error in MessageDao.fetchMessageById (id=%s)", message_id)
            raise

    def fetchMessagesByConversationId(self, session: Session, conversation_id: UUID) -> List[Message]:
        """
        Fetch all messages in a conversation, ordered by creation time (ascending).

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        conversation_id : UUID
            Unique identifier of the conversation.

        Returns
        -------
        list[Message]
            List of messages belonging to the specified conversation.
        """
        try:
            return (
                session.query(Message)
                .filter(Message.conversation_id == conversation_id)
                .order_by(asc(Message.created_at))
                .all()
            )
        except Exception:
            logger.exception("Error in MessageDao.fetchMessagesByConversationId (id=%s)", conversation_id)
            raise

    def fetchRepliesToMessage(self, session: Session, message_id: UUID) -> List[Message]:
        try:
            return (
                session.query(Message)
                .filter(Message.replying_to_message_id == message_id)
                .order_by(asc(Message.created_at))
                .all()
            )
        except Exception:
            logger.exception("Error in MessageDao.fetchRepliesToMessage (id=%s)", message_id)
            raise

    def hasUserRepliedToMessage(self, session: Session, message_id: UUID, user_id: str) -> bool:
        """True if `user_id` already posted a reply to the message."""
        try:
            return (
                session.query(Message.id)
                .filter(Message.replying_to_message_id == message_id)
                .filter(Message.author_id == user_id)
                .first()
                is not None
            )
        except Exception:
            logger.exception("Error in MessageDao.hasUserRepliedToMessage (id=%s)", message_id)
            raise
