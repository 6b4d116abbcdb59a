"""
Conversation DAO

Purpose
-------
Provides a thin data-access layer for the `Conversation` and `Participation`
ORM entities:
- Create conversations, fetch one by id, list newest first
- Update title / attempt policy / participant limit
- Record and count participants

Design
------
- Requires an active SQLAlchemy `Session` supplied by the caller (no session
  creation inside the DAO). This keeps transaction boundaries in the service
  layer where they belong.
- Uses straightforward ORM queries (`session.query(...).filter(...)`).
- Never commits; the `@transactional` service function owning the session does.

Usage
-----
.. code-block:: python

    from mmstr.database.helpers.transactionManagement import SessionFactory
    from mmstr.database.entities.conversations import Conversation
    from mmstr.database.daos.conversation_dao import ConversationDao

    dao = ConversationDao()
    with SessionFactory() as session:
        conversation = Conversation(title="Budget review", max_attempts=3, participant_limit=20)
        dao.createConversation(session, conversation)
        session.commit()

        dao.updateConversation(session, conversation.id, title="Budget review (Q3)")
        session.commit()

Error Handling
--------------
- Methods catch generic `Exception`, log it with `logger.exception(...)`, and re-raise.
- Fetch-by-id and update methods return None when the row does not exist;
  translating that into `NotFoundError` is the service layer's job.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from mmstr.database.entities.conversations import Conversation, Participation

logger = logging.getLogger(__name__)


class ConversationDao:
    """
    Data Access Object (DAO) for managing Conversation entities.
    Provides CRUD operations on the `conversation` table.
    """

    def createConversation(self, session: Session, conversation: Conversation) -> Conversation:
        """
        Create a new conversation record.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        conversation : Conversation
            Conversation entity instance to be added.

        Returns
        -------
        Conversation
            The staged (and flushed) conversation.

        Raises
        ------
        Exception
            If the conversation cannot be created.
        """
        try:
            session.add(conversation)
            session.flush()
            return conversation
        except Exception:
            logger.exception("Error in ConversationDao.createConversation")
            raise

    def fetchConversationById(self, session: Session, conversation_id: UUID) -> Optional[Conversation]:
        """
        Fetch a conversation by primary key.

        Returns
        -------
        Conversation | None
            The conversation, or None if it does not exist.
        """
        try:
            return session.query(Conversation).filter(Conversation.id == conversation_id).one_or_none()
        except Exception:
            logger.exception("Error in ConversationDao.fetchConversationById (id=%s)", conversation_id)
            raise

    def fetchConversations(self, session: Session) -> List[Conversation]:
        """
        Fetch all conversations, most recently created first.

        Returns
        -------
        list[Conversation]
            Possibly empty list of conversations.
        """
        try:
            return session.query(Conversation).order_by(desc(Conversation.created_at)).all()
        except Exception:
            logger.exception("Error in ConversationDao.fetchConversations")
            raise

    def updateConversation(
        self,
        session: Session,
        conversation_id: UUID,
        title: Optional[str] = None,
        max_attempts: Optional[int] = None,
        participant_limit: Optional[int] = None,
    ) -> Optional[Conversation]:
        """
        Update the mutable fields of a conversation. Fields left as None are unchanged.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        conversation_id : UUID
            Unique identifier of the conversation.
        title : str, optional
            New title.
        max_attempts : int, optional
            New attempt policy.
        participant_limit : int, optional
            New participant limit.

        Returns
        -------
        Conversation | None
            The updated conversation, or None if it does not exist.
        """
        try:
            conversation = self.fetchConversationById(session, conversation_id)
            if conversation is None:
                return None
            if title is not None:
                conversation.title = title
            if max_attempts is not None:
                conversation.max_attempts = max_attempts
            if participant_limit is not None:
                conversation.participant_limit = participant_limit
            session.flush()
            return conversation
        except Exception:
            logger.exception("Error in ConversationDao.updateConversation (id=%s)", conversation_id)
            raise


class ParticipationDao:
    """
    Data Access Object (DAO) for the `participation` table.
    """

    def createParticipation(self, session: Session, participation: Participation) -> Participation:
        try:
            session.add(participation)
            session.flush()
            return participation
        except Exception:
            logger.exception("Error in ParticipationDao.createParticipation")
            raise

    def fetchParticipation(self, session: Session, conversation_id: UUID, user_id: str) -> Optional[Participation]:
        """Return the membership row of `user_id` in the conversation, or None."""
        try:
            return (
                session.query(Participation)
                .filter(Participation.conversation_id == conversation_id)
                .filter(Participation.user_id == user_id)
                .one_or_none()
            )
        except Exception:
            logger.exception("Error in ParticipationDao.fetchParticipation (conversation=%s)", conversation_id)
            raise

    def fetchParticipantsByConversationId(self, session: Session, conversation_id: UUID) -> List[Participation]:
        """Participants of a conversation in joining order."""
        try:
            return (
                session.query(Participation)
                .filter(Participation.conversation_id == conversation_id)
                .order_by(Participation.joined_at)
                .all()
            )
        except Exception:
            logger.exception("Error in ParticipationDao.fetchParticipantsByConversationId (id=%s)", conversation_id)
            raise

    def countParticipants(self, session: Session, conversation_id: UUID) -> int:
        try:
            return (
                session.query(func.count(Participation.id))
                .filter(Participation.conversation_id == conversation_id)
                .scalar()
            )
        except Exception:
            logger.exception("Error in ParticipationDao.countParticipants (id=%s)", conversation_id)
            raise
