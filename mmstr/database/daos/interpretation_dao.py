"""
Interpretation DAO

Purpose
-------
Data-access layer for the `Interpretation` ORM entity:
- Create an interpretation attempt
- Fetch by id, list a user's attempts on a message, fetch the latest attempt
- Count attempts (the next attempt number is ``count + 1``)

Design
------
- Requires an active SQLAlchemy `Session` provided by the caller.
- "Latest" means highest ``attempt_number``, not newest timestamp.

Error Handling
--------------
- Methods catch generic `Exception`, log it with `logger.exception(...)`, and re-raise.
- A duplicate ``(message_id, user_id, attempt_number)`` surfaces as
  `sqlalchemy.exc.IntegrityError` from `createInterpretation`.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import asc, desc, func
from sqlalchemy.orm import Session

from mmstr.database.entities.interpretations import Interpretation

logger = logging.getLogger(__name__)


class InterpretationDao:
    """
    Data Access Object (DAO) for managing Interpretation entities.
    """

    def createInterpretation(self, session: Session, interpretation: Interpretation) -> Interpretation:
        """
        Stage and flush a new interpretation.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        interpretation : Interpretation
            Entity with its attempt number already assigned.

        Returns
        -------
        Interpretation
            The flushed entity.

        Raises
        ------
        sqlalchemy.exc.IntegrityError
            If the attempt number is already taken for (message, user).
        """
        try:
            session.add(interpretation)
            session.flush()
            return interpretation
        except Exception:
            logger.exception("Error in InterpretationDao.createInterpretation")
            raise

    def fetchInterpretationById(self, session: Session, interpretation_id: UUID) -> Optional[Interpretation]:
        try:
            return session.query(Interpretation).filter(Interpretation.id == interpretation_id).one_or_none()
        except Exception:
            logger.exception("Error in InterpretationDao.fetchInterpretationById (id=%s)", interpretation_id)
            raise

    def fetchInterpretationsByMessageAndUser(
        self, session: Session, message_id: UUID, user_id: str
    ) -> List[Interpretation]:
        """All attempts of one user on one message, attempt 1 first."""
        try:
            return (
                session.query(Interpretation)
                .filter(Interpretation.message_id == message_id)
                .filter(Interpretation.user_id == user_id)
                .order_by(asc(Interpretation.attempt_number))
                .all()
            )
        except Exception:
            logger.exception("Error in InterpretationDao.fetchInterpretationsByMessageAndUser (message=%s)", message_id)
            raise

    def fetchLatestInterpretation(self, session: Session, message_id: UUID, user_id: str) -> Optional[Interpretation]:
        """The attempt with the highest number, or None if the user never interpreted the message."""
        try:
            return (
                session.query(Interpretation)
                .filter(Interpretation.message_id == message_id)
                .filter(Interpretation.user_id == user_id)
                .order_by(desc(Interpretation.attempt_number))
                .first()
            )
        except Exception:
            logger.exception("Error in InterpretationDao.fetchLatestInterpretation (message=%s)", message_id)
            raise

    def countInterpretations(self, session: Session, message_id: UUID, user_id: str) -> int:
        try:
            return (
                session.query(func.count(Interpretation.id))
                .filter(Interpretation.message_id == message_id)
                .filter(Interpretation.user_id == user_id)
                .scalar()
            )
        except Exception:
            logger.exception("Error in InterpretationDao.countInterpretations (message=%s)", message_id)
            raise
