"""
Arbitration DAO

Purpose
-------
Data-access layer for the `Arbitration` ORM entity:
- Insert-if-absent creation keyed on ``interpretation_id``
- Fetch by id or interpretation
- Chain lookup: does any interpretation of (message, user) carry a ruling?

Design
------
- Requires an active SQLAlchemy `Session` provided by the caller.
- `createArbitrationIfAbsent` inserts inside a SAVEPOINT. When a concurrent
  request already inserted a ruling for the same interpretation, the unique
  constraint fires, the savepoint is rolled back, and the existing row is
  returned. The enclosing transaction stays usable.

Error Handling
--------------
- Methods catch generic `Exception`, log it with `logger.exception(...)`, and re-raise.
"""

import logging
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mmstr.database.entities.arbitrations import Arbitration
from mmstr.database.entities.interpretations import Interpretation

logger = logging.getLogger(__name__)


class ArbitrationDao:
    """
    Data Access Object (DAO) for managing Arbitration entities.
    """

    def createArbitrationIfAbsent(self, session: Session, arbitration: Arbitration) -> Tuple[Arbitration, bool]:
        """
        Insert a ruling unless the interpretation already has one.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        arbitration : Arbitration
            The ruling to insert.

        Returns
        -------
        tuple[Arbitration, bool]
            The stored ruling and whether this call created it.
        """
        try:
            existing = self.fetchArbitrationByInterpretationId(session, arbitration.interpretation_id)
            if existing is not None:
                return existing, False

            try:
                with session.begin_nested():
                    session.add(arbitration)
                return arbitration, True
            except IntegrityError:
                existing = self.fetchArbitrationByInterpretationId(session, arbitration.interpretation_id)
                if existing is None:
                    raise
                logger.info(
                    "Arbitration for interpretation %s was created concurrently; keeping the existing ruling",
                    arbitration.interpretation_id,
                )
                return existing, False
        except Exception:
            logger.exception("Error in ArbitrationDao.createArbitrationIfAbsent")
            raise

    def fetchArbitrationById(self, session: Session, arbitration_id: UUID) -> Optional[Arbitration]:
        try:
            return session.query(Arbitration).filter(Arbitration.id == arbitration_id).one_or_none()
        except Exception:
            logger.exception("Error in ArbitrationDao.fetchArbitrationById (id=%s)", arbitration_id)
            raise

    def fetchArbitrationByInterpretationId(self, session: Session, interpretation_id: UUID) -> Optional[Arbitration]:
        try:
            return (
                session.query(Arbitration)
                .filter(Arbitration.interpretation_id == interpretation_id)
                .one_or_none()
            )
        except Exception:
            logger.exception("Error in ArbitrationDao.fetchArbitrationByInterpretationId (id=%s)", interpretation_id)
            raise

    def fetchChainArbitration(self, session: Session, message_id: UUID, user_id: str) -> Optional[Arbitration]:
        """
        Return the ruling on any of `user_id`'s interpretations of the message.

        A chain holds at most one ruling in practice: the first ruling locks it.
        """
        try:
            return (
                session.query(Arbitration)
                .join(Interpretation, Interpretation.id == Arbitration.interpretation_id)
                .filter(Interpretation.message_id == message_id)
                .filter(Interpretation.user_id == user_id)
                .order_by(Arbitration.created_at)
                .first()
            )
        except Exception:
            logger.exception("Error in ArbitrationDao.fetchChainArbitration (message=%s)", message_id)
            raise
