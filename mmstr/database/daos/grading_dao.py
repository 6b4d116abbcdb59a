"""
Grading DAO

Purpose
-------
Data-access layer for `Grading` (table `interpretation_grading`) and
`GradingResponse` (table `interpretation_grading_response`, the dispute):
- Create a grading, fetch by id or by interpretation, update status / notes
- Create a dispute, fetch by id or by grading

Design
------
- Requires an active SQLAlchemy `Session` provided by the caller.
- `updateGrading` performs no transition checks; the state machine rules in
  `mmstr.protocol.machine` are applied by the service layer before calling it.

Error Handling
--------------
- Methods catch generic `Exception`, log it with `logger.exception(...)`, and re-raise.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from mmstr.database.entities.gradings import Grading, GradingResponse
from mmstr.protocol.states import GradingStatus

logger = logging.getLogger(__name__)

_UNSET = object()


class GradingDao:
    """
    Data Access Object (DAO) for managing Grading entities.
    """

    def createGrading(self, session: Session, grading: Grading) -> Grading:
        """
        Stage and flush a new grading.

        Raises
        ------
        sqlalchemy.exc.IntegrityError
            If the interpretation is already graded.
        """
        try:
            session.add(grading)
            session.flush()
            return grading
        except Exception:
            logger.exception("Error in GradingDao.createGrading")
            raise

    def fetchGradingById(self, session: Session, grading_id: UUID) -> Optional[Grading]:
        try:
            return session.query(Grading).filter(Grading.id == grading_id).one_or_none()
        except Exception:
            logger.exception("Error in GradingDao.fetchGradingById (id=%s)", grading_id)
            raise

    def fetchGradingByInterpretationId(self, session: Session, interpretation_id: UUID) -> Optional[Grading]:
        try:
            return session.query(Grading).filter(Grading.interpretation_id == interpretation_id).one_or_none()
        except Exception:
            logger.exception("Error in GradingDao.fetchGradingByInterpretationId (id=%s)", interpretation_id)
            raise

    def updateGrading(
        self,
        session: Session,
        grading_id: UUID,
        status: Optional[GradingStatus] = None,
        notes=_UNSET,
    ) -> Optional[Grading]:
        """
        Update status and/or notes of a grading.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        grading_id : UUID
            Grading to update.
        status : GradingStatus, optional
            New status; unchanged when None.
        notes : str | None, optional
            New notes; unchanged when omitted, cleared when None.

        Returns
        -------
        Grading | None
            The updated grading, or None if it does not exist.
        """
        try:
            grading = self.fetchGradingById(session, grading_id)
            if grading is None:
                return None
            if status is not None:
                grading.status = status
            if notes is not _UNSET:
                grading.notes = notes
            session.flush()
            return grading
        except Exception:
            logger.exception("Error in GradingDao.updateGrading (id=%s)", grading_id)
            raise


class GradingResponseDao:
    """
    Data Access Object (DAO) for disputes (`GradingResponse`).
    """

    def createGradingResponse(self, session: Session, response: GradingResponse) -> GradingResponse:
        """
        Stage and flush a dispute.

        Raises
        ------
        sqlalchemy.exc.IntegrityError
            If the grading was already disputed.
        """
        try:
            session.add(response)
            session.flush()
            return response
        except Exception:
            logger.exception("Error in GradingResponseDao.createGradingResponse")
            raise

    def fetchGradingResponseById(self, session: Session, response_id: UUID) -> Optional[GradingResponse]:
        try:
            return session.query(GradingResponse).filter(GradingResponse.id == response_id).one_or_none()
        except Exception:
            logger.exception("Error in GradingResponseDao.fetchGradingResponseById (id=%s)", response_id)
            raise

    def fetchGradingResponseByGradingId(self, session: Session, grading_id: UUID) -> Optional[GradingResponse]:
        try:
            return session.query(GradingResponse).filter(GradingResponse.grading_id == grading_id).one_or_none()
        except Exception:
            logger.exception("Error in GradingResponseDao.fetchGradingResponseByGradingId (id=%s)", grading_id)
            raise
