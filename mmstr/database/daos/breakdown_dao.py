"""
Breakdown DAO

Purpose
-------
Data-access layer for `Breakdown` and its ordered `Point` rows:
- Create a breakdown for a subject together with its points
- Fetch the breakdown of a subject and its points in order

Design
------
- Requires an active SQLAlchemy `Session` provided by the caller.
- Subjects are addressed through `BreakdownSubject`, never through the raw
  nullable columns.
- Point order is taken from list position (0..n-1); callers pass already
  normalized texts.

Error Handling
--------------
- Methods catch generic `Exception`, log it with `logger.exception(...)`, and re-raise.
"""

import logging
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import asc
from sqlalchemy.orm import Session

from mmstr.database.entities.breakdowns import Breakdown, Point
from mmstr.protocol.states import BreakdownSubject, SubjectKind

logger = logging.getLogger(__name__)


class BreakdownDao:
    """
    Data Access Object (DAO) for Breakdown / Point entities.
    """

    def createBreakdown(
        self, session: Session, subject: BreakdownSubject, point_texts: Sequence[str]
    ) -> Tuple[Breakdown, List[Point]]:
        """
        Store a breakdown and its points.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        subject : BreakdownSubject
            Message or interpretation being decomposed.
        point_texts : Sequence[str]
            Point texts in order; stored with ``order`` 0..n-1.

        Returns
        -------
        tuple[Breakdown, list[Point]]
            The breakdown row and its point rows.
        """
        try:
            breakdown = Breakdown(subject)
            session.add(breakdown)
            session.flush()
            points = [Point(breakdown.id, text, order) for order, text in enumerate(point_texts)]
            session.add_all(points)
            session.flush()
            return breakdown, points
        except Exception:
            logger.exception("Error in BreakdownDao.createBreakdown (%s)", subject)
            raise

    def fetchBreakdownBySubject(self, session: Session, subject: BreakdownSubject) -> Optional[Breakdown]:
        try:
            query = session.query(Breakdown)
            if subject.kind == SubjectKind.MESSAGE:
                query = query.filter(Breakdown.message_id == subject.subject_id)
            elif subject.kind == SubjectKind.INTERPRETATION:
                query = query.filter(Breakdown.interpretation_id == subject.subject_id)
            else:
                raise ValueError(f"Unhandled breakdown subject kind: {subject.kind!r}")
            return query.one_or_none()
        except Exception:
            logger.exception("Error in BreakdownDao.fetchBreakdownBySubject (%s)", subject)
            raise

    def fetchPointsByBreakdownId(self, session: Session, breakdown_id: UUID) -> List[Point]:
        """Points of a breakdown, ``order`` ascending."""
        try:
            return (
                session.query(Point)
                .filter(Point.breakdown_id == breakdown_id)
                .order_by(asc(Point.order))
                .all()
            )
        except Exception:
            logger.exception("Error in BreakdownDao.fetchPointsByBreakdownId (id=%s)", breakdown_id)
            raise
