"""
Database Transaction Management
===============================

Session lifecycle for the service and flow layers.

A call chain shares one SQLAlchemy session through a context variable: the
outermost ``@transactional`` function opens it and owns commit/rollback, and
nested ``@transactional`` calls join it instead of opening their own. DAOs
never commit; they only receive the session.

The judge is never called while a session is open. Flow functions in
`mmstr.database.core.flow` run one ``@transactional`` function per storage
step and talk to the judge in between, so a slow model call holds no
connection and a failed one cannot roll back an earlier step.

Calling convention
------------------
The session is injected as the keyword argument ``session``. Decorated
functions declare it as their first parameter, so every other argument must
be passed by keyword::

    get_grading(grading_id=grading_id)
"""

import contextvars
from functools import wraps

from sqlalchemy.orm import sessionmaker

from mmstr.database.config.connection_engine import connection_engine

SessionFactory = sessionmaker(bind=connection_engine, expire_on_commit=False)
"""Session factory bound to the application engine. Objects stay readable after commit."""

db_session_context = contextvars.ContextVar("db_session_context", default=None)
"""The session of the current call chain, or None outside any transaction."""


def transactional(func):
    """
    Run ``func`` inside the current call chain's session, opening one if needed.

    Parameters
    ----------
    func : callable
        Function whose first parameter is ``session``.

    Returns
    -------
    callable
        Wrapper that injects ``session``. When it opened the session itself it
        flushes and commits on success, rolls back and re-raises on error, and
        always closes the session and clears the context.

    Example
    -------
    >>> @transactional
    ... def rename_conversation(session, conversation_id, title):
    ...     ConversationDao().updateConversation(session, conversation_id, title=title)
    ...
    >>> rename_conversation(conversation_id=conversation_id, title="Budget review")
    """
    @wraps(func)
    def wrap_func(*args, **kwargs):
        session = db_session_context.get()
        if session is not None:
            return func(*args, session=session, **kwargs)

        session = SessionFactory()
        token = db_session_context.set(session)
        try:
            result = func(*args, session=session, **kwargs)
            session.flush()
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
            db_session_context.reset(token)

        return result

    return wrap_func
