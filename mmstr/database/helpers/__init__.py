"""
The `helpers` package holds the session plumbing shared by the service and
flow layers.

Contents
--------
- transactionManagement
    - `SessionFactory`: sessions bound to the application engine; objects stay
      readable after commit so flow steps can hand entities to the judge
    - `db_session_context`: the active session of the current call chain
    - `@transactional`: joins the active session when there is one, otherwise
      opens one, commits on success, rolls back on error and closes it.
      Decorated functions take the session as their first parameter and are
      called with keyword arguments.
"""
