"""
DAOs Package — Data Access Layer (SQLAlchemy 2.0)
=================================================

The `daos` package provides the Data Access Layer for the application.
It encapsulates all interactions with SQLAlchemy ORM entities, providing
clean CRUD APIs for the service layer while hiding direct query details.

Conventions
-----------
- SQLAlchemy 2.0 typed mappings (Mapped[...] / mapped_column)
- Session lifecycle (open/commit/rollback) is handled by callers
- DAOs surface exceptions so upper layers decide error policy
- Fetch-by-id methods return None for missing rows

Contents
--------
- ConversationDao / ParticipationDao
    * Creates conversations, fetches by id, lists newest first, updates policy
    * Records participants and counts them against the participant limit

- MessageDao
    * Creates messages within a conversation
    * Fetches messages by conversation (chronological order) and replies

- InterpretationDao
    * Creates attempts, fetches the latest attempt, counts attempts

- GradingDao / GradingResponseDao
    * Creates and updates gradings, creates and fetches disputes

- ArbitrationDao
    * Insert-if-absent creation keyed on the interpretation
    * Chain lookup used to lock a (message, user) pair after a ruling

- BreakdownDao
    * Stores breakdowns with ordered points and fetches them by subject

Notes
-----
- Entities live under `mmstr.database.entities.*`.
- Service layer (`mmstr.database.core`) composes DAOs to implement workflows.
"""
