"""
Entities Package — SQLAlchemy 2.0 ORM Models (UUID + UTC)
=========================================================

The `entities` package defines the ORM models of the application, mapping
database tables to Python classes using SQLAlchemy 2.0-typed mappings.
These classes form the persistence backbone and are consumed by DAOs
(`daos` package) to perform CRUD and transactional operations.

Tech Stack & Conventions
------------------------
- Portable `Uuid` columns (native on PostgreSQL, CHAR(32) on SQLite)
- Timezone-aware timestamps (UTC)
- SQLAlchemy 2.0 style `Mapped[...]` + `mapped_column(...)`
- Closed status sets stored as non-native enums with CHECK constraints
- Unique foreign keys for every "exactly one" / "at most one" relationship

Contents
--------
- Conversation
    Policy holder: `max_attempts`, `participant_limit`, `title`.

- Participation
    Membership of a user in a conversation, unique per (conversation, user).

- Message
    A validated message in a conversation, optionally replying to another.

- Interpretation
    A restatement of a message by another user. Unique per
    (message_id, user_id, attempt_number).

- Grading
    Table `interpretation_grading`; one per interpretation. Status
    pending / accepted / rejected, judge score, auto-accept suggestion, notes.

- GradingResponse
    Table `interpretation_grading_response`; the dispute of a grading, at
    most one per grading.

- Arbitration
    The terminal accept / reject ruling, at most one per interpretation.

- Breakdown / Point
    Ordered atomic assertions extracted from exactly one message or
    interpretation.

Usage
-----
Importing this package registers every table on the shared `metadata`, which
`init_db` relies on.
"""

from mmstr.database.entities.arbitrations import Arbitration
from mmstr.database.entities.breakdowns import Breakdown, Point
from mmstr.database.entities.conversations import Conversation, Participation
from mmstr.database.entities.gradings import Grading, GradingResponse
from mmstr.database.entities.interpretations import Interpretation
from mmstr.database.entities.messages import Message

__all__ = [
    "Arbitration",
    "Breakdown",
    "Conversation",
    "Grading",
    "GradingResponse",
    "Interpretation",
    "Message",
    "Participation",
    "Point",
]
