"""
The `database` package owns everything persisted by the interpretation
protocol: conversations, messages, interpretation attempts, gradings,
disputes, arbitrations and breakdowns.

Contents:
    - config:
        Settings (`pydantic-settings`) and the SQLAlchemy engine, metadata,
        declarative base and `init_db`.

    - entities:
        ORM models, one module per aggregate, with the uniqueness and check
        constraints the state machine relies on.

    - daos:
        One DAO per entity; caller-supplied session, no commits.

    - core:
        `funcs` (conversation/message services and read models) and `flow`
        (submission, grading, decisions, disputes and arbitration).

    - helpers:
        `@transactional` session management.
"""
