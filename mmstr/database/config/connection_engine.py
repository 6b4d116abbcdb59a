"""
Connection Engine (SQLAlchemy)

Purpose
-------
Centralizes database initialization for the application:
- Parses the SQLAlchemy connection URL from environment-backed settings.
- Creates the Engine (connection pool + SQL execution entry point).
- Defines shared MetaData for table and schema objects.
- Exposes a Declarative Base class for ORM models.
- Creates the schema on startup (`init_db`).

Notes
-----
- SQLite URLs get `check_same_thread=False` so FastAPI's worker threads can
  share the pool, and the parent directory of a file database is created.
- All ORM models must inherit from `declarativeBase` to participate in schema
  creation and enable ORM features.
"""

import logging
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base
from sqlalchemy.schema import MetaData

from mmstr.database.config.config import settings

logger = logging.getLogger(__name__)

connection_url = make_url(settings.DATABASE_URL)
"""Parsed SQLAlchemy URL taken from `settings.DATABASE_URL`."""

_connect_args = {}
if connection_url.get_backend_name() == "sqlite":
    _connect_args["check_same_thread"] = False
    if connection_url.database and connection_url.database != ":memory:":
        Path(connection_url.database).parent.mkdir(parents=True, exist_ok=True)

connection_engine = create_engine(connection_url, connect_args=_connect_args)
"""Engine object: Core interface to the database.
Responsible for managing connections, executing SQL, and pooling.
"""

if connection_url.get_backend_name() == "sqlite":

    # pysqlite defers BEGIN until the first DML statement, which breaks
    # SAVEPOINT handling; take over transaction control from the driver.
    @event.listens_for(connection_engine, "connect")
    def _configure_sqlite_connection(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(connection_engine, "begin")
    def _begin_sqlite_transaction(conn):
        conn.exec_driver_sql("BEGIN")


metadata = MetaData()
"""
Metadata object: Stores schema-level information about tables, constraints, indexes, etc. Shared across all models.
"""

declarativeBase = declarative_base(metadata=metadata)
"""Declarative Base: Root class for ORM models.
All model classes should inherit from this to gain ORM features and automatic schema generation.
"""


def init_db() -> None:
    """Create every table registered on `metadata` that does not exist yet."""
    # Entities register themselves on import.
    import mmstr.database.entities  # noqa: F401

    metadata.create_all(bind=connection_engine)
    logger.info("Database schema ready at %s", connection_url.render_as_string(hide_password=True))
