# session.py
# Configures the database connection and session management using SQLAlchemy.

import logging
import os
import time
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import Pool

from eatinn.core.config import settings
from eatinn.exceptions import OperationTimeout

logger = logging.getLogger(__name__)

DEADLINE_KEY = "eatinn_deadline"


def build_engine(url: str, **kwargs) -> Engine:
    """
    Create an engine for the given URL. SQLite connections are shared across
    threads by the FastAPI worker pool, so same-thread checking is disabled.
    """
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        kwargs["connect_args"] = connect_args
        database = make_url(url).database
        if database and database != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(database)), exist_ok=True)
    return create_engine(url, **kwargs)


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection.
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@event.listens_for(Engine, "before_cursor_execute")
def _enforce_deadline(conn, cursor, statement, parameters, context, executemany):
    deadline = conn.info.get(DEADLINE_KEY)
    if deadline is not None and time.monotonic() > deadline:
        logger.warning("Refusing to run statement past the operation deadline")
        raise OperationTimeout()


@event.listens_for(Pool, "checkin")
def _clear_deadline(dbapi_connection, connection_record):
    # A connection handed back to the pool must not carry a deadline into its next checkout.
    if connection_record is not None:
        connection_record.info.pop(DEADLINE_KEY, None)


@contextmanager
def operation_deadline(db: Session, seconds: float | None = None):
    """
    Bound every statement issued on the session's connection inside the block
    by a single deadline. Statements started after the deadline raise
    OperationTimeout; on PostgreSQL the remaining time is also handed to the
    server as a statement_timeout so in-flight work is cancelled there.
    """
    if seconds is None:
        seconds = settings.DB_OPERATION_TIMEOUT

    connection = db.connection()
    # The deadline lives on the pooled connection for as long as this operation
    # holds it; it is dropped when the connection is checked back in.
    info = connection.info
    deadline = time.monotonic() + seconds
    info[DEADLINE_KEY] = deadline
    if connection.dialect.name == "postgresql":
        connection.exec_driver_sql(f"SET LOCAL statement_timeout = {max(1, int(seconds * 1000))}")
    try:
        yield
    finally:
        # After a commit the connection may already be serving another operation.
        if info.get(DEADLINE_KEY) is deadline:
            del info[DEADLINE_KEY]


# Dependency to get a database session.
# This will be used in our API endpoints to get a session for database operations.
def get_db():
    """
    SQLAlchemy session generator.
    Yields a session and ensures it's closed afterward.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
