import logging
from contextlib import contextmanager
from datetime import datetime, timezone

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session

from .config import Settings
from .errors import ConflictError, InternalError

logger = logging.getLogger(__name__)

# SQLSTATEs PostgreSQL reports when a transaction lost a race for a row or snapshot
_PG_CONTENTION_CODES = {"40001", "40P01", "55P03"}


class Base(DeclarativeBase):
    pass


class Database:
    """
    Owns the engine and session factory for one relational store.
    Created at application startup and disposed at shutdown.
    """

    def __init__(self, settings: Settings):
        self.url = settings.DATABASE_URL
        connect_args = {}
        if settings.is_sqlite:
            connect_args = {"check_same_thread": False, "timeout": settings.SQLITE_BUSY_TIMEOUT}
        self.engine = create_engine(self.url, connect_args=connect_args)
        if settings.is_sqlite:
            _serialize_sqlite_transactions(self.engine)
        self._factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def session(self) -> Session:
        """Plain session for reads; use as a context manager."""
        return self._factory()

    def begin(self):
        """Session with a transaction that commits on success and rolls back on any exception."""
        return self._factory.begin()

    def ensure_schema(self):
        # Import models so every table is registered on Base.metadata
        from . import models  # noqa: F401

        Base.metadata.create_all(self.engine)
        logger.info("Database schema ensured for %s", self.engine.url.render_as_string(hide_password=True))

    def dispose(self):
        self.engine.dispose()


def _serialize_sqlite_transactions(engine):
    """
    pysqlite defers BEGIN until the first write, so two transactions could both
    read "no overlap" before either inserts. Take the write lock up front instead.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def is_contention_error(err: DBAPIError) -> bool:
    """True when the store rejected the transaction because a concurrent one holds the data."""
    orig = getattr(err, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code in _PG_CONTENTION_CODES:
        return True
    return "database is locked" in str(orig).lower()


def get_database(request: Request) -> Database:
    return request.app.state.database


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@contextmanager
def translate_store_errors(action: str):
    """
    Map store failures to the caller-facing taxonomy. Business errors pass through;
    lock/serialization losses become ConflictError, anything else InternalError.
    """
    try:
        yield
    except DBAPIError as err:
        if is_contention_error(err):
            logger.info("Concurrent transaction won during %s: %s", action, err.orig)
            raise ConflictError("The room was modified concurrently; please resubmit") from err
        logger.exception("Database error during %s", action)
        raise InternalError() from err
    except SQLAlchemyError as err:
        logger.exception("Database error during %s", action)
        raise InternalError() from err
