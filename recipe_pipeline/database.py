"""
Database setup and session management.
"""
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from recipe_pipeline.config_loader import get_database_url
from recipe_pipeline.models import Base


def _enable_sqlite_transactions(engine):
    """Let SQLAlchemy own BEGIN so SAVEPOINTs work, and turn on foreign keys."""

    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        # Disable pysqlite's own transaction handling
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_db_engine(url=None, echo=False):
    """Create an engine; in-memory SQLite shares one connection across sessions."""
    url = url or get_database_url()
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **kwargs)
        _enable_sqlite_transactions(engine)
        return engine
    return create_engine(url, echo=echo)


def create_session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


# Set echo=True for debugging SQL queries
engine = create_db_engine()

# Create session factory
SessionLocal = create_session_factory(engine)


def init_db(bind=None):
    """Initialize the database by creating all tables."""
    bind = bind or engine
    database = bind.url.database
    if bind.url.drivername.startswith("sqlite") and database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=bind)


@contextmanager
def session_scope(session_factory=None):
    """One transaction: commit on success, roll back and re-raise on failure."""
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
