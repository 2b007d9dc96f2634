"""
Folio - Database Configuration
===============================
Engine, SessionLocal, Base, get_db dependency and the transactional() unit of work.
All models across all modules inherit from this Base.
"""

from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from config.settings import DATABASE_URL


def enable_sqlite_transactions(engine: Engine) -> Engine:
    """
    pysqlite defers BEGIN and breaks SAVEPOINT handling; take over
    transaction control so nested transactions and FK checks work.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


if DATABASE_URL.startswith("sqlite"):
    engine = enable_sqlite_transactions(
        create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
    )
else:
    engine = create_engine(
        DATABASE_URL,
        pool_size=20,
        max_overflow=40,
        pool_timeout=30,
        pool_recycle=1800,  # Refresh connections every 30 minutes
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency: yields a database session, auto-closes after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transactional(db: Session):
    """
    Unit of work around a service call.
    Commits on success; on any exception rolls back first, then re-raises.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
