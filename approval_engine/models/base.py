"""
Database engine, session management, and base model.

This module is the foundation for all database operations.
Every model inherits from Base. Every request gets a session
from get_db().
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from approval_engine.config import get_settings

settings = get_settings()


def store_connect_args(database_url: str, timeout_seconds: float) -> dict:
    """
    Build driver arguments that bound every store call.

    SQLite waits on a locked database for at most `timeout` seconds.
    PostgreSQL cancels any statement running longer than
    statement_timeout. Either way the driver raises an
    OperationalError instead of blocking forever.
    """
    backend = make_url(database_url).get_backend_name()
    if backend == "sqlite":
        return {"check_same_thread": False, "timeout": timeout_seconds}
    if backend == "postgresql":
        timeout_ms = int(timeout_seconds * 1000)
        return {
            "connect_timeout": max(1, int(timeout_seconds)),
            "options": f"-c statement_timeout={timeout_ms}",
        }
    return {}


# --- Engine ---
# pool_pre_ping=True tests connections before using them,
# which handles cases where the database restarted or a
# connection went stale.
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=store_connect_args(
        settings.DATABASE_URL, settings.STORE_TIMEOUT_SECONDS
    ),
)

# --- Session Factory ---
# autocommit=False means every state transition is committed
# explicitly, status and history together or not at all.
# autoflush=False means nothing reaches the database until
# the store flushes the compare-and-set write.
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


# --- Base Model Class ---
class Base(DeclarativeBase):
    pass


# --- Dependency for FastAPI ---
def get_db():
    """
    Provide a database session for a single request.

    Each request handler runs on its own thread with its own
    session, so concurrent decisions on the same record meet
    only at the database, where the version check settles them.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
