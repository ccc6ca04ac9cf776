"""
Shared test fixtures.

Sets up an isolated test database so tests never touch
the real database. Tables are created before each test and
dropped after it — no test data persists.

The engine commits its own transitions, so tests observe
committed state exactly as a second request would.
"""

import os

# Point the application at SQLite before it builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from approval_engine.main import app
from approval_engine.models.base import Base, get_db, store_connect_args
from approval_engine.services.events import get_publisher


# Use a file-backed SQLite database so that several sessions
# (and threads) can see each other's commits.
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args=store_connect_args(TEST_DATABASE_URL, 10),
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """Fresh schema per test; every test starts with no principals."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    """Open extra sessions, e.g. one per simulated administrator."""
    sessions = []

    def make():
        session = TestSessionLocal()
        sessions.append(session)
        return session

    yield make
    for session in sessions:
        session.rollback()
        session.close()


@pytest.fixture
def db_session(session_factory):
    """Provide a database session for direct service testing."""
    return session_factory()


@pytest.fixture
def events():
    """Collect every DecisionCommitted event published during a test."""
    received = []
    publisher = get_publisher()
    publisher.subscribe(received.append)
    yield received
    publisher.unsubscribe(received.append)


@pytest.fixture
def read_outage():
    """
    Make every SELECT fail while switched on.

    Set read_outage["message"] to pick the driver error, e.g.
    "database is locked" for a timeout.
    """
    state = {"on": False, "message": "disk I/O error"}

    def fail_reads(conn, cursor, statement, parameters, context, executemany):
        if state["on"] and statement.lstrip().upper().startswith("SELECT"):
            raise OperationalError(
                statement, parameters, Exception(state["message"])
            )

    event.listen(engine, "before_cursor_execute", fail_reads)
    yield state
    state["on"] = False
    event.remove(engine, "before_cursor_execute", fail_reads)


@pytest.fixture
def client(db_session):
    """HTTP client whose requests share db_session."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
