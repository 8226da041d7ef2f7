"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("OPENROUTER_API_KEY", "test-key")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("RUN_WORKER", "false")
os.environ.setdefault("SCHEDULE_DAILY_CHECK", "false")

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event, func  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import genieflow.models  # noqa: E402,F401
from genieflow.database import Base, get_db  # noqa: E402
from genieflow.models.workflow import WorkflowRun  # noqa: E402
from genieflow.worker import Worker  # noqa: E402
from genieflow.workflows.retry_policy import RetryPolicy  # noqa: E402


class FakeClock:
    """Settable clock passed to the worker and workflows."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)

    def set(self, value: datetime):
        self.now = value


class FakeLLM:
    """Stand-in for LLMClient that records calls.

    Queued errors are raised first, one per call; after that the texts are
    returned in order, repeating the last one.
    """

    def __init__(self, texts=None, errors=None):
        self.texts = list(texts or ["Executive Summary\n\nA generated proposal."])
        self.errors = list(errors or [])
        self.calls = []
        self.returned = 0

    def chat_completion(self, model, messages, temperature=0.7, max_tokens=4000):
        self.calls.append({"model": model, "messages": messages})
        if self.errors:
            raise self.errors.pop(0)
        text = self.texts[min(self.returned, len(self.texts) - 1)]
        self.returned += 1
        return text


@pytest.fixture(scope="function")
def session_factory():
    """Session factory bound to a fresh in-memory database."""
    # StaticPool keeps every session on the same in-memory connection
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    yield TestingSessionLocal

    engine.dispose()


@pytest.fixture(scope="function")
def test_db(session_factory):
    """Create a test database session for each test."""
    db = session_factory()

    yield db

    db.close()


@pytest.fixture
def file_session_factory(tmp_path):
    """Session factory on a SQLite file, for tests that use several threads."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'genieflow.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    # Take the write lock when the transaction starts so writers queue up
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(engine)

    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)

    engine.dispose()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 0, 0))


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def retry_policy():
    return RetryPolicy(max_attempts=3, backoff_strategy="fixed", backoff_base_seconds=60)


@pytest.fixture
def worker(session_factory, fake_llm, clock, retry_policy):
    """Worker sharing the test database, with the daily schedule off."""
    return Worker(
        session_factory=session_factory,
        llm_client=fake_llm,
        clock=clock,
        retry_policy=retry_policy,
        schedule_daily_check=False,
    )


@pytest.fixture
def drain(worker, clock, session_factory, test_db):
    """Run the worker until no run is due, jumping the clock to each wake time."""

    def _drain(max_rounds=50):
        for _ in range(max_rounds):
            worker.run_pending()

            db = session_factory()
            try:
                next_wake = (
                    db.query(func.min(WorkflowRun.wake_at))
                    .filter(WorkflowRun.status == "sleeping")
                    .scalar()
                )
            finally:
                db.close()

            if next_wake is None:
                test_db.expire_all()
                return
            clock.set(max(clock(), next_wake))

        raise AssertionError(f"Runs still pending after {max_rounds} rounds")

    return _drain


@pytest.fixture
def client(session_factory):
    """API client whose requests use the test database."""
    from genieflow.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    yield TestClient(app)

    app.dependency_overrides.clear()
