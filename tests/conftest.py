"""Pytest configuration and shared fixtures."""

import os
import tempfile
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Generator, Optional

# The package reads its configuration at import time, so the test
# environment has to be in place before anything imports it.
_TEST_DIR = Path(tempfile.mkdtemp(prefix="followup-tests-"))
os.environ["FOLLOWUP_CONFIG_FILE"] = str(_TEST_DIR / "config.json")
os.environ["FOLLOWUP_LOG_TO_FILE"] = "0"
os.environ["FOLLOWUP_DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'followup_test.db'}"

import pytest
from alembic import command
from fastapi.testclient import TestClient
from sqlalchemy import text
from sqlalchemy.orm import sessionmaker

# Tables emptied after each test, children first
_TABLES = ("tracking_lines", "tracking_documents", "purchase_orders", "line_statuses")

# Global test state
_test_db_url: Optional[str] = None


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture(scope="session")
def setup_test_env():
    """Create a temporary SQLite database and migrate it to head."""
    global _test_db_url

    from followup_tracker.launcher import build_alembic_config

    _test_db_url = os.environ["FOLLOWUP_DATABASE_URL"]
    command.upgrade(build_alembic_config(_test_db_url), "head")

    yield _test_db_url


@pytest.fixture
def test_db(setup_test_env):
    """Session factory over the migrated database; tables are emptied afterwards."""
    from followup_tracker.db.database import create_database_engine

    engine = create_database_engine(setup_test_env)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    yield TestingSessionLocal

    with engine.begin() as conn:
        for table in _TABLES:
            conn.execute(text(f"DELETE FROM {table}"))
    engine.dispose()


@pytest.fixture
def db_session(test_db):
    """A database session closed after the test."""
    session = test_db()

    yield session

    session.close()


@pytest.fixture
def frozen_clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 3, 15, 9, 30, 0))


@pytest.fixture
def sql_container(db_session, frozen_clock):
    """Repository container bound to the test session."""
    from followup_tracker.repositories.sqlalchemy_impl import create_sqlalchemy_container

    return create_sqlalchemy_container(db_session, clock=frozen_clock)


@pytest.fixture
def memory_store(frozen_clock):
    from followup_tracker.repositories.memory_impl import MemoryDocumentStore

    return MemoryDocumentStore(clock=frozen_clock)


@pytest.fixture
def memory_container(memory_store):
    from followup_tracker.repositories.memory_impl import create_memory_container

    return create_memory_container(memory_store)


@pytest.fixture
def seeded_purchase_orders(db_session):
    """Purchase orders of two counterparties, open and closed."""
    from followup_tracker.db.models import PurchaseOrderRow

    rows = [
        PurchaseOrderRow(id=101, doc_number=5001, counterparty_code="S001",
                         counterparty_name="Acme Supplies", external_reference="ACM-17",
                         doc_date=date(2024, 1, 10), doc_status="O"),
        PurchaseOrderRow(id=102, doc_number=5002, counterparty_code="S001",
                         counterparty_name="Acme Supplies", external_reference="ACM-18",
                         doc_date=date(2024, 2, 1), doc_status="O"),
        PurchaseOrderRow(id=103, doc_number=5003, counterparty_code="S001",
                         counterparty_name="Acme Supplies",
                         doc_date=date(2024, 2, 20), doc_status="C"),
        PurchaseOrderRow(id=104, doc_number=5004, counterparty_code="S001",
                         counterparty_name="Acme Supplies",
                         doc_date=date(2024, 2, 1), doc_status="O"),
        PurchaseOrderRow(id=201, doc_number=6001, counterparty_code="S002",
                         counterparty_name="Bolt & Co",
                         doc_date=date(2024, 1, 5), doc_status="O"),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return rows


@pytest.fixture
def make_header():
    """Factory for headers ready to be saved."""
    from followup_tracker.domain.models import TrackingHeader

    def _maker(counterparty_code: str = "S001", **fields):
        fields.setdefault("counterparty_name", "Acme Supplies")
        fields.setdefault("document_date", date(2024, 3, 15))
        return TrackingHeader(counterparty_code=counterparty_code, **fields)

    return _maker


@pytest.fixture
def make_lines():
    """Factory for meaningful lines with a status, ordered from 1."""
    from followup_tracker.domain.models import TrackingLine

    def _maker(*descriptions: str, status: str = "0"):
        descriptions = descriptions or ("Order confirmed by supplier",)
        return [
            TrackingLine(order=position, description=description, status=status)
            for position, description in enumerate(descriptions, start=1)
        ]

    return _maker


@pytest.fixture
def client(test_db) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override."""
    from followup_tracker.main import app
    from followup_tracker.db.database import get_db

    def override_get_db():
        # Use a fresh session per request in tests
        db = test_db()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    # Clear overrides to avoid affecting other tests
    app.dependency_overrides.clear()
