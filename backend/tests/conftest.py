"""
Shared test fixtures.

Tests run against an in-memory SQLite catalog and an in-memory staging store
driven by a fake clock.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from catalog_import.database import Base, enable_sqlite_savepoints
from catalog_import import models  # noqa: F401
from catalog_import.services.catalog_store import SqlCatalogStore
from catalog_import.services.csv_import_service import ImportService
from catalog_import.services.staging_store import InMemoryStagingStore


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ===================
# STAGING
# ===================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryStagingStore(session_ttl=1800, result_ttl=604800, clock=clock)


@pytest.fixture
def service(store):
    return ImportService(store, max_rows=5000, batch_size=100, preview_rows=100)


# ===================
# CATALOG DATABASE
# ===================

@pytest.fixture
def engine():
    engine = enable_sqlite_savepoints(
        create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog(db):
    return SqlCatalogStore(db)


@pytest.fixture
def simple_csv():
    return "title,author,price\nMoby Dick,Melville,19.99\n1984,Orwell,14.99"
