import os

# Must be set before the app modules build their engine and settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["KEYWORD_CACHE_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shortlinks.main import app
from shortlinks.core.config import Settings, get_settings
from shortlinks.core.hooks import HookRegistry
from shortlinks.db.Models.models import Base
from shortlinks.db.Connection import database
from shortlinks.db.memory import MemoryLinkStore
from shortlinks.db.repository import SQLLinkStore, ensure_installed
from shortlinks.services.shortener import ShortLinkService


# Create in-memory SQLite database for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

BASE_URL = "http://sho.rt"


@pytest.fixture
def test_settings():
    """Settings for one test; tweak attributes freely, the instance is not shared."""
    return Settings(
        DATABASE_URL=SQLALCHEMY_TEST_DATABASE_URL,
        KEYWORD_CACHE_ENABLED=False,
        BASE_URL=BASE_URL,
        FLOOD_DELAY_SECONDS=0,
        UNIQUE_URLS=True,
        PLUGINS=[],
    )


@pytest.fixture
def hooks():
    """A fresh hook registry, also installed on the app for the duration of the test."""
    previous = app.state.hooks
    registry = HookRegistry()
    app.state.hooks = registry
    yield registry
    app.state.hooks = previous


@pytest.fixture
def db_session():
    """Creates a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    ensure_installed(db)
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sql_store(db_session):
    return SQLLinkStore(db_session)


@pytest.fixture
def memory_store():
    return MemoryLinkStore()


@pytest.fixture
def service(memory_store, hooks, test_settings):
    return ShortLinkService(memory_store, hooks, test_settings, reserved_routes=app.state.reserved_routes)


@pytest.fixture
def client(db_session, test_settings, hooks):
    """Creates a test client with overridden database and settings dependencies."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[database.get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_urls():
    """Provides sample URLs for testing."""
    return [
        "https://example.com/test1",
        "https://google.com/search?q=test",
        "https://github.com/user/repo",
    ]
