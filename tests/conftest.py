"""
Test configuration and fixtures for the short link service.
This centralizes all test setup, making individual tests clean.
"""

import os

# Configure the app before it is imported: no Redis, no background
# aggregator, throwaway database for the app's own engine
os.environ["CACHE_BACKEND"] = "memory"
os.environ["RUN_VIEW_AGGREGATOR"] = "false"
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from main import app
from shortlink_app.cache.strategies import InMemoryCache
from shortlink_app.database.connection import Base, get_db
from shortlink_app.dependencies import get_cache
from shortlink_app.services.url_service import URLService
from shortlink_app.storage.strategies import SQLAlchemyURLStorage

# Test database configuration: one shared in-memory connection
SQLALCHEMY_DATABASE_URL = "sqlite://"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    This ensures tests are isolated and don't affect each other.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db_session):
    """Session factory bound to the test database (tables already created)"""
    return TestingSessionLocal


@pytest.fixture
def cache():
    """Fresh in-memory cache per test"""
    return InMemoryCache(url_ttl=3600, verification_ttl=300)


@pytest.fixture
def storage(db_session):
    return SQLAlchemyURLStorage(db_session)


@pytest.fixture
def url_service(storage, cache):
    return URLService(storage=storage, cache=cache)


@pytest.fixture(scope="function")
def client(db_session, cache):
    """
    Create a test client with database and cache dependencies overridden.
    This is the main fixture that API tests use.
    """
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
