"""
Test configuration and fixtures for the short URL service.
This centralizes all test setup, making individual tests clean.

No test touches the network: the hostname check is replaced by a resolver
that knows a fixed set of names, and the durable store is in-memory SQLite.
"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine

from main import create_app
from shorturl_app.config import Settings
from shorturl_app.database.connection import Base, create_db_engine, init_db
from shorturl_app.services.validator import HostnameResolver, UrlValidator
from shorturl_app.storage.gateway import PersistenceGateway
from shorturl_app.storage.strategies import InMemoryUrlStore, SQLAlchemyUrlStore

PROJECT_ROOT = Path(__file__).resolve().parent.parent

KNOWN_HOSTS = {"www.freecodecamp.org", "example.com", "www.example.com", "github.com"}


class FakeResolver(HostnameResolver):
    """Resolves only the hostnames it was given"""

    def __init__(self, hosts=KNOWN_HOSTS):
        self.hosts = set(hosts)
        self.lookups = []

    async def resolves(self, hostname: str) -> bool:
        self.lookups.append(hostname)
        return hostname in self.hosts


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="",
        dns_check_enabled=False,
        reconnect_interval=0,
        max_retries=5,
        views_dir=str(PROJECT_ROOT / "views"),
        public_dir=str(PROJECT_ROOT / "public"),
    )


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def validator(resolver) -> UrlValidator:
    return UrlValidator(resolver)


@pytest.fixture(scope="function")
def engine() -> Engine:
    """
    Fresh in-memory SQLite database for each test.
    This ensures tests are isolated and don't affect each other.
    """
    engine = create_db_engine("sqlite://")
    init_db(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def sql_store(engine) -> SQLAlchemyUrlStore:
    return SQLAlchemyUrlStore(engine)


@pytest.fixture
def memory_gateway() -> PersistenceGateway:
    """Gateway with no durable store (FALLBACK_ACTIVE from the start)"""
    return PersistenceGateway(fallback=InMemoryUrlStore())


@pytest.fixture
def sql_gateway(sql_store) -> PersistenceGateway:
    """Gateway with a reachable durable store (PRIMARY_ACTIVE)"""
    return PersistenceGateway(fallback=InMemoryUrlStore(), primary=sql_store)


def _client(settings, gateway, validator):
    app = create_app(config=settings, gateway=gateway, validator=validator)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture(scope="function")
def client(test_settings, sql_gateway, validator):
    """
    Test client backed by the durable (SQLite) store.
    This is the main fixture that tests will use.
    """
    yield from _client(test_settings, sql_gateway, validator)


@pytest.fixture(scope="function")
def memory_client(test_settings, memory_gateway, validator):
    """Test client running on the in-memory store only"""
    yield from _client(test_settings, memory_gateway, validator)
