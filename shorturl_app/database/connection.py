"""
SQLAlchemy wiring for the durable store.

The engine is built from ``settings.database_url`` at startup rather than at
import time: an empty URL means the service runs on the in-memory fallback
and no engine exists at all.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    pass


def create_db_engine(database_url: str, connect_timeout: int = 5) -> Engine:
    """
    Create an engine for the durable store.

    Args:
        database_url: SQLAlchemy URL, e.g. "postgresql+psycopg://..." or "sqlite:///./urls.db"
        connect_timeout: Driver connect timeout in seconds (ignored by SQLite)

    Returns:
        A configured Engine (no connection is opened yet)
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # In-memory SQLite lives inside a single connection
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,
        connect_args={"connect_timeout": connect_timeout},
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to the given engine"""
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create the url_records table if it doesn't exist"""
    # Import models to ensure they're registered with Base
    from shorturl_app.models import UrlRecordRow  # noqa: F401

    Base.metadata.create_all(bind=engine)
