"""
URL store strategies using Strategy Pattern.

Two interchangeable record sets behind one interface:
- SQLAlchemy: durable store (PostgreSQL, MySQL, SQLite, ...)
- In-memory: volatile fallback used while the durable store is unreachable

The gateway (gateway.py) decides which one is active.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Optional

from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.engine import Engine

from shorturl_app.database.connection import create_session_factory, init_db
from shorturl_app.exceptions import DuplicateRecordError, StoreFailure
from shorturl_app.models.url import UrlRecordRow
from shorturl_app.schemas.url import UrlRecord


class UrlStore(ABC):
    """
    Abstract base class for URL stores.

    All methods are async because the durable store involves I/O; the
    in-memory variant is instant but keeps the same interface.

    Implementations raise:
    - DuplicateRecordError when an insert violates a unique key
    - StoreFailure for anything else that goes wrong
    """

    name: str = "store"

    @abstractmethod
    async def find_by_original_url(self, original_url: str) -> Optional[UrlRecord]:
        """
        Get the record for an original URL.

        Args:
            original_url: URL exactly as submitted

        Returns:
            UrlRecord or None if not stored
        """
        pass

    @abstractmethod
    async def find_by_short_url(self, short_url: int) -> Optional[UrlRecord]:
        """
        Get the record for an identifier.

        Args:
            short_url: Integer identifier

        Returns:
            UrlRecord or None if not stored
        """
        pass

    @abstractmethod
    async def count(self) -> int:
        """Number of records in this store"""
        pass

    @abstractmethod
    async def insert(self, record: UrlRecord) -> UrlRecord:
        """
        Insert a new record.

        Args:
            record: Record to store

        Returns:
            The stored record

        Raises:
            DuplicateRecordError: original_url or short_url already present
        """
        pass

    @abstractmethod
    async def ping(self) -> None:
        """Raise StoreFailure if the store cannot be reached"""
        pass

    async def prepare(self) -> None:
        """Make the store ready for use (schema, connectivity); raises StoreFailure"""
        await self.ping()

    def close(self) -> None:
        """Release resources held by the store"""
        return None


class SQLAlchemyUrlStore(UrlStore):
    """
    Durable store backed by a SQL database through SQLAlchemy.

    One short-lived session per operation; unique constraints on both
    columns (see UrlRecordRow) are the source of truth for duplicates.

    Note: Async for interface consistency, queries are sync (fast, indexed).
    """

    name = "primary"

    def __init__(self, engine: Engine):
        """
        Initialize SQLAlchemy store.

        Args:
            engine: Engine for the durable database
        """
        self.engine = engine
        self.session_factory = create_session_factory(engine)

    async def find_by_original_url(self, original_url: str) -> Optional[UrlRecord]:
        stmt = select(UrlRecordRow).where(UrlRecordRow.original_url == original_url)
        return self._first(stmt)

    async def find_by_short_url(self, short_url: int) -> Optional[UrlRecord]:
        stmt = select(UrlRecordRow).where(UrlRecordRow.short_url == short_url)
        return self._first(stmt)

    async def count(self) -> int:
        try:
            with self.session_factory() as session:
                return session.scalar(select(func.count()).select_from(UrlRecordRow)) or 0
        except SQLAlchemyError as e:
            raise StoreFailure(f"count failed: {e}") from e

    async def insert(self, record: UrlRecord) -> UrlRecord:
        try:
            with self.session_factory() as session:
                session.add(UrlRecordRow(
                    original_url=record.original_url,
                    short_url=record.short_url,
                ))
                session.commit()
        except IntegrityError as e:
            raise DuplicateRecordError(
                f"{record.original_url!r} or {record.short_url} already stored"
            ) from e
        except SQLAlchemyError as e:
            raise StoreFailure(f"insert failed: {e}") from e
        return record

    async def ping(self) -> None:
        try:
            with self.session_factory() as session:
                session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StoreFailure(f"ping failed: {e}") from e

    async def prepare(self) -> None:
        """Create the url_records table if missing, then ping

        Runs in a worker thread: it targets a store that may be down, and a
        connect timeout must not stall the event loop.
        """
        await asyncio.to_thread(self._prepare_sync)

    def close(self) -> None:
        """Release pooled connections"""
        self.engine.dispose()

    def _prepare_sync(self) -> None:
        try:
            init_db(self.engine)
            with self.session_factory() as session:
                session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StoreFailure(f"schema setup failed: {e}") from e

    def _first(self, stmt) -> Optional[UrlRecord]:
        """Run a select and convert the first row to a UrlRecord"""
        try:
            with self.session_factory() as session:
                row = session.scalars(stmt).first()
                return UrlRecord.model_validate(row) if row else None
        except SQLAlchemyError as e:
            raise StoreFailure(f"lookup failed: {e}") from e


class InMemoryUrlStore(UrlStore):
    """
    Volatile fallback store using two Python dicts.

    Pros:
    - Always available (no external service)
    - Instant lookups on both keys

    Cons:
    - Lost on restart
    - Not shared between processes
    - Never synchronized with the durable store

    Each method runs without awaiting anything, so on a single event loop
    the uniqueness check and the write in insert() cannot interleave with
    another request.
    """

    name = "fallback"

    def __init__(self):
        """Initialize empty record set"""
        self._by_original: Dict[str, UrlRecord] = {}
        self._by_short: Dict[int, UrlRecord] = {}

    async def find_by_original_url(self, original_url: str) -> Optional[UrlRecord]:
        return self._by_original.get(original_url)

    async def find_by_short_url(self, short_url: int) -> Optional[UrlRecord]:
        return self._by_short.get(short_url)

    async def count(self) -> int:
        return len(self._by_short)

    async def insert(self, record: UrlRecord) -> UrlRecord:
        if record.original_url in self._by_original or record.short_url in self._by_short:
            raise DuplicateRecordError(
                f"{record.original_url!r} or {record.short_url} already stored"
            )
        self._by_original[record.original_url] = record
        self._by_short[record.short_url] = record
        return record

    async def ping(self) -> None:
        return None
