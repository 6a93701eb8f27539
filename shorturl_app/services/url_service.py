import logging
import re
from typing import Any, Optional

from shorturl_app.config import settings
from shorturl_app.exceptions import (
    DuplicateRecordError,
    RecordNotFound,
    ShortUrlError,
    WrongFormat,
)
from shorturl_app.schemas.url import UrlRecord
from shorturl_app.services.id_allocator import IdentifierAllocator
from shorturl_app.services.validator import UrlValidator
from shorturl_app.storage.gateway import PersistenceGateway
from shorturl_app.storage.strategies import UrlStore

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")

# Largest value a signed 64-bit integer column can hold
MAX_SHORT_URL = 2 ** 63 - 1


class URLService:
    """
    URL Service with dependency injection for validation and persistence.

    This follows the Dependency Injection pattern:
    - Gateway and validator are injected (not created internally)
    - Easy to test (inject an in-memory gateway, a fake resolver)
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        validator: UrlValidator,
        allocator: Optional[IdentifierAllocator] = None,
        max_retries: Optional[int] = None,
    ):
        """
        Initialize URL service with dependencies.

        Args:
            gateway: Persistence gateway owning the record sets
            validator: URL validator (syntax + hostname)
            allocator: Identifier allocator (count + 1 by default)
            max_retries: Insert attempts when a fresh identifier collides
        """
        self.gateway = gateway
        self.validator = validator
        self.allocator = allocator or IdentifierAllocator()
        self.max_retries = max_retries if max_retries is not None else settings.max_retries

    async def create_short_url(self, raw_url: Any) -> UrlRecord:
        """Create a short URL, or return the existing one for this URL

        Process:
        1. Validate (raises InvalidUrl)
        2. Against the active store: return the record if the URL is known,
           otherwise allocate count + 1 and insert
        3. If the insert loses a race (unique constraint), re-read; the
           winner's record is returned when it was the same URL, otherwise
           allocate again

        Steps 2-3 run as one gateway operation, so if the durable store
        fails halfway the whole thing is redone on the fallback.
        """
        parsed = await self.validator.validate(raw_url)
        return await self.gateway.run(
            lambda store: self._insert_or_fetch(store, parsed.raw)
        )

    async def resolve_short_url(self, segment: str) -> UrlRecord:
        """Get the record behind a short URL path segment

        Raises:
            WrongFormat: segment is not an integer (no store lookup happens)
            RecordNotFound: no record with that identifier, or the id is out of range
        """
        if not _INTEGER.fullmatch(segment):
            raise WrongFormat(f"{segment!r} is not an integer")

        short_url = int(segment)
        # Out-of-range ids cannot be stored, so they are never looked up
        if short_url <= 0 or short_url > MAX_SHORT_URL:
            raise RecordNotFound(f"no record for {segment}")

        record = await self.gateway.find_by_short_url(short_url)
        if record is None:
            raise RecordNotFound(f"no record for {segment}")
        return record

    async def _insert_or_fetch(self, store: UrlStore, original_url: str) -> UrlRecord:
        existing = await store.find_by_original_url(original_url)
        if existing is not None:
            return existing

        for attempt in range(self.max_retries):
            record = UrlRecord(
                original_url=original_url,
                short_url=await self.allocator.next_id(store),
            )
            try:
                created = await store.insert(record)
            except DuplicateRecordError:
                existing = await store.find_by_original_url(original_url)
                if existing is not None:
                    return existing
                logger.info(
                    "Identifier %s taken on %s store (attempt %s), reallocating",
                    record.short_url, store.name, attempt + 1,
                )
                continue
            logger.info("Created short url %s -> %s", created.short_url, created.original_url)
            return created

        # If all retries failed
        raise ShortUrlError(
            f"Could not allocate a unique identifier after {self.max_retries} attempts"
        )
