"""
Persistence gateway: one entry point over the durable and fallback stores.

State machine::

    PRIMARY_ACTIVE --(StoreFailure from durable store)--> FALLBACK_ACTIVE
    FALLBACK_ACTIVE --(on_primary_connected())---------> PRIMARY_ACTIVE

A failing durable operation flips the state and is re-issued against the
fallback within the same call, so callers never see the failure. The two
record sets are independent and may diverge; nothing is ever copied between
them.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from shorturl_app.exceptions import StoreFailure
from shorturl_app.schemas.url import UrlRecord
from shorturl_app.storage.strategies import UrlStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreState(Enum):
    """Which store the gateway routes to"""
    PRIMARY_ACTIVE = "primary"
    FALLBACK_ACTIVE = "fallback"


class PersistenceGateway:
    """
    Routes every store operation to the active store and fails over once.

    Owned by the app instance (app.state.gateway) and injected into the
    service layer; there is no module-level record state.
    """

    def __init__(
        self,
        fallback: UrlStore,
        primary: Optional[UrlStore] = None,
        state: Optional[StoreState] = None,
    ):
        """
        Initialize gateway.

        Args:
            fallback: Volatile store, always available
            primary: Durable store, or None when not configured
            state: Initial state; defaults to PRIMARY_ACTIVE when a primary is given
        """
        self.primary = primary
        self.fallback = fallback
        if state is None:
            state = StoreState.PRIMARY_ACTIVE if primary is not None else StoreState.FALLBACK_ACTIVE
        if state == StoreState.PRIMARY_ACTIVE and primary is None:
            raise ValueError("PRIMARY_ACTIVE requires a primary store")
        self.state = state

    @property
    def active_store(self) -> UrlStore:
        if self.state == StoreState.PRIMARY_ACTIVE:
            return self.primary
        return self.fallback

    async def run(self, operation: Callable[[UrlStore], Awaitable[T]]) -> T:
        """
        Execute a logical operation against the active store.

        The operation receives a single store and must do all of its reads
        and writes there, so a count and the insert that depends on it
        always hit the same record set.

        Args:
            operation: Coroutine function taking the store to work on

        Returns:
            Whatever the operation returns

        Raises:
            StoreFailure: the fallback store failed as well
        """
        store = self.active_store
        try:
            return await operation(store)
        except StoreFailure as e:
            if store is self.fallback:
                raise
            self._switch_to_fallback(e)
            return await operation(self.fallback)

    async def find_by_original_url(self, original_url: str) -> Optional[UrlRecord]:
        return await self.run(lambda store: store.find_by_original_url(original_url))

    async def find_by_short_url(self, short_url: int) -> Optional[UrlRecord]:
        return await self.run(lambda store: store.find_by_short_url(short_url))

    async def count(self) -> int:
        return await self.run(lambda store: store.count())

    async def insert(self, record: UrlRecord) -> UrlRecord:
        return await self.run(lambda store: store.insert(record))

    def close(self) -> None:
        """Release both stores (engine connection pools)"""
        if self.primary is not None:
            self.primary.close()
        self.fallback.close()

    def on_primary_connected(self) -> None:
        """Durable store driver reports a (re)established connection"""
        if self.primary is None:
            logger.warning("Connected notification ignored: no durable store configured")
            return
        if self.state != StoreState.PRIMARY_ACTIVE:
            self.state = StoreState.PRIMARY_ACTIVE
            logger.info("Durable store reconnected, routing to primary store")

    def on_primary_disconnected(self) -> None:
        """Durable store driver reports a lost connection"""
        self._switch_to_fallback(None)

    def _switch_to_fallback(self, cause: Optional[Exception]) -> None:
        if self.state == StoreState.FALLBACK_ACTIVE:
            return
        self.state = StoreState.FALLBACK_ACTIVE
        if cause is not None:
            logger.warning("Durable store failed (%s), falling back to in-memory store", cause)
        else:
            logger.warning("Durable store disconnected, falling back to in-memory store")


async def watch_primary(gateway: PersistenceGateway, interval: float) -> None:
    """
    Check the durable store while the fallback is active.

    Delivers the connected notification to the gateway as soon as a ping
    succeeds. Runs until cancelled (the app lifespan cancels it on shutdown).

    Args:
        gateway: Gateway to notify
        interval: Seconds between checks
    """
    while True:
        await asyncio.sleep(interval)
        if gateway.primary is None or gateway.state == StoreState.PRIMARY_ACTIVE:
            continue
        try:
            await gateway.primary.prepare()
        except StoreFailure as e:
            logger.debug("Durable store still unreachable: %s", e)
            continue
        gateway.on_primary_connected()
