"""
Factory for building the persistence gateway at startup.
"""

import logging
from enum import Enum
from typing import Optional

from shorturl_app.config import Settings, settings as default_settings
from shorturl_app.database.connection import create_db_engine
from shorturl_app.exceptions import StoreFailure
from .gateway import PersistenceGateway, StoreState
from .strategies import InMemoryUrlStore, SQLAlchemyUrlStore

logger = logging.getLogger(__name__)


class StoreBackend(Enum):
    """Available durable store backends"""
    SQL = "sql"
    MEMORY = "memory"


class GatewayFactory:
    """
    Builds one gateway per application instance.

    Unlike a process-wide singleton, every call returns a fresh gateway with
    its own stores, so each app (and each test) owns its record set.
    """

    @staticmethod
    def backend_for(database_url: str) -> StoreBackend:
        return StoreBackend.SQL if database_url else StoreBackend.MEMORY

    @classmethod
    async def create(cls, config: Optional[Settings] = None) -> PersistenceGateway:
        """
        Create a gateway with the durable store checked once.

        Args:
            config: Settings to read the database URL from (defaults to global settings)

        Returns:
            Gateway in PRIMARY_ACTIVE if the durable store answered, else FALLBACK_ACTIVE
        """
        config = config or default_settings
        fallback = InMemoryUrlStore()
        backend = cls.backend_for(config.database_url)

        if backend == StoreBackend.MEMORY:
            logger.info("No DATABASE_URL configured, using in-memory store")
            return PersistenceGateway(fallback=fallback)

        engine = create_db_engine(config.database_url, config.db_connect_timeout)
        primary = SQLAlchemyUrlStore(engine)

        try:
            await primary.prepare()
        except StoreFailure as e:
            logger.warning("Durable store unreachable at startup (%s), using in-memory store", e)
            return PersistenceGateway(
                fallback=fallback,
                primary=primary,
                state=StoreState.FALLBACK_ACTIVE,
            )

        logger.info("Durable store connected (%s)", engine.url.render_as_string(hide_password=True))
        return PersistenceGateway(fallback=fallback, primary=primary)

