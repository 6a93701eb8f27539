"""
URL storage module.

Strategy Pattern for the record stores plus the gateway that switches
between the durable store and the in-memory fallback.
"""

from .strategies import UrlStore, SQLAlchemyUrlStore, InMemoryUrlStore
from .gateway import PersistenceGateway, StoreState, watch_primary
from .factory import GatewayFactory, StoreBackend

__all__ = [
    "UrlStore",
    "SQLAlchemyUrlStore",
    "InMemoryUrlStore",
    "PersistenceGateway",
    "StoreState",
    "watch_primary",
    "GatewayFactory",
    "StoreBackend",
]
