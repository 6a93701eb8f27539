from shorturl_app.storage.strategies import UrlStore


class IdentifierAllocator:
    """
    Next identifier = record count of the target store + 1.

    The count must come from the same store that receives the insert. Two
    stores keep independent sequences, so after a failover the fallback
    starts again at 1.
    """

    async def next_id(self, store: UrlStore) -> int:
        return await store.count() + 1
