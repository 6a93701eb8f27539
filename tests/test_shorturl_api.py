import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine

from main import create_app
from shorturl_app.database.connection import Base
from shorturl_app.exceptions import StoreFailure
from shorturl_app.schemas.url import UrlRecord
from shorturl_app.storage.gateway import PersistenceGateway, StoreState
from shorturl_app.storage.strategies import InMemoryUrlStore, UrlStore


class UnavailableStore(UrlStore):
    """Store whose every operation fails"""

    async def find_by_original_url(self, original_url):
        raise StoreFailure("down")

    async def find_by_short_url(self, short_url):
        raise StoreFailure("down")

    async def count(self):
        raise StoreFailure("down")

    async def insert(self, record):
        raise StoreFailure("down")

    async def ping(self):
        raise StoreFailure("down")


class TestCreateShortUrl:
    """POST /api/shorturl"""

    def test_create_short_url(self, client: TestClient):
        """Test creating a short URL"""
        response = client.post("/api/shorturl", json={"url": "https://www.freecodecamp.org"})
        assert response.status_code == 200
        assert response.json() == {"original_url": "https://www.freecodecamp.org", "short_url": 1}

    def test_identifiers_follow_insertion_order(self, client: TestClient):
        """First URL gets 1, second gets 2, and 1 redirects to the first"""
        first = client.post("/api/shorturl", json={"url": "https://www.freecodecamp.org"})
        second = client.post("/api/shorturl", json={"url": "https://example.com"})

        assert first.json()["short_url"] == 1
        assert second.json()["short_url"] == 2

        response = client.get("/api/shorturl/1", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "https://www.freecodecamp.org"

    def test_same_url_twice_is_idempotent(self, client: TestClient):
        """Submitting the same URL again returns the same short_url"""
        client.post("/api/shorturl", json={"url": "https://example.com"})
        first = client.post("/api/shorturl", json={"url": "https://github.com/fastapi"})
        again = client.post("/api/shorturl", json={"url": "https://github.com/fastapi"})

        assert first.json() == again.json()
        assert again.json()["short_url"] == 2

    def test_form_encoded_body(self, client: TestClient):
        """The landing page form posts url-encoded data"""
        response = client.post("/api/shorturl", data={"url": "https://example.com/path?q=1"})
        assert response.json() == {"original_url": "https://example.com/path?q=1", "short_url": 1}

    def test_original_url_is_stored_verbatim(self, client: TestClient):
        """No trailing slash or other normalization is added"""
        response = client.post("/api/shorturl", json={"url": "https://example.com"})
        assert response.json()["original_url"] == "https://example.com"

    @pytest.mark.parametrize("bad_url", ["ftp://x", "not a url", "", "https://", "javascript:alert(1)"])
    def test_invalid_url(self, client: TestClient, bad_url):
        """Test creating URL with invalid URL"""
        response = client.post("/api/shorturl", json={"url": bad_url})
        assert response.status_code == 200
        assert response.json() == {"error": "invalid url"}

    def test_missing_url_field(self, client: TestClient):
        response = client.post("/api/shorturl", json={"link": "https://example.com"})
        assert response.json() == {"error": "invalid url"}

    def test_non_string_url(self, client: TestClient):
        response = client.post("/api/shorturl", json={"url": 42})
        assert response.json() == {"error": "invalid url"}

    def test_unresolvable_host_looks_like_syntax_error(self, client: TestClient):
        """A hostname that does not resolve is rejected with the same payload"""
        response = client.post("/api/shorturl", json={"url": "https://no-such-host.invalid"})
        assert response.status_code == 200
        assert response.json() == {"error": "invalid url"}

    def test_invalid_url_is_not_stored(self, client: TestClient):
        client.post("/api/shorturl", json={"url": "not a url"})
        response = client.post("/api/shorturl", json={"url": "https://example.com"})
        assert response.json()["short_url"] == 1


class TestResolveShortUrl:
    """GET /api/shorturl/{short_url}"""

    def test_redirect_url(self, client: TestClient):
        """Test URL redirection"""
        client.post("/api/shorturl", json={"url": "https://github.com/"})

        response = client.get("/api/shorturl/1", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "https://github.com/"

    def test_wrong_format(self, client: TestClient):
        response = client.get("/api/shorturl/abc")
        assert response.status_code == 200
        assert response.json() == {"error": "Wrong format"}

    def test_partial_integer_is_wrong_format(self, client: TestClient):
        client.post("/api/shorturl", json={"url": "https://example.com"})
        response = client.get("/api/shorturl/1abc", follow_redirects=False)
        assert response.json() == {"error": "Wrong format"}

    def test_wrong_format_skips_store(self, client: TestClient, engine: Engine):
        """Even with a broken store the format check answers first"""
        Base.metadata.drop_all(bind=engine)
        response = client.get("/api/shorturl/abc")
        assert response.json() == {"error": "Wrong format"}
        assert client.app.state.gateway.state == StoreState.PRIMARY_ACTIVE

    def test_redirect_nonexistent_url(self, client: TestClient):
        """Test redirecting non-existent short URL"""
        response = client.get("/api/shorturl/99", follow_redirects=False)
        assert response.status_code == 200
        assert response.json() == {"error": "No short URL found for the given input"}

    @pytest.mark.parametrize("short_url", ["9" * 25, str(2 ** 63), "0", "-1"])
    def test_out_of_range_id_is_not_found(self, client: TestClient, short_url):
        """Ids the integer column cannot hold never reach the durable store"""
        client.post("/api/shorturl", json={"url": "https://example.com"})

        response = client.get(f"/api/shorturl/{short_url}", follow_redirects=False)

        assert response.status_code == 200
        assert response.json() == {"error": "No short URL found for the given input"}
        assert client.app.state.gateway.state == StoreState.PRIMARY_ACTIVE

    def test_largest_storable_id_is_looked_up(self, client: TestClient):
        response = client.get(f"/api/shorturl/{2 ** 63 - 1}", follow_redirects=False)
        assert response.json() == {"error": "No short URL found for the given input"}
        assert client.app.state.gateway.state == StoreState.PRIMARY_ACTIVE


class TestStoreFailover:
    """Durable store failures are absorbed by the in-memory fallback"""

    def test_create_after_durable_store_failure(self, client: TestClient, engine: Engine):
        client.post("/api/shorturl", json={"url": "https://www.freecodecamp.org"})
        client.post("/api/shorturl", json={"url": "https://example.com"})

        # Every query against the durable store now fails
        Base.metadata.drop_all(bind=engine)

        response = client.post("/api/shorturl", json={"url": "https://github.com"})
        assert response.status_code == 200
        # Fallback keeps its own sequence
        assert response.json() == {"original_url": "https://github.com", "short_url": 1}
        assert client.app.state.gateway.state == StoreState.FALLBACK_ACTIVE

        redirect = client.get("/api/shorturl/1", follow_redirects=False)
        assert redirect.headers["location"] == "https://github.com"

    def test_resolve_after_durable_store_failure(self, client: TestClient, engine: Engine):
        client.post("/api/shorturl", json={"url": "https://example.com"})
        Base.metadata.drop_all(bind=engine)

        # The record only lives in the durable store: documented divergence
        response = client.get("/api/shorturl/1", follow_redirects=False)
        assert response.status_code == 200
        assert response.json() == {"error": "No short URL found for the given input"}

    def test_health_reports_active_store(self, client: TestClient, engine: Engine):
        assert client.get("/health").json()["store"] == "primary"
        Base.metadata.drop_all(bind=engine)
        client.get("/api/shorturl/1")
        assert client.get("/health").json()["store"] == "fallback"

    def test_memory_only_service(self, memory_client: TestClient):
        """Without a durable store the service runs on the fallback from the start"""
        assert memory_client.get("/health").json()["store"] == "fallback"

        response = memory_client.post("/api/shorturl", json={"url": "https://www.freecodecamp.org"})
        assert response.json()["short_url"] == 1

        redirect = memory_client.get("/api/shorturl/1", follow_redirects=False)
        assert redirect.headers["location"] == "https://www.freecodecamp.org"


class TestLandingPage:

    def test_index_page(self, client: TestClient):
        response = client.get("/")
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert 'action="/api/shorturl"' in response.text

    def test_static_assets(self, client: TestClient):
        response = client.get("/public/style.css")
        assert response.status_code == 200


class TestServerErrors:
    """Unrecoverable faults surface as HTTP 500 with a generic message"""

    def _client(self, test_settings, validator, gateway):
        app = create_app(config=test_settings, gateway=gateway, validator=validator)
        return TestClient(app, raise_server_exceptions=False)

    def test_create_when_both_stores_fail(self, test_settings, validator):
        gateway = PersistenceGateway(fallback=UnavailableStore(), primary=UnavailableStore())
        with self._client(test_settings, validator, gateway) as client:
            response = client.post("/api/shorturl", json={"url": "https://example.com"})

        assert response.status_code == 500
        assert response.json() == {"error": "server error"}

    def test_resolve_when_fallback_fails(self, test_settings, validator):
        gateway = PersistenceGateway(fallback=UnavailableStore())
        with self._client(test_settings, validator, gateway) as client:
            response = client.get("/api/shorturl/1", follow_redirects=False)

        assert response.status_code == 500
        assert response.json() == {"error": "server error"}

    def test_identifier_allocation_exhausted(self, test_settings, validator):
        class AlwaysZeroCount(InMemoryUrlStore):
            async def count(self):
                return 0

        store = AlwaysZeroCount()
        gateway = PersistenceGateway(fallback=store)
        with self._client(test_settings, validator, gateway) as client:
            # Seed identifier 1 so every later allocation collides
            asyncio.run(store.insert(UrlRecord(original_url="https://github.com", short_url=1)))
            response = client.post("/api/shorturl", json={"url": "https://example.com"})

        assert response.status_code == 500
        assert response.json() == {"error": "server error"}

    def test_invalid_url_is_not_a_server_error(self, test_settings, validator):
        gateway = PersistenceGateway(fallback=UnavailableStore())
        with self._client(test_settings, validator, gateway) as client:
            response = client.post("/api/shorturl", json={"url": "not a url"})

        assert response.status_code == 200
        assert response.json() == {"error": "invalid url"}
