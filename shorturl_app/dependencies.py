"""
FastAPI dependencies for dependency injection.

The gateway and validator are built once per application in the lifespan
(main.py) and kept on ``app.state``; these functions hand them to routes.

Pattern: Dependency Injection
- No module-level store state (each app owns its records)
- Easy to test (build an app with an in-memory gateway or a fake resolver)
"""

from typing import Any

from fastapi import Depends, Request

from shorturl_app.services.url_service import URLService
from shorturl_app.services.validator import UrlValidator
from shorturl_app.storage.gateway import PersistenceGateway


def get_gateway(request: Request) -> PersistenceGateway:
    """Gateway owned by the running app"""
    return request.app.state.gateway


def get_validator(request: Request) -> UrlValidator:
    """Validator owned by the running app"""
    return request.app.state.validator


def get_url_service(
    gateway: PersistenceGateway = Depends(get_gateway),
    validator: UrlValidator = Depends(get_validator),
) -> URLService:
    """
    Get URLService with all dependencies injected.

    Controller depends on service, service depends on infrastructure
    (gateway, validator).
    """
    return URLService(gateway=gateway, validator=validator)


async def read_url_field(request: Request) -> Any:
    """
    Value of the ``url`` body field.

    Accepts JSON and form-encoded bodies (the landing page posts a form).
    A missing field or an unreadable body yields None, which the validator
    rejects as an invalid url.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            return None
        return body.get("url") if isinstance(body, dict) else None

    form = await request.form()
    return form.get("url")
