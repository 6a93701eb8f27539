from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from shorturl_app.dependencies import get_url_service, read_url_field
from shorturl_app.schemas.url import ErrorResponse, UrlRecord
from shorturl_app.services.url_service import URLService

router = APIRouter(prefix="/api/shorturl", tags=["shorturl"])

# Expected failures come back as 200 with an error payload (see main.py)
_error_responses = {200: {"model": ErrorResponse, "description": "Error payload"}}


@router.post("", response_model=UrlRecord, responses={500: {"model": ErrorResponse}})
async def create_short_url(
    url: Any = Depends(read_url_field),
    url_service: URLService = Depends(get_url_service)
):
    """Shorten a URL (idempotent: the same URL always gets the same short_url)"""
    return await url_service.create_short_url(url)


@router.get(
    "/{short_url}",
    status_code=status.HTTP_302_FOUND,
    response_class=RedirectResponse,
    responses=_error_responses,
)
async def redirect_to_original_url(
    short_url: str,
    url_service: URLService = Depends(get_url_service)
):
    """Redirect to the original URL behind a short URL"""
    record = await url_service.resolve_short_url(short_url)
    return RedirectResponse(url=record.original_url, status_code=status.HTTP_302_FOUND)
