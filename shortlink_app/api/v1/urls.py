from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from shortlink_app.schemas.url import (
    URLCreate,
    URLCreateResponse,
    URLDurationUpdate,
    URLListResponse,
)
from shortlink_app.services.url_service import URLService
from shortlink_app.dependencies import get_url_service, get_current_owner

router = APIRouter(tags=["urls"])


@router.post("/url", response_model=URLCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_short_url(
    url_data: URLCreate,
    owner_id: Optional[int] = Depends(get_current_owner),
    url_service: URLService = Depends(get_url_service)
):
    """Create a new short URL"""
    short_url = await url_service.create_url(
        original_url=str(url_data.original_url),
        custom_code=url_data.custom_code,
        duration=url_data.duration,
        owner_id=owner_id
    )
    return URLCreateResponse(short_url=short_url)


@router.get("/urls", response_model=URLListResponse)
async def list_urls(
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    owner_id: Optional[int] = Depends(get_current_owner),
    url_service: URLService = Depends(get_url_service)
):
    """List the caller's short URLs with near-real-time view counts"""
    return await url_service.get_urls(owner_id, page=page, size=size)


@router.patch("/url/{short_code}", status_code=status.HTTP_204_NO_CONTENT)
async def update_url_duration(
    short_code: str,
    update: URLDurationUpdate,
    url_service: URLService = Depends(get_url_service)
):
    """Change a short URL's expiry"""
    await url_service.update_url_duration(short_code, update.expires_at)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/url/{short_code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_url(
    short_code: str,
    url_service: URLService = Depends(get_url_service)
):
    """Delete a short URL with its cached mapping and pending views"""
    await url_service.delete_url(short_code)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
