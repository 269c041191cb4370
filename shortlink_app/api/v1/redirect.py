from fastapi import APIRouter, BackgroundTasks, Depends, status
from fastapi.responses import RedirectResponse
from shortlink_app.services.url_service import URLService
from shortlink_app.dependencies import get_url_service

router = APIRouter(tags=["redirect"])


@router.get("/{short_code}")
async def redirect_to_original_url(
    short_code: str,
    background_tasks: BackgroundTasks,
    url_service: URLService = Depends(get_url_service)
):
    """
    Redirect to the original URL.

    Flow (optimized for performance):
    1. Resolve short_code (cache hit in the common case)
    2. Schedule the view increment to run after the response is sent
    3. Redirect immediately

    The increment is best effort: it never delays or fails the redirect,
    and increments still queued at shutdown are dropped.
    """
    original_url = await url_service.get_url(short_code)

    background_tasks.add_task(url_service.incre_views, short_code)

    return RedirectResponse(url=original_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
