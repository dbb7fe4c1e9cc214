from fastapi import APIRouter, Depends, Query, status

from app.features.crawl.schemas.crawl import CancelResponse, CheckRequest
from app.features.crawl.services.session_manager import SessionManager, get_session_manager
from app.platform.logger import get_logger
from app.platform.response import api_response

logger = get_logger(__name__)

router = APIRouter(tags=["crawl"])


@router.post("/check")
async def check_site(
    data: CheckRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Crawl a site from the given URL and run the accessibility rules on every
    same-domain page.

    Replaces any crawl already running. The response is sent once the crawl
    completes or is cancelled; progress is streamed on `/ws/progress`
    meanwhile.

    **Example Response:**
    ```json
    {
        "status_code": 200,
        "status": "success",
        "message": "Found 3 accessibility issues across 2 pages",
        "data": {
            "sessionId": "0192...",
            "domain": "example.com",
            "issues": [...],
            "processedUrls": ["https://example.com/", "https://example.com/about (failed)"],
            "totalProcessed": 2,
            "cancelled": false
        }
    }
    ```
    """
    result = await manager.check(data.url)

    message = (
        f"Found {len(result.issues)} accessibility issues across {result.total_processed} pages"
    )
    if result.cancelled:
        message += " (cancelled, partial results)"

    return api_response(data=result, message=message, status_code=status.HTTP_200_OK)


@router.post("/check/cancel")
async def cancel_check(manager: SessionManager = Depends(get_session_manager)):
    """Cancel whichever crawl is currently running."""
    session_id = await manager.cancel_active()
    if session_id is None:
        return api_response(data=CancelResponse(cancelled=False), message="No crawl is running")

    logger.info(f"Cancellation requested over HTTP for session {session_id}")
    return api_response(
        data=CancelResponse(cancelled=True, session_id=session_id),
        message="Cancellation requested, waiting for in-flight pages",
    )


@router.get("/check/active")
async def active_check(manager: SessionManager = Depends(get_session_manager)):
    """Describe the running crawl, if any."""
    session = manager.active
    if session is None:
        return api_response(data=None, message="No crawl is running")
    return api_response(data=session.describe(), message="Crawl in progress")


@router.get("/frontier/pending")
async def pending_urls(
    domain: str = Query(..., min_length=1, description="Domain key, e.g. example.com"),
    manager: SessionManager = Depends(get_session_manager),
):
    """Diagnostic view of the frontier entries not yet analyzed for a domain."""
    entries = await manager.pending_urls(domain)
    return api_response(
        data={"domain": domain.lower(), "count": len(entries), "pending": entries},
        message=f"{len(entries)} pending URLs",
    )
