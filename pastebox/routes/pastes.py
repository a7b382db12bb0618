"""
Paste routes.
Handles create, fetch (API), and view (HTML) operations.
"""
import html
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import HTMLResponse

from pastebox.clock import resolve_now, to_iso
from pastebox.config import settings
from pastebox.models import ErrorResponse, PasteCreate, PasteResponse, PasteView
from pastebox.results import FoundPaste
from pastebox.store import PasteStore, get_store

router = APIRouter()
logger = logging.getLogger(__name__)

NOT_FOUND_DETAIL = "Paste not found"


@router.post(
    "/api/pastes",
    response_model=PasteResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def create_paste(
    paste: PasteCreate,
    store: PasteStore = Depends(get_store),
) -> PasteResponse:
    """
    Create a new paste.

    Args:
        paste: Paste data (content, optional ttl_seconds, optional max_views)
        store: Paste store

    Returns:
        Paste ID, shareable URL and creation timestamp

    Raises:
        PasteValidationError: If input is invalid (handled as 400)
        StorageError: If the paste could not be saved (handled as 500)
    """
    created = store.create(
        content=paste.content,
        ttl_seconds=paste.ttl_seconds,
        max_views=paste.max_views,
    )

    base_url = settings.APP_DOMAIN.rstrip("/")
    return PasteResponse(
        id=created.id,
        url=f"{base_url}/p/{created.id}",
        created_at=to_iso(created.created_at),
    )


@router.get(
    "/api/pastes/{paste_id}",
    response_model=PasteView,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def fetch_paste(
    paste_id: str,
    x_test_now_ms: Optional[str] = Header(None),
    store: PasteStore = Depends(get_store),
) -> PasteView:
    """
    Fetch a paste (API endpoint).
    Each successful fetch counts one view.

    Raises:
        HTTPException: If paste not found, expired, or view limit exceeded (404)
    """
    now = resolve_now(x_test_now_ms, store.clock, settings.TEST_MODE)
    result = store.consume(paste_id, now=now)

    if not isinstance(result, FoundPaste):
        # Same response for every reason so callers cannot tell them apart
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)

    return PasteView(
        content=result.content,
        remaining_views=result.remaining_views,
        expires_at=to_iso(result.expires_at) if result.expires_at else None,
    )


@router.get("/p/{paste_id}", response_class=HTMLResponse)
def view_paste(
    paste_id: str,
    x_test_now_ms: Optional[str] = Header(None),
    store: PasteStore = Depends(get_store),
) -> HTMLResponse:
    """
    View a paste as HTML.
    Each successful view counts one view, exactly like the API fetch.
    """
    now = resolve_now(x_test_now_ms, store.clock, settings.TEST_MODE)
    result = store.consume(paste_id, now=now)

    if not isinstance(result, FoundPaste):
        return HTMLResponse(_render_404_page(), status_code=404)

    return HTMLResponse(_render_paste_page(paste_id, result))


_PAGE_STYLE = """
        body {
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
            max-width: 900px;
            margin: 40px auto;
            padding: 0 20px;
            line-height: 1.5;
            color: #333;
        }
        pre {
            white-space: pre-wrap;
            word-break: break-word;
            padding: 1rem;
            border: 1px solid #ddd;
            border-radius: 6px;
            background: #f5f5f5;
            font-family: "Courier New", monospace;
        }
        .meta {
            color: #666;
            font-size: 12px;
            font-family: monospace;
        }
"""


def _render_paste_page(paste_id: str, paste: FoundPaste) -> str:
    """Render a paste; content is HTML-escaped."""
    meta = [f"ID: {html.escape(paste_id)}"]
    if paste.remaining_views is not None:
        meta.append(f"Views left: {paste.remaining_views}")
    if paste.expires_at is not None:
        meta.append(f"Expires: {to_iso(paste.expires_at)}")

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Paste {html.escape(paste_id)} - Pastebox</title>
    <style>{_PAGE_STYLE}</style>
</head>
<body>
    <h1>Pastebox</h1>
    <div class="meta">{" &middot; ".join(meta)}</div>
    <pre>{html.escape(paste.content)}</pre>
    <p><a href="/">Create a new paste</a></p>
</body>
</html>"""


def _render_404_page() -> str:
    """Render a 404 error page."""
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Not Found - Pastebox</title>
    <style>{_PAGE_STYLE}</style>
</head>
<body>
    <h1>404 - Paste Not Found</h1>
    <p>This paste is expired, exceeded its views, or does not exist.</p>
    <p><a href="/">Create a new paste</a></p>
</body>
</html>"""
