"""Single-page application fallback.

Browser navigations to client-side routes get ``index.html``; built assets
are served from the dist directory. In development the same requests are
proxied to the frontend dev server instead.
"""

import re
from pathlib import Path
from typing import Optional

import httpx
from fastapi import APIRouter, Request, Response
from fastapi.responses import FileResponse, HTMLResponse

from config import get_settings
from core.exceptions import AppException
from core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)
router = APIRouter()

ASSET_EXTENSIONS = (
    "js",
    "css",
    "png",
    "jpg",
    "jpeg",
    "gif",
    "webp",
    "svg",
    "ico",
    "json",
    "txt",
    "map",
)
_ASSET_PATTERN = re.compile(r"\.(%s)$" % "|".join(ASSET_EXTENSIONS), re.IGNORECASE)
_NO_FALLBACK_PREFIXES = ("/api/", "/assets/", "/uploads/")

# Hop-by-hop and length headers are recomputed by the ASGI server
_PROXY_SKIP_HEADERS = {
    "connection",
    "content-encoding",
    "content-length",
    "keep-alive",
    "transfer-encoding",
}


class NotFoundError(AppException):
    def __init__(self, message: str = "Not Found."):
        super().__init__(code="NOT_FOUND", message=message, status_code=404)


def is_asset_path(path: str) -> bool:
    return path.startswith(("/assets/", "/uploads/")) or bool(_ASSET_PATTERN.search(path))


def wants_html(request: Request) -> bool:
    """True for top-level document navigations."""
    if request.method not in ("GET", "HEAD"):
        return False
    sec_fetch_dest = request.headers.get("sec-fetch-dest", "")
    accept = request.headers.get("accept", "")
    return sec_fetch_dest in ("", "document") or "text/html" in accept


def should_serve_index(request: Request) -> bool:
    path = request.url.path
    if path == "/api" or path.startswith(_NO_FALLBACK_PREFIXES):
        return False
    if is_asset_path(path):
        return False
    return wants_html(request)


class IndexHtmlCache:
    """Reads ``index.html`` from the first candidate that exists, then keeps it."""

    def __init__(self, dist_dir: str):
        self.dist_dir = Path(dist_dir)
        self._html: Optional[str] = None

    def candidates(self) -> list[Path]:
        cwd = Path.cwd()
        return [
            self.dist_dir / "index.html",
            cwd / "dist" / "index.html",
            cwd / "public" / "index.html",
            cwd / "index.html",
        ]

    def load(self) -> Optional[str]:
        if self._html is not None:
            return self._html
        for candidate in self.candidates():
            if candidate.is_file():
                self._html = candidate.read_text(encoding="utf-8")
                logger.info("spa_index_loaded", path=str(candidate))
                return self._html
        return None

    def clear(self) -> None:
        self._html = None


index_cache = IndexHtmlCache(settings.frontend_dist_dir)


def _dist_file(path: str) -> Optional[Path]:
    """Resolve a request path to a file inside the dist directory."""
    base = Path(settings.frontend_dist_dir).resolve()
    candidate = (base / path.lstrip("/")).resolve()
    if base not in candidate.parents or not candidate.is_file():
        return None
    return candidate


async def proxy_to_dev_server(request: Request) -> Response:
    """Forward a GET/HEAD to the frontend dev server."""
    target = settings.frontend_dev_server_url.rstrip("/") + request.url.path
    if request.url.query:
        target += f"?{request.url.query}"

    headers = {
        key: value
        for key, value in request.headers.items()
        if key.lower() not in ("host", "cookie")
    }
    try:
        async with httpx.AsyncClient(timeout=30) as client:
            upstream = await client.request(request.method, target, headers=headers)
    except httpx.HTTPError as e:
        logger.warning("dev_server_unreachable", target=target, error=str(e))
        raise AppException(
            code="DEV_SERVER_UNAVAILABLE",
            message="Frontend dev server is not reachable.",
            status_code=502,
        ) from e

    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        headers={
            key: value
            for key, value in upstream.headers.items()
            if key.lower() not in _PROXY_SKIP_HEADERS
        },
    )


@router.api_route("/{full_path:path}", methods=["GET", "HEAD"], include_in_schema=False)
async def spa_fallback(full_path: str, request: Request):
    path = request.url.path
    if path == "/api" or path.startswith("/api/"):
        raise NotFoundError()

    if settings.frontend_dev_server_url:
        return await proxy_to_dev_server(request)

    if should_serve_index(request):
        html = index_cache.load()
        if html is None:
            raise NotFoundError("Application shell not found.")
        return HTMLResponse(html, headers={"Cache-Control": "no-cache"})

    if is_asset_path(path):
        asset = _dist_file(path)
        if asset is not None:
            return FileResponse(asset)

    raise NotFoundError()
