"""Repository file browser - FastAPI application.

Every GET path is a path inside the configured repository: directories
render as an HTML listing, files are streamed from the raw-content host
as downloads.

Run:
    GITHUB_OWNER=me GITHUB_REPO=files python3 -m repo_browser.server
    # or
    uvicorn --factory repo_browser.server:app_factory --host 0.0.0.0 --port 8000
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Callable

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from .classifier import PathKind, build_classifier
from .config import Settings
from .errors import BrowserError
from .listing import fetch_listing
from .proxy import fetch_file
from .render import render_listing

log = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_classifier(request: Request) -> Callable[[str], PathKind]:
    return request.app.state.classify


async def handle(
    request: Request,
    path: str,
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_client),
    classify: Callable[[str], PathKind] = Depends(get_classifier),
) -> Response:
    """Serve a repository path.

    Directories (root included) are listed as HTML. Files are proxied from
    the raw-content host with download headers.

    Raises:
        404: path not found upstream
        502: upstream unreachable or answered garbage
        other: upstream failure status passed through
    """
    kind = classify(path)
    log.info("%s /%s -> %s", request.method, path, kind.value)
    if kind is PathKind.FILE:
        return await fetch_file(client, settings, path)

    listing = await fetch_listing(client, settings, path)
    return HTMLResponse(render_listing(listing, path, settings))


async def browser_error_handler(request: Request, exc: BrowserError) -> PlainTextResponse:
    return PlainTextResponse(exc.message, status_code=exc.status_code)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)


def create_app(settings: Settings, client: httpx.AsyncClient | None = None) -> FastAPI:
    """Build the application.

    Passing ``client`` (e.g. one backed by ``httpx.MockTransport``) skips
    creating and closing the pooled upstream client.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if client is None:
            # shared client for connection pooling across requests
            app.state.http_client = httpx.AsyncClient(
                timeout=settings.upstream_timeout,
                follow_redirects=True,
            )
        try:
            yield
        finally:
            if client is None:
                await app.state.http_client.aclose()

    app = FastAPI(
        title="Repository File Browser",
        description=f"Browse {settings.owner}/{settings.repo}@{settings.branch}",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.classify = build_classifier(settings)
    if client is not None:
        app.state.http_client = client

    app.add_exception_handler(BrowserError, browser_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    endpoint = handle
    if settings.rate_limit:
        limiter = Limiter(key_func=get_remote_address)
        app.state.limiter = limiter
        app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
        endpoint = limiter.limit(settings.rate_limit)(handle)

    if settings.health_path:
        @app.get(settings.health_path, include_in_schema=False)
        async def health(client: httpx.AsyncClient = Depends(get_client)):
            try:
                await fetch_listing(client, settings, "")
            except BrowserError as e:
                raise HTTPException(503, e.message)
            return PlainTextResponse("ok")

    # catch-all, so it goes after every other route
    app.add_api_route("/{path:path}", endpoint, methods=["GET", "HEAD"])
    return app


def app_factory() -> FastAPI:
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return create_app(settings)


def main():
    """Run the application."""
    import uvicorn

    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(
        app_factory(),
        host=os.environ.get("HOST", "0.0.0.0"),
        port=port,
    )


if __name__ == "__main__":
    main()
