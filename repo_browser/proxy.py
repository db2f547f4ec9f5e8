"""Stream single files from the raw-content host as downloads."""

import logging
from urllib.parse import quote

import httpx
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from .config import Settings
from .errors import NotFound, UpstreamError

log = logging.getLogger(__name__)

FALLBACK_CONTENT_TYPE = "application/octet-stream"

# framing is redone by the ASGI server
HOP_BY_HOP = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "proxy-connection",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
})


def raw_url(settings: Settings, path: str) -> str:
    return "/".join([
        settings.raw_base,
        quote(settings.owner, safe=""),
        quote(settings.repo, safe=""),
        quote(settings.branch, safe="/"),
        quote(path.lstrip("/"), safe="/"),
    ])


def basename(path: str) -> str:
    return path.rstrip("/").rsplit("/", 1)[-1]


def content_disposition(path: str) -> str:
    """``attachment`` disposition naming the last path segment.

    Header values must be latin-1, so non-ASCII names get an ASCII
    ``filename`` fallback plus an RFC 6266 ``filename*`` with the real name.
    """
    name = basename(path)
    ascii_name = "".join(c if 32 <= ord(c) < 127 else "_" for c in name)
    escaped = ascii_name.replace("\\", "\\\\").replace('"', '\\"')
    value = f'attachment; filename="{escaped}"'
    if ascii_name != name:
        value += f"; filename*=UTF-8''{quote(name, safe='')}"
    return value


def cache_control(settings: Settings) -> str:
    return f"public, max-age={settings.cache_max_age}, must-revalidate"


def download_headers(upstream: httpx.Headers, settings: Settings, path: str) -> dict[str, str]:
    """Upstream headers minus hop-by-hop ones, with the download headers forced."""
    headers = {
        k: v for k, v in upstream.items()
        if k.lower() not in HOP_BY_HOP
        and k.lower() not in ("content-disposition", "content-type", "cache-control")
    }
    headers["Content-Disposition"] = content_disposition(path)
    headers["Content-Type"] = upstream.get("content-type") or FALLBACK_CONTENT_TYPE
    headers["Cache-Control"] = cache_control(settings)
    return headers


async def fetch_file(client: httpx.AsyncClient, settings: Settings, path: str) -> StreamingResponse:
    """Open the raw file at ``path`` and stream it back without buffering.

    The upstream body is forwarded as received (still content-encoded), so
    ``Content-Length`` and ``Content-Encoding`` stay valid. The upstream
    connection is closed once the response finishes or the client goes away.
    """
    url = raw_url(settings, path)
    log.debug("Proxying %s", url)
    request = client.build_request("GET", url)
    try:
        r = await client.send(request, stream=True)
    except httpx.RequestError as e:
        log.warning("Raw content request failed for %r: %r", path, e)
        raise UpstreamError("Error contacting raw content host.", 502)

    if not r.is_success:
        await r.aclose()
        log.info("Raw content for %r returned HTTP %d", path, r.status_code)
        raise NotFound("404 File Not Found")

    try:
        return StreamingResponse(
            r.aiter_raw(),
            status_code=r.status_code,
            headers=download_headers(r.headers, settings, path),
            background=BackgroundTask(r.aclose),
        )
    except Exception:
        await r.aclose()
        raise
