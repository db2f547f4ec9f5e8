import asyncio

import httpx
import pytest

from repo_browser.errors import NotFound, UpstreamError
from repo_browser.proxy import (
    basename,
    content_disposition,
    download_headers,
    fetch_file,
    raw_url,
)


def test_raw_url(settings):
    assert raw_url(settings, "docs/my guide.pdf") == "https://raw.example.test/octo/files/main/docs/my%20guide.pdf"


def test_basename_and_disposition():
    assert basename("docs/guide.pdf") == "guide.pdf"
    assert basename("LICENSE") == "LICENSE"
    assert content_disposition("a/b/guide.pdf") == 'attachment; filename="guide.pdf"'
    assert content_disposition('a/say "hi".txt') == 'attachment; filename="say \\"hi\\".txt"'


def test_download_headers_override_and_preserve(settings):
    upstream = httpx.Headers({
        "Content-Type": "application/pdf",
        "Content-Length": "4",
        "ETag": '"abc"',
        "Cache-Control": "max-age=300",
        "Transfer-Encoding": "chunked",
        "Connection": "keep-alive",
    })
    headers = download_headers(upstream, settings, "docs/guide.pdf")

    assert headers["Content-Disposition"] == 'attachment; filename="guide.pdf"'
    assert headers["Content-Type"] == "application/pdf"
    assert headers["Cache-Control"] == "public, max-age=3600, must-revalidate"
    assert headers["content-length"] == "4"
    assert headers["etag"] == '"abc"'
    lowered = {k.lower() for k in headers}
    assert "transfer-encoding" not in lowered
    assert "connection" not in lowered
    assert [k for k in headers if k.lower() == "cache-control"] == ["Cache-Control"]


def test_download_headers_default_content_type(settings):
    headers = download_headers(httpx.Headers({"Content-Type": ""}), settings, "bin/tool")
    assert headers["Content-Type"] == "application/octet-stream"


def test_fetch_file_streams_lazily(settings):
    state = {"started": False}

    async def body():
        state["started"] = True
        for chunk in (b"first-", b"second-", b"third"):
            yield chunk

    def handler(request):
        return httpx.Response(200, content=body(), headers={"Content-Type": "text/plain"})

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            response = await fetch_file(client, settings, "notes/a.txt")
            assert not state["started"]
            chunks = [chunk async for chunk in response.body_iterator]
            await response.background()
            return response, chunks

    response, chunks = asyncio.run(go())
    assert b"".join(chunks) == b"first-second-third"
    assert response.status_code == 200
    assert response.headers["content-disposition"] == 'attachment; filename="a.txt"'


def test_fetch_file_not_found(settings):
    def handler(request):
        return httpx.Response(500, text="oops")

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await fetch_file(client, settings, "x.bin")

    with pytest.raises(NotFound) as exc:
        asyncio.run(go())
    assert exc.value.message == "404 File Not Found"


def test_fetch_file_transport_failure(settings):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await fetch_file(client, settings, "x.bin")

    with pytest.raises(UpstreamError) as exc:
        asyncio.run(go())
    assert exc.value.status_code == 502


def test_disposition_for_names_outside_latin1():
    value = content_disposition("docs/文件.pdf")

    assert value == "attachment; filename=\"__.pdf\"; filename*=UTF-8''%E6%96%87%E4%BB%B6.pdf"
    value.encode("latin-1")


class TrackedStream(httpx.AsyncByteStream):
    def __init__(self):
        self.closed = False

    async def __aiter__(self):
        yield b"data"

    async def aclose(self):
        self.closed = True


def test_fetch_file_closes_upstream_when_response_cannot_be_built(settings, monkeypatch):
    stream = TrackedStream()

    def handler(request):
        return httpx.Response(200, stream=stream)

    def broken_headers(upstream, settings, path):
        raise ValueError("bad header")

    monkeypatch.setattr("repo_browser.proxy.download_headers", broken_headers)

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await fetch_file(client, settings, "a/b.bin")

    with pytest.raises(ValueError):
        asyncio.run(go())
    assert stream.closed
