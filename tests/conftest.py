import json

import httpx
import pytest
from fastapi.testclient import TestClient

from repo_browser.config import Settings
from repo_browser.server import create_app

API_BASE = "https://api.example.test/repos/octo/files/contents"
RAW_BASE = "https://raw.example.test"
API_PREFIX = "/repos/octo/files/contents"
RAW_PREFIX = "/octo/files/main"


class FakeUpstream:
    """httpx.MockTransport handler standing in for both upstream hosts.

    ``listings`` maps a directory path to a JSON payload (or a
    ``(status, payload)`` tuple); ``files`` maps a file path to bytes (or a
    ``(status, bytes, headers)`` tuple). Unknown paths answer 404.
    """

    def __init__(self):
        self.listings = {}
        self.files = {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        path = request.url.path
        if host == "api.example.test" and path.startswith(API_PREFIX):
            return self._listing(path[len(API_PREFIX):].strip("/"))
        if host == "raw.example.test" and path.startswith(RAW_PREFIX):
            return self._file(path[len(RAW_PREFIX):].strip("/"))
        return httpx.Response(404)

    def _listing(self, rel):
        if rel not in self.listings:
            return httpx.Response(404, json={"message": "Not Found"})
        value = self.listings[rel]
        status, payload = value if isinstance(value, tuple) else (200, value)
        if isinstance(payload, bytes):
            return httpx.Response(status, content=payload)
        return httpx.Response(status, content=json.dumps(payload).encode(),
                              headers={"Content-Type": "application/json"})

    def _file(self, rel):
        if rel not in self.files:
            return httpx.Response(404, text="404: Not Found")
        value = self.files[rel]
        if isinstance(value, tuple):
            status, body, headers = value
        else:
            status, body, headers = 200, value, {}
        # streamed like a real socket body, so the proxy can iterate it
        return httpx.Response(status, content=_chunks(body), headers=headers)


async def _chunks(body, size=4096):
    for start in range(0, len(body), size):
        yield body[start:start + size]


def entry(name, type_, path=None):
    return {"name": name, "type": type_, "path": path or name, "sha": "0" * 40}


@pytest.fixture
def settings():
    return Settings(
        owner="octo",
        repo="files",
        branch="main",
        public_domain="files.example.com",
        listing_base=API_BASE,
        raw_base=RAW_BASE,
    )


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def make_client(upstream):
    def make(settings):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
        return TestClient(create_app(settings, client=http_client))
    return make


@pytest.fixture
def client(make_client, settings):
    return make_client(settings)
