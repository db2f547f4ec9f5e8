"""Directory listings from the upstream contents API."""

import logging
import unicodedata
from enum import Enum
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from .config import Settings
from .errors import MalformedUpstreamResponse, NotFound, UpstreamError

log = logging.getLogger(__name__)


class EntryType(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


class Entry(BaseModel):
    """One item of a directory listing."""
    name: str = Field(description="Last path component")
    path: str = Field(description="Full path from the repository root")
    type: EntryType

    @field_validator("type", mode="before")
    @classmethod
    def _from_upstream_type(cls, value):
        if isinstance(value, EntryType):
            return value
        if not isinstance(value, str):
            raise ValueError("entry type must be a string")
        # symlinks and submodules are downloadable as far as we're concerned
        return EntryType.DIRECTORY if value in ("dir", "directory") else EntryType.FILE

    @property
    def is_dir(self) -> bool:
        return self.type is EntryType.DIRECTORY


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def collation_key(name: str) -> tuple[str, str, str, str]:
    """Locale-style sort key for entry names.

    Compares letters first ignoring accents and case, then accents, then
    case with lowercase ahead of uppercase. The raw name breaks any
    remaining tie, so distinct names never compare equal.
    """
    return (
        _strip_accents(name).casefold(),
        unicodedata.normalize("NFC", name).casefold(),
        name.swapcase(),
        name,
    )


def sort_entries(entries: list[Entry]) -> list[Entry]:
    return sorted(entries, key=lambda e: (not e.is_dir, collation_key(e.name)))


def listing_url(settings: Settings, path: str) -> str:
    return f"{settings.listing_base}/{quote(path.strip('/'), safe='/')}"


def parse_listing(payload) -> list[Entry]:
    if not isinstance(payload, list):
        raise MalformedUpstreamResponse()
    try:
        return [Entry.model_validate(item) for item in payload]
    except ValidationError as e:
        log.warning("Unexpected entry shape in listing: %s", e)
        raise MalformedUpstreamResponse()


async def fetch_listing(client: httpx.AsyncClient, settings: Settings, path: str) -> list[Entry]:
    """Fetch and order the entries of the directory at ``path``.

    Directories come before files; within each group names follow
    :func:`collation_key`.

    Raises:
        NotFound: the contents API answered 404
        UpstreamError: any other failure status, or the API was unreachable
        MalformedUpstreamResponse: the body is not a JSON array of entries
    """
    url = listing_url(settings, path)
    log.debug("Listing %s", url)
    try:
        r = await client.get(
            url,
            params={"ref": settings.branch},
            headers={
                # GitHub rejects API calls without a User-Agent
                "User-Agent": settings.user_agent,
                "Accept": "application/vnd.github+json",
            },
        )
    except httpx.RequestError as e:
        log.warning("Listing request failed for %r: %r", path, e)
        raise UpstreamError("Error contacting repository contents API.", 502)

    if r.status_code == 404:
        raise NotFound("404 Not Found: Directory or file does not exist.")
    if not r.is_success:
        log.warning("Listing for %r returned HTTP %d", path, r.status_code)
        raise UpstreamError("Error fetching repository contents.", r.status_code)

    try:
        payload = r.json()
    except ValueError:
        raise MalformedUpstreamResponse()

    return sort_entries(parse_listing(payload))
