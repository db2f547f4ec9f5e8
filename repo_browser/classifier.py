"""Decide whether a request path names a file or a directory."""

from enum import Enum
from typing import Callable

from .config import Settings


class PathKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


def classify_structural(path: str) -> PathKind:
    """Anything non-empty without a trailing slash is a file, extension or not."""
    if path and not path.endswith("/"):
        return PathKind.FILE
    return PathKind.DIRECTORY


def classify_allowlist(path: str, extensions: tuple[str, ...]) -> PathKind:
    """Only paths ending in a known extension are files.

    Files with an extension outside the list fall through to the directory
    branch and end up as a listing error, never as a download.
    """
    if path.lower().endswith(tuple(ext.lower() for ext in extensions)):
        return PathKind.FILE
    return PathKind.DIRECTORY


def build_classifier(settings: Settings) -> Callable[[str], PathKind]:
    if settings.classifier == "allowlist":
        extensions = settings.allowed_extensions
        return lambda path: classify_allowlist(path, extensions)
    return classify_structural
