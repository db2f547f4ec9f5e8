"""HTML for directory listings, styled like a plain desktop file browser."""

import html
from urllib.parse import quote

from .config import Settings
from .listing import Entry

DIR_TAG = "&lt;DIR&gt;"
FILE_TAG = "&lt;FILE&gt;"

STYLE = """
        body { font-family: monospace; background-color: #f0f0f0; margin: 20px; }
        .browser-container {
            width: 80%; max-width: 800px; margin: 0 auto;
            border: 1px solid #ccc; box-shadow: 2px 2px 5px rgba(0, 0, 0, 0.1);
            background-color: #fff;
        }
        .address-bar {
            display: flex; align-items: center; padding: 8px;
            border-bottom: 1px solid #ccc; background-color: #e9e9e9;
        }
        .protocol { font-weight: bold; margin-right: 5px; color: #555; }
        .path-display {
            flex-grow: 1; padding: 3px; background-color: #fff; border: 1px solid #aaa;
            font-family: monospace; white-space: nowrap; overflow: hidden;
        }
        .file-list-area { padding: 10px; }
        .header-row {
            font-weight: bold; margin-bottom: 5px; border-bottom: 1px dashed #ccc;
            padding-bottom: 3px; padding-left: 10ch;
        }
        #file-list { list-style: none; padding: 0; margin: 0; }
        #file-list li { padding: 2px 0; display: flex; align-items: baseline; }
        .file-type {
            display: inline-block; width: 9ch; text-align: right;
            color: #888; padding-right: 1ch;
        }
        .file-name { flex-grow: 1; color: #0000cc; text-decoration: none; }
        .file-name:hover { text-decoration: underline; }
        .dir-color { color: #800080; }
        .empty { color: #888; font-style: italic; padding-left: 10ch; }
"""


def parent_path(current_path: str) -> str | None:
    """Path of the parent directory, or None at the repository root.

    >>> parent_path("a/b/c")
    'a/b'
    >>> parent_path("a")
    ''
    """
    if not current_path or current_path == "/":
        return None
    trimmed = current_path.rstrip("/")
    head, sep, _ = trimmed.rpartition("/")
    return head if sep else ""


def entry_href(settings: Settings, path: str, is_dir: bool) -> str:
    path = path.strip("/")
    href = f"{settings.public_root}/{quote(path, safe='/')}"
    # directories keep a trailing slash so they route back to a listing
    if is_dir and path:
        href += "/"
    return href


def _row(tag: str, href: str, name: str, is_dir: bool) -> str:
    css = "file-type dir-color" if is_dir else "file-type"
    return (
        "            <li>\n"
        f'                <span class="{css}">{tag}</span>\n'
        f'                <a class="file-name" href="{html.escape(href)}">{html.escape(name)}</a>\n'
        "            </li>\n"
    )


def render_rows(listing: list[Entry], current_path: str, settings: Settings) -> str:
    rows = []
    parent = parent_path(current_path)
    if parent is not None:
        rows.append(_row(DIR_TAG, entry_href(settings, parent, True), "..", True))

    for entry in listing:
        tag = DIR_TAG if entry.is_dir else FILE_TAG
        rows.append(_row(tag, entry_href(settings, entry.path, entry.is_dir), entry.name, entry.is_dir))

    if not listing:
        rows.append('            <li class="empty">(empty)</li>\n')
    return "".join(rows)


def render_listing(listing: list[Entry], current_path: str, settings: Settings) -> str:
    """Render a complete HTML page for ``listing`` at ``current_path``.

    Output depends only on the arguments. Names and paths come from the
    upstream API and are escaped before they reach the markup.
    """
    shown_path = html.escape(current_path)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Index of /{shown_path}</title>
    <style>{STYLE}    </style>
</head>
<body>
    <div class="browser-container">
        <div class="address-bar">
            <span class="protocol">{html.escape(settings.public_scheme)}://</span>
            <div class="path-display">{html.escape(settings.public_domain)}/{shown_path}</div>
        </div>

        <div class="file-list-area">
            <pre class="header-row">Type      Name</pre>
            <ul id="file-list">
{render_rows(listing, current_path, settings)}            </ul>
        </div>
    </div>
</body>
</html>
"""
