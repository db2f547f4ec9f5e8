"""Errors raised while talking to the upstream repository host.

Each error knows the status code and the plain-text message the client
should see; the app turns them into responses in one place.
"""


class BrowserError(Exception):
    status_code = 500
    message = "Internal error."

    def __init__(self, message: str | None = None, status_code: int | None = None):
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class NotFound(BrowserError):
    status_code = 404
    message = "404 Not Found"


class UpstreamError(BrowserError):
    """Upstream answered with a non-success status, or could not be reached."""
    status_code = 502
    message = "Error fetching repository contents."


class MalformedUpstreamResponse(UpstreamError):
    status_code = 502
    message = "Malformed response from repository contents API."
