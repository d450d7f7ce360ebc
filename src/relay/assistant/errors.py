"""Errors raised by the assistant client."""


class AssistantClientError(Exception):
    """Base error for assistant server requests.

    Attributes:
        status_code: HTTP status, when the server answered at all.
        response: Raw response body, kept for diagnostics.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class AssistantHTTPError(AssistantClientError):
    """Server answered with a non-success status."""


class AssistantNotFoundError(AssistantHTTPError):
    """Conversation (or other resource) does not exist on the server."""


class AssistantTimeoutError(AssistantClientError):
    """Request exceeded the client timeout; the server may still be working."""


class AssistantUnavailableError(AssistantClientError):
    """Server could not be reached."""
