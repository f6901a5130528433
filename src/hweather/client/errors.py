from __future__ import annotations


class ClientError(Exception):
    """Base class of every error raised by the page client."""


class ValidationError(ClientError):
    """Local input error; shown inline next to the input, never in a dialog."""

    def __init__(self, input_id: str, message: str) -> None:
        super().__init__(message)
        self.input_id = input_id
        self.message = message


class RequestError(ClientError):
    """The backend answered with a non-ok status and an application message."""

    def __init__(self, message: str, status: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class AccessDenied(ClientError):
    """The backend asked for a navigation (session expired or not signed in)."""

    def __init__(self, url: str) -> None:
        super().__init__("Access denied.")
        self.url = url


class NetworkError(ClientError):
    """The request never produced a response."""


class MalformedResponseError(ClientError):
    """A response arrived but could not be decoded or lacks the expected shape."""

    def __init__(self, message: str, status: int = 0) -> None:
        super().__init__(message)
        self.status = status


class InvalidForecastData(MalformedResponseError):
    pass


class HttpStatusError(ClientError):
    """A third-party service answered with an error status."""

    def __init__(self, status: int) -> None:
        super().__init__(f"Server error code {status} received")
        self.status = status


class FatalInvariantError(ClientError):
    """The backend reported counts that contradict the request (storage corruption)."""


class RequestCancelled(ClientError):
    """A superseded request was aborted. Not an error for the user."""
