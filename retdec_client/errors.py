from __future__ import annotations


class RetdecError(Exception):
    """Base class for everything the client raises on its own behalf."""


class RequestRejectedError(RetdecError):
    """The service refused a request (HTTP 400/422) with a structured error body."""

    def __init__(self, status: int, message: str, code: int | None = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return f"API error: HTTP {self.status} - {self.message}"


class TransportError(RetdecError):
    """Network failure while talking to the service."""


class BindingError(RetdecError):
    """A response could not be mapped onto the expected shape."""

    def __init__(self, message: str, status: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        text = self.args[0]
        if self.status is not None:
            text = f"{text} (HTTP {self.status})"
        if self.body:
            text = f"{text}: {self.body[:500]}"
        return text


class JobCancelledError(RetdecError):
    """The job was cancelled while waiting on the service."""
