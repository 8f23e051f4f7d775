from __future__ import annotations


class GhostTextError(Exception):
    """Base exception for ghosttext-related errors."""

    def __init__(self, msg: str, /):
        super().__init__(msg)
        self.message = msg

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class RequestCancelledError(GhostTextError):
    """Exception raised when a request is cancelled before it reaches the
    inference server."""

    def __init__(self, msg: str = "Request cancelled", /):
        super().__init__(msg)


class ConfigurationError(GhostTextError):
    """Exception raised for invalid or unreadable configuration."""


class InferenceError(GhostTextError):
    """Exception raised for inference server failures."""


class InferenceHTTPError(InferenceError):
    """Exception raised when the inference server answers with a non-success
    status."""

    def __init__(self, status_code: int, body: str = "", /):
        super().__init__(f"Inference API error: {status_code} - {body}")
        self.status_code = status_code
        self.body = body


class InferenceConnectionError(InferenceError):
    """Exception raised for transport-level failures (connect, read,
    timeout)."""
