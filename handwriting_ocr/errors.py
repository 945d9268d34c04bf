"""Error taxonomy for scan sessions and the extraction service."""

from typing import Optional


class OcrError(Exception):
    """Base class for every error the app surfaces to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(OcrError):
    """Raised before any network call when no API key is configured."""


class SessionStateError(OcrError):
    """Raised when a user action is not legal in the session's current phase."""


class ServiceError(OcrError):
    """The extraction service could not produce text. Recoverable by retry."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(ServiceError):
    """HTTP 429: too many requests, try again shortly."""


class UnauthorizedError(ServiceError):
    """HTTP 401/403: the API key is invalid or lacks access."""


class NetworkError(ServiceError):
    """No usable response reached us (transport failure or unexpected status)."""


class RemoteRejectedError(ServiceError):
    """The service answered with a well-formed error payload."""


class EmptyResultError(ServiceError):
    """The service answered successfully but returned no text."""
