"""
Exceptions for the S3 upload and delete workflow.
"""

from typing import Optional


class UploadError(Exception):
    """Base upload error."""
    pass


class TransportError(UploadError):
    """Network failure (DNS, connect, timeout) before an HTTP status arrived."""

    def __init__(self, message, **kwargs):
        super().__init__(message)
        self.endpoint = kwargs.get('endpoint')
        self.original_exception = kwargs.get('original_exception')


class HTTPStatusError(UploadError):
    """Non-2xx response from the broker or the object store."""

    NOT_FOUND_CODES = (404, 410)

    def __init__(self, message, **kwargs):
        super().__init__(message)
        self.endpoint = kwargs.get('endpoint')
        self.status_code = kwargs.get('status_code')
        self.reason = kwargs.get('reason')

    @property
    def is_not_found(self) -> bool:
        # Unknown server errors count as not-found-class, same as 404/410
        return self.status_code in self.NOT_FOUND_CODES or (self.status_code or 0) >= 500


class MalformedResponseError(UploadError):
    """Credential document is missing required fields."""
    pass


class ConfigurationMissingError(UploadError):
    """Credentials endpoint is not configured."""
    pass


class UserDeclinedRetry(UploadError):
    """User cancelled credential resolution. Terminal, not a fault."""
    pass


class SessionStateError(UploadError):
    """Operation is not valid in the session's current state."""

    def __init__(self, message, state: Optional[object] = None):
        super().__init__(message)
        self.state = state


class ImageFormatError(UploadError):
    """Image bytes are not PNG encoded."""
    pass


class RetryLimitReached(UploadError):
    """Credential resolution hit the configured attempt cap."""

    def __init__(self, message, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts
