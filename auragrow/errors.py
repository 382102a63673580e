from typing import Optional


class AuraError(Exception):
    """Base class for errors raised by the Aura Grow core."""


class RemoteError(AuraError):
    """The AURA API answered with a non-2xx status or could not be reached."""

    def __init__(self, url: str, status_code: Optional[int] = None, reason: str = ""):
        self.url = url
        self.status_code = status_code
        self.reason = reason
        if status_code is None:
            message = f"AURA API request failed: {reason or 'network error'}"
        else:
            message = f"AURA API error: {status_code} {reason}".rstrip()
        super().__init__(message)


class StorageError(AuraError):
    """Durable cache store could not be read or written."""
