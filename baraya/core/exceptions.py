"""
Error taxonomy for the client core.

- Credential problems (MalformedTokenError) are recovered inside the
  session manager and never reach UI callers.
- ApiError / TransportError describe remote failures.
- AuthRequiredError and ReportSubmissionError are raised to callers.
"""

from typing import Optional


class BarayaError(Exception):
    """Base class for all client core errors."""


class MalformedTokenError(BarayaError):
    """The bearer token could not be decoded into a claims object."""


class AuthRequiredError(BarayaError):
    """An operation needs a session token and none is present."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)
        self.message = message


class ApiError(BarayaError):
    """Remote API answered with a non-2xx status or an unreadable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"[{self.status_code}] {self.message}"


class TransportError(ApiError):
    """The request never produced a response (connection error, timeout)."""

    def __init__(self, message: str, timed_out: bool = False):
        super().__init__(message, status_code=None)
        self.timed_out = timed_out


class ReportSubmissionError(BarayaError):
    """Emergency report creation failed; local state was left untouched."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
