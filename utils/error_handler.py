"""Custom exception classes for the application."""

from typing import Optional


class BaseGraderException(Exception):
    """Base exception for all application-specific errors."""
    pass

class ConfigError(BaseGraderException):
    """Missing or invalid configuration. Fatal for the current submission."""
    pass

class SheetLookupError(BaseGraderException):
    """A required sheet or CONFIG record could not be found for a submission."""
    pass

class AuthenticationError(BaseGraderException):
    """Error during the OAuth 2.0 authentication process."""
    pass

class APIError(BaseGraderException):
    """Error interacting with a Google API (Sheets, Gmail)."""
    def __init__(self, message: str, status_code: int | None = None, service: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.service = service

    def __str__(self) -> str:
        base = super().__str__()
        details = []
        if self.service:
            details.append(f"Service: {self.service}")
        if self.status_code:
            details.append(f"Status Code: {self.status_code}")
        if details:
            return f"{base} ({', '.join(details)})"
        return base

class GatewayError(BaseGraderException):
    """The language model call for a chunk failed.

    Carries the HTTP-like status and response body when the remote side
    answered at all. Absorbed by the orchestrator, which fills defaults for
    the chunk's questions.
    """
    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            return f"{base} (Status Code: {self.status_code})"
        return base
