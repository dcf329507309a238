"""
Catalog Error Types

Every failure a caller can see is one of these. Each carries the HTTP status
the REST endpoints answer with and a short public message; internal details
(stack traces, database error codes) are logged server-side only.
"""

from typing import Optional


class CatalogError(Exception):
    """Base class for errors surfaced to callers"""
    status_code = 500
    message = 'Internal server error'

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {'error': self.message}


class Unauthorized(CatalogError):
    """No active session"""
    status_code = 401
    message = 'Unauthorized'


class AccessDenied(CatalogError):
    """Session principal is not the catalog operator"""
    status_code = 403
    message = 'Access denied'


class InvalidInput(CatalogError):
    """Malformed reference or missing required field"""
    status_code = 400
    message = 'Invalid input'


class UpstreamAuthFailure(CatalogError):
    """No usable Spotify access token for the caller"""
    status_code = 401
    message = 'No Spotify access token'


class ProviderError(CatalogError):
    """Non-success response (or undecodable payload) from Spotify"""
    status_code = 502
    message = 'Failed to fetch data from Spotify'

    def __init__(self, status: Optional[int] = None, message: Optional[str] = None):
        super().__init__(message, status)

    @property
    def status(self) -> int:
        return self.status_code


class WriteFailed(CatalogError):
    """A catalog write could not be completed"""
    status_code = 500

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f'Failed to {operation}')
