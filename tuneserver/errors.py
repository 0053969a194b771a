# tuneserver/errors.py
"""
Failure classes raised by the service layer.

Endpoints catch these and turn them into their own JSON error bodies; the
``status_code`` is the default mapping, which a route may override (for
example a missing relay token is a 404 rather than a 400).
"""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Missing or malformed input."""
    status_code = 400


class ConflictError(ServiceError):
    """A unique key is already taken."""
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 400


class AuthError(ServiceError):
    """Credential mismatch, or a session token that fails verification."""
    status_code = 400


class ServerError(ServiceError):
    status_code = 500
