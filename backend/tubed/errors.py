"""Domain exceptions and their HTTP status codes.

Services raise these; the app factory registers a single handler that turns
them into ``{"error": message}`` JSON responses.
"""


class TubedError(Exception):
    """Base class for all errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TubedError):
    """Malformed request input: missing files, empty id list, oversized file."""

    status_code = 400


class AuthenticationError(TubedError):
    status_code = 401


class ForbiddenError(TubedError):
    """A requested path resolves outside the storage root."""

    status_code = 403


class NotFoundError(TubedError):
    status_code = 404


class StorageFailure(TubedError):
    """Database or filesystem operation failed unexpectedly.

    ``message`` is safe to show to callers; the underlying exception is
    chained via ``raise ... from`` and logged, never returned.
    """

    status_code = 500


class DuplicateKeyError(StorageFailure):
    """Insert collided with an existing ``id`` or ``url``."""
