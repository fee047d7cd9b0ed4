"""Domain exceptions raised by storage and services."""


class AppError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Bad input caught before any storage call."""

    status_code = 400


class AuthError(AppError):
    """Sign-in/sign-up failure reported by the identity layer."""

    status_code = 401


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """Unique-key violation or a state that does not allow the operation."""

    status_code = 409


class StorageError(AppError):
    """Backing store failed (connection, constraint, driver error)."""

    status_code = 502
