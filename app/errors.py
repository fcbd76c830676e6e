"""Application error taxonomy.

Each ``AppError`` maps to one HTTP status and a client-facing ``message``.
Store failures always surface as a generic 500; their cause is logged only.
"""

GENERIC_ERROR_MESSAGE = "Internal error"


class AppError(Exception):
    """Base class for errors rendered as ``{"message": ...}`` responses."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Missing or malformed input."""

    status_code = 400


class AuthError(AppError):
    """Bad credentials, bad admin code, bad token or unapproved account."""

    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class StoreError(AppError):
    """The backing store failed. The underlying exception is kept in ``cause``."""

    status_code = 500

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        super().__init__(GENERIC_ERROR_MESSAGE)
        self.operation = operation
        self.cause = cause

    def __str__(self) -> str:
        return f"{self.operation} failed: {self.cause!r}"


class DuplicateEmailError(StoreError):
    """The store's unique constraint on ``users.email`` rejected an insert."""


class InvalidToken(Exception):
    """Bearer token has a bad signature, is malformed, or has expired."""


class ConfigurationError(Exception):
    """Settings are unusable; the process must not start."""
