"""Exceptions raised by swrcache."""

from typing import Any

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred."


class SwrCacheError(Exception):
    """Base class for swrcache errors."""


class InvalidQueryKeyError(SwrCacheError, TypeError):
    """A key could not be turned into a canonical string."""


class StoreClosedError(SwrCacheError, RuntimeError):
    """The cache store has been torn down."""


class BackendError(SwrCacheError):
    """A remote backend call failed."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


def error_message(failure: Any) -> str:
    """Human-readable message for a fetch failure."""
    if isinstance(failure, BaseException):
        return str(failure) or type(failure).__name__
    if isinstance(failure, str):
        return failure
    return DEFAULT_ERROR_MESSAGE
