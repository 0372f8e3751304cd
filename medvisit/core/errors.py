"""Typed outcomes raised by the booking core; the API layer maps them to HTTP."""
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from fastapi import status
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


class DomainError(Exception):
    code = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(DomainError, ValueError):
    """Malformed or out-of-range input; the caller must change the request.

    Also a ValueError so pydantic field validators report it as a field error.
    """

    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(DomainError):
    """Slot not available: absence, outside offered hours, or already booked."""

    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(DomainError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class AuthorizationError(DomainError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class StorageError(DomainError):
    code = "storage_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def translate_storage_errors(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Re-raise repository failures from a service call as StorageError."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.exception("Storage failure in %s: %s", func.__name__, e)
            raise StorageError("Storage is temporarily unavailable, try again later") from e

    return wrapper
