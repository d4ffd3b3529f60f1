"""Typed store errors and the policy that classifies raw store outcomes."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar


if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


_T = TypeVar("_T")

_EMPTY_CONTAINERS = (list, tuple, dict, set)


class StoreError(Exception):
    """Base error for every failure surfaced by the facade.

    Carries an HTTP-style ``status_code`` so callers can turn it straight
    into a response.
    """

    status_code: ClassVar[int] = 500

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def as_record(self) -> dict[str, Any]:
        """Return the error as a ``{message, status_code, cause}`` record."""
        return {
            "message": self.message,
            "status_code": self.status_code,
            "cause": repr(self.cause) if self.cause is not None else None,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status_code={self.status_code})"


class NotFoundError(StoreError):
    """Key, field, element or match is absent."""

    status_code: ClassVar[int] = 404


class StoreFailureError(StoreError):
    """Transport, protocol or decode failure."""

    status_code: ClassVar[int] = 500


def is_empty(result: object) -> bool:
    """Return True for the store's empty sentinels: None, zero and empty collections."""
    if result is None:
        return True
    if isinstance(result, bool | int):
        return result == 0
    if isinstance(result, _EMPTY_CONTAINERS):
        return len(result) == 0
    return False


def not_found_if_empty(result: _T, message: str) -> _T:
    """Raise :class:`NotFoundError` for an empty result, otherwise pass it through."""
    if is_empty(result):
        raise NotFoundError(message)
    return result


@contextmanager
def classify_failures(
    message: str,
    *,
    on_error: Callable[[BaseException], None] | None = None,
) -> Iterator[None]:
    """Classify any exception raised in the block.

    Errors already classified as :class:`StoreError` are re-raised unchanged.
    Everything else becomes a :class:`StoreFailureError` carrying ``message``
    and the original exception as ``cause``. ``on_error`` sees every error
    before it propagates.
    """
    try:
        yield
    except Exception as error:
        if on_error is not None:
            on_error(error)
        if isinstance(error, StoreError):
            raise
        raise StoreFailureError(message, cause=error) from error
