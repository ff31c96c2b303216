"""Exception taxonomy for pokemasdb.

Lookup misses are not errors: cache getters return ``None``.
"""

from __future__ import annotations

from typing import Optional


class PokemasDBError(Exception):
    """Base class for every error raised by this package."""


class ParseError(PokemasDBError):
    """Raised when a JSON value does not describe the expected entity."""

    def __init__(self, entity: str, detail: str):
        self.entity = entity
        self.detail = detail
        super().__init__(f"Cannot parse {entity}: {detail}")


class AlreadyFrozenError(PokemasDBError):
    """Raised when a frozen container or cache is mutated."""

    def __init__(self, what: str = "container"):
        self.what = what
        super().__init__(f"Cannot modify {what}: it has already been frozen")


class LookupFailure(PokemasDBError):
    """Raised when the remote source refuses or fails a request."""

    def __init__(
        self,
        url: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        self.url = url
        self.status_code = status_code
        if status_code is not None:
            message = f"Error Code {status_code} was returned from {url}"
        else:
            message = f"Request to {url} failed: {reason or 'unknown error'}"
        super().__init__(message)


class TrainerNotFoundError(LookupFailure):
    """Raised when one trainer's record cannot be fetched."""

    def __init__(
        self,
        trainer: str,
        url: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        self.trainer = trainer
        super().__init__(url, status_code=status_code, reason=reason)


class ConnectionClosedError(PokemasDBError):
    """Raised when a closed ``Connection`` is asked to make a request."""

    def __init__(self):
        super().__init__("Connection has already been closed")


class CachingError(PokemasDBError):
    """Raised when a cache run fails for a reason outside this package."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Error while caching data: {cause}")
