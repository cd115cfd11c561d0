# apps/api/errors.py
from contextlib import contextmanager

from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError


class FeedError(Exception):
    """Base class for video feed failures."""


class InvalidCursor(FeedError):
    """Pagination token is malformed or was not issued by this service."""


class SourceUnavailable(FeedError):
    """A candidate source timed out or failed; treated as empty."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class ConflictIgnored(FeedError):
    """A view was already recorded for this (user, video) pair."""


class StoreUnavailable(FeedError):
    """The relational store cannot be reached."""


@contextmanager
def store_guard(operation: str):
    try:
        yield
    except (OperationalError, InterfaceError, DisconnectionError) as exc:
        raise StoreUnavailable(f"{operation}: {exc}") from exc
