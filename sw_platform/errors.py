# sw_platform/errors.py
# ShareWatch - error taxonomy shared by import, watch operations and the API layer
from __future__ import annotations


class ShareWatchError(Exception):
    """Base class for every error raised by ShareWatch itself."""


class DecodeError(ShareWatchError):
    """The uploaded document is malformed or has no data rows."""


class MappingError(ShareWatchError):
    """The column mapping cannot drive an import (title unbound)."""


class PersistenceError(ShareWatchError):
    """The entry store failed to read or write."""


class RowFailed(ShareWatchError):
    def __init__(self, row: int, title: str, message: str) -> None:
        super().__init__(message)
        self.row = row
        self.title = title
        self.message = message


class InvalidWatch(ShareWatchError, ValueError):
    """A watch breaks its own invariants (e.g. end before start)."""


class EntryNotFound(ShareWatchError):
    pass


class WatchNotFound(ShareWatchError):
    pass


class NotAuthorized(ShareWatchError):
    pass


class LastWatchError(ShareWatchError):
    """Deleting the only remaining watch; remove the entry instead."""


__all__ = [
    "ShareWatchError",
    "DecodeError",
    "MappingError",
    "PersistenceError",
    "RowFailed",
    "InvalidWatch",
    "EntryNotFound",
    "WatchNotFound",
    "NotAuthorized",
    "LastWatchError",
]
