"""Exceptions raised by the codec, transport and store layers.

The sync controller catches these at its boundary and reports them
through a SyncResult instead of raising.
"""


class JournalSyncError(Exception):
    """Base class for journalsync errors."""


class EncodeError(JournalSyncError):
    """An entry could not be serialized for the remote store."""


class DecodeError(JournalSyncError):
    """A remote payload could not be decoded into entries."""


class TransportError(JournalSyncError):
    """The remote request failed or returned a non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StoreError(JournalSyncError):
    """Local storage failed while reading or writing entries."""


class CommitError(StoreError):
    """Pending local changes could not be committed."""
