"""journalsync: keep a local journal in sync with a remote document store."""

from .models import Entry, EntryRepresentation, Mood
from .store import EntryStore, LocalStore
from .sync import NO_OP_COMPLETION, EntryController, SyncError, SyncResult

__version__ = "0.1.0"

__all__ = [
    "Entry",
    "EntryController",
    "EntryRepresentation",
    "EntryStore",
    "LocalStore",
    "Mood",
    "NO_OP_COMPLETION",
    "SyncError",
    "SyncResult",
]
