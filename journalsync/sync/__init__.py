"""Synchronization between the local journal and the remote store.

Provides the EntryController, which reconciles a full remote fetch into
local storage and pushes or deletes single entries over HTTP.
"""

from .controller import NO_OP_COMPLETION, EntryController
from .result import SyncError, SyncResult
from .transport import HttpTransport, RemoteTransport

__all__ = [
    "EntryController",
    "HttpTransport",
    "NO_OP_COMPLETION",
    "RemoteTransport",
    "SyncError",
    "SyncResult",
]
