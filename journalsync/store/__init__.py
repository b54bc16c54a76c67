"""Local persistence for journal entries."""

from .base import EntryStore
from .local_store import LocalStore

__all__ = ["EntryStore", "LocalStore"]
