"""EntryStore protocol: the storage primitives reconciliation needs."""

from typing import Protocol, runtime_checkable

from ..models import Entry, EntryRepresentation


@runtime_checkable
class EntryStore(Protocol):
    """Unit-of-work style access to persisted entries.

    Entries handed out by ``find_by_identifiers`` and ``create`` are
    tracked; mutating them and calling ``commit`` persists the changes
    in one transaction.
    """

    def find_by_identifiers(self, identifiers: set[str]) -> list[Entry]:
        """Return every stored entry whose identifier is in the set.

        Raises:
            StoreError: If the lookup fails.
        """
        ...

    def create(self, representation: EntryRepresentation) -> Entry:
        """Stage a new entry built from a remote representation."""
        ...

    def commit(self) -> int:
        """Persist all staged creates and updates.

        Returns:
            Number of rows written.

        Raises:
            CommitError: If the write fails.
        """
        ...

    def rollback(self) -> None:
        """Discard staged changes without writing them."""
        ...
