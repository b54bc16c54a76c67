"""Entry controller: keeps the local journal in step with the remote store.

Pulls the full remote collection and reconciles it into local storage
(remote wins on every field), and pushes or deletes single entries.
Every operation reports a SyncResult, both as its return value and
through the optional completion callback.
"""

import asyncio
import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlsplit

from ..errors import DecodeError, EncodeError, StoreError, TransportError
from ..models import Entry, EntryRepresentation, decode_collection
from ..store.base import EntryStore
from .result import SyncError, SyncResult
from .transport import HttpTransport, RemoteTransport

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)

Completion = Callable[[SyncResult], None]


def _ignore_result(result: SyncResult) -> None:
    pass


NO_OP_COMPLETION: Completion = _ignore_result


class EntryController:
    """Synchronizes journal entries with a remote keyed document store.

    The remote is addressed Firebase-style: ``<base>.json`` for the whole
    collection and ``<base>/<identifier>.json`` for a single entry.

    Construction performs no I/O; call ``start()`` for the initial pull.
    Reconciliation runs on a dedicated single-worker thread so storage
    access is serialized; completions run on the event loop.
    """

    def __init__(
        self,
        store: EntryStore,
        base_url: str,
        transport: RemoteTransport | None = None,
        timeout: float = 30.0,
        pull_on_start: bool = True,
        single_flight: bool = True,
    ):
        """Initialize the controller.

        Args:
            store: Local entry store to reconcile into.
            base_url: Root URL of the remote collection.
            transport: Remote transport. Defaults to an HttpTransport.
            timeout: Request timeout for the default transport.
            pull_on_start: Whether start() performs the initial pull.
            single_flight: Join overlapping pulls instead of racing them.
        """
        if not base_url:
            raise ValueError("base_url is required")

        self.store = store
        self.base_url = base_url.rstrip("/")
        self.pull_on_start = pull_on_start
        self.single_flight = single_flight

        self._owns_transport = transport is None
        self.transport = transport or HttpTransport(timeout=timeout)

        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="journalsync-store"
        )
        self._pull_task: asyncio.Task | None = None
        self._last_sync: datetime | None = None

    @classmethod
    def from_config(
        cls,
        config: "Config",
        store: EntryStore,
        transport: RemoteTransport | None = None,
    ) -> "EntryController":
        """Build a controller from loaded configuration."""
        return cls(
            store=store,
            base_url=config.remote.base_url,
            transport=transport,
            timeout=config.remote.timeout,
            pull_on_start=config.sync.pull_on_start,
            single_flight=config.sync.single_flight,
        )

    async def __aenter__(self) -> "EntryController":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Wait for an in-flight pull, then release the worker and transport."""
        if self._pull_task is not None and not self._pull_task.done():
            await asyncio.wait([self._pull_task])
        self._executor.shutdown(wait=True)
        if self._owns_transport and isinstance(self.transport, HttpTransport):
            await self.transport.close()

    # ==================== Addressing ====================

    @property
    def collection_url(self) -> str:
        """URL of the full collection document."""
        # A bare host needs "/.json"; a path root takes the extension directly
        if not urlsplit(self.base_url).path:
            return f"{self.base_url}/.json"
        return f"{self.base_url}.json"

    def entry_url(self, identifier: str) -> str:
        """URL of a single keyed entry document."""
        return f"{self.base_url}/{quote(identifier, safe='')}.json"

    # ==================== Operations ====================

    async def start(self, completion: Completion = NO_OP_COMPLETION) -> SyncResult | None:
        """Run the initial pull-and-merge, if enabled.

        Returns:
            The pull result, or None when the initial pull is disabled.
        """
        if not self.pull_on_start:
            logger.info("Initial pull disabled")
            return None

        logger.info(f"Initial pull from {self.collection_url}")
        return await self.pull_and_merge(completion)

    async def push(
        self, entry: Entry, completion: Completion = NO_OP_COMPLETION
    ) -> SyncResult:
        """Upsert a single entry on the remote.

        Local storage is not touched; persist the entry separately.
        """
        if not entry.identifier:
            return self._finish(
                "push", SyncResult.failure(SyncError.MISSING_IDENTIFIER), completion
            )

        representation = entry.representation
        if representation is None:
            return self._finish(
                "push",
                SyncResult.failure(
                    SyncError.NO_REPRESENTATION,
                    f"Entry {entry.identifier} has no title or timestamp",
                ),
                completion,
            )

        try:
            body = representation.encode()
        except EncodeError as e:
            logger.error(f"Error encoding entry {entry.identifier}: {e}")
            return self._finish(
                "push", SyncResult.failure(SyncError.ENCODE_FAILURE, str(e)), completion
            )

        try:
            await self.transport.put(self.entry_url(entry.identifier), body)
        except TransportError as e:
            logger.error(f"Error putting entry {entry.identifier} to server: {e}")
            return self._finish(
                "push", SyncResult.failure(SyncError.TRANSPORT_ERROR, str(e)), completion
            )

        return self._finish("push", SyncResult.success(), completion)

    async def delete(
        self, entry: Entry, completion: Completion = NO_OP_COMPLETION
    ) -> SyncResult:
        """Delete a single entry from the remote.

        Local storage is not touched; remove the entry separately.
        """
        if not entry.identifier:
            return self._finish(
                "delete", SyncResult.failure(SyncError.MISSING_IDENTIFIER), completion
            )

        try:
            await self.transport.delete(self.entry_url(entry.identifier))
        except TransportError as e:
            logger.error(f"Error deleting entry {entry.identifier} from server: {e}")
            return self._finish(
                "delete", SyncResult.failure(SyncError.TRANSPORT_ERROR, str(e)), completion
            )

        return self._finish("delete", SyncResult.success(), completion)

    async def pull_and_merge(self, completion: Completion = NO_OP_COMPLETION) -> SyncResult:
        """Fetch the whole remote collection and reconcile it locally.

        With single_flight enabled, a call made while another pull is in
        flight shares that pull's result.
        """
        if not self.single_flight:
            result = await self._pull_and_merge()
        else:
            if self._pull_task is None or self._pull_task.done():
                self._pull_task = asyncio.ensure_future(self._pull_and_merge())
            else:
                logger.debug("Joining in-flight pull")
            result = await asyncio.shield(self._pull_task)

        return self._finish("pull", result, completion)

    async def pull_entry(
        self, identifier: str, completion: Completion = NO_OP_COMPLETION
    ) -> SyncResult:
        """Fetch one keyed entry and reconcile it locally."""
        if not identifier:
            return self._finish(
                "pull_entry", SyncResult.failure(SyncError.MISSING_IDENTIFIER), completion
            )

        try:
            raw = await self.transport.get(self.entry_url(identifier))
        except TransportError as e:
            logger.error(f"Error fetching entry {identifier}: {e}")
            return self._finish(
                "pull_entry", SyncResult.failure(SyncError.TRANSPORT_ERROR, str(e)), completion
            )

        if not raw:
            return self._finish(
                "pull_entry", SyncResult.failure(SyncError.NO_DATA), completion
            )

        try:
            representation = EntryRepresentation.decode(raw)
        except DecodeError as e:
            logger.error(f"Error decoding entry {identifier}: {e}")
            return self._finish(
                "pull_entry", SyncResult.failure(SyncError.DECODE_FAILURE, str(e)), completion
            )

        if representation is None:
            return self._finish(
                "pull_entry",
                SyncResult.failure(SyncError.NO_DATA, f"No remote entry {identifier}"),
                completion,
            )

        # The document key is authoritative over the payload's own identifier
        if representation.identifier and representation.identifier != identifier:
            logger.warning(
                f"Remote entry {identifier} carries identifier "
                f"{representation.identifier}; keeping {identifier}"
            )
        representation.identifier = identifier

        result = await self._merge_in_background({identifier: representation}, skipped=0)
        return self._finish("pull_entry", result, completion)

    # ==================== Internals ====================

    async def _pull_and_merge(self) -> SyncResult:
        try:
            raw = await self.transport.get(self.collection_url)
        except TransportError as e:
            logger.error(f"Error fetching entries: {e}")
            return SyncResult.failure(SyncError.TRANSPORT_ERROR, str(e))

        if not raw:
            logger.warning("No data returned by remote")
            return SyncResult.failure(SyncError.NO_DATA)

        try:
            collection = decode_collection(raw)
        except DecodeError as e:
            logger.error(f"Error decoding entry representations: {e}")
            return SyncResult.failure(SyncError.DECODE_FAILURE, str(e))

        by_identifier = {
            rep.identifier: rep for rep in collection.values() if rep.identifier
        }
        skipped = sum(1 for rep in collection.values() if not rep.identifier)
        if skipped:
            logger.debug(f"Skipping {skipped} remote entries without identifier")

        return await self._merge_in_background(by_identifier, skipped)

    async def _merge_in_background(
        self, by_identifier: dict[str, EntryRepresentation], skipped: int
    ) -> SyncResult:
        loop = asyncio.get_running_loop()
        try:
            created, updated = await loop.run_in_executor(
                self._executor, self.reconcile, by_identifier
            )
        except StoreError as e:
            logger.error(f"Error saving merged entries: {e}")
            return SyncResult.failure(SyncError.COMMIT_FAILURE, str(e))
        except Exception as e:
            logger.exception(f"Unexpected store error during merge: {e}")
            return SyncResult.failure(SyncError.COMMIT_FAILURE, str(e))

        self._last_sync = datetime.now()
        return SyncResult.success(created=created, updated=updated, skipped=skipped)

    def reconcile(self, by_identifier: dict[str, EntryRepresentation]) -> tuple[int, int]:
        """Merge keyed remote representations into the store and commit.

        Existing entries are overwritten in place; the rest are created.
        Entries missing from the remote set are left alone. If any step
        fails, staged changes are rolled back before the error is raised.

        Args:
            by_identifier: Remote representations keyed by identifier.

        Returns:
            Tuple of (created, updated) counts.

        Raises:
            StoreError: If the lookup or commit fails.
        """
        try:
            remaining = dict(by_identifier)
            existing = self.store.find_by_identifiers(set(by_identifier))

            updated = 0
            for entry in existing:
                representation = remaining.pop(entry.identifier, None)
                if representation is None:
                    continue
                entry.apply(representation)
                updated += 1

            for representation in remaining.values():
                self.store.create(representation)

            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        return len(remaining), updated

    def _finish(self, operation: str, result: SyncResult, completion: Completion) -> SyncResult:
        if result.ok:
            logger.info(
                f"{operation}: success, created={result.created}, "
                f"updated={result.updated}, skipped={result.skipped}"
            )
        else:
            logger.info(f"{operation}: {result.error.value} ({result.detail})")
        completion(result)
        return result

    @property
    def last_sync(self) -> datetime | None:
        """Get timestamp of last successful merge."""
        return self._last_sync

    def get_sync_status(self) -> dict[str, Any]:
        """Get current sync status.

        Returns:
            Dictionary with remote address and sync state.
        """
        return {
            "remote_url": self.base_url,
            "collection_url": self.collection_url,
            "last_sync": self._last_sync.isoformat() if self._last_sync else None,
            "pull_in_flight": self._pull_task is not None and not self._pull_task.done(),
            "single_flight": self.single_flight,
        }
