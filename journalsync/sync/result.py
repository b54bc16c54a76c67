"""Result types reported by the sync controller."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SyncError(Enum):
    """Why a sync operation failed."""

    MISSING_IDENTIFIER = "missing_identifier"
    NO_REPRESENTATION = "no_representation"
    ENCODE_FAILURE = "encode_failure"
    DECODE_FAILURE = "decode_failure"
    NO_DATA = "no_data"
    TRANSPORT_ERROR = "transport_error"
    COMMIT_FAILURE = "commit_failure"


@dataclass
class SyncResult:
    """Result of a sync operation."""

    error: SyncError | None = None
    detail: str | None = None
    created: int = 0
    updated: int = 0
    skipped: int = 0  # Remote entries without an identifier
    timestamp: datetime | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, **counts: int) -> "SyncResult":
        return cls(timestamp=datetime.now(), **counts)

    @classmethod
    def failure(cls, error: SyncError, detail: str | None = None) -> "SyncResult":
        return cls(error=error, detail=detail, timestamp=datetime.now())
