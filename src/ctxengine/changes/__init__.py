"""Per-file change tracking: content hashes, types, imports/exports."""

from ctxengine.changes.models import ChangeSet, FileRecord, FileType, ObservationStatus
from ctxengine.changes.store import ChangeStore, InMemoryChangeStore, SQLiteChangeStore
from ctxengine.changes.tracker import ChangeTracker, compute_hash

__all__ = [
    "ChangeSet",
    "ChangeStore",
    "ChangeTracker",
    "FileRecord",
    "FileType",
    "InMemoryChangeStore",
    "ObservationStatus",
    "SQLiteChangeStore",
    "compute_hash",
]
