"""Detect created/modified/deleted files between requests."""

from __future__ import annotations

import hashlib
import logging

from ctxengine.changes.models import ChangeSet, FileRecord, FileType, ObservationStatus
from ctxengine.changes.store import ChangeStore
from ctxengine.extract import PatternExtractor, SourceExtractor

logger = logging.getLogger("ctxengine.changes")


def compute_hash(content: str) -> str:
    """SHA-256 hex digest of file content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class ChangeTracker:
    """Tracks file content hashes for a project against a ``ChangeStore``.

    Usage:
        tracker = ChangeTracker(store)
        status = await tracker.record_observation("p1", "/src/App.tsx", source)
        changes = await tracker.diff("p1", files)
    """

    def __init__(self, store: ChangeStore, extractor: SourceExtractor | None = None) -> None:
        self.store = store
        self.extractor = extractor or PatternExtractor()

    def _analyze(
        self, project_id: str, path: str, content: str, digest: str, count: int
    ) -> FileRecord:
        return FileRecord(
            project_id=project_id,
            path=path,
            content_hash=digest,
            byte_size=len(content.encode("utf-8")),
            file_type=FileType(self.extractor.file_type(path, content)),
            exports=self.extractor.exports(content),
            imports=self.extractor.imports(content),
            modification_count=count,
        )

    def _observe(
        self,
        project_id: str,
        path: str,
        content: str,
        existing: FileRecord | None,
    ) -> tuple[ObservationStatus, FileRecord | None]:
        digest = compute_hash(content)
        if existing is None:
            # Lookup miss is a creation, not an error
            return ObservationStatus.CREATED, self._analyze(project_id, path, content, digest, 1)
        if existing.content_hash != digest:
            record = self._analyze(
                project_id, path, content, digest, existing.modification_count + 1
            )
            return ObservationStatus.MODIFIED, record
        return ObservationStatus.UNCHANGED, None

    async def record_observation(
        self, project_id: str, path: str, content: str
    ) -> ObservationStatus:
        """Persist one observation of a file and report what changed."""
        records = await self.store.get_file_records(project_id)
        status, record = self._observe(project_id, path, content, records.get(path))
        if record is not None:
            await self.store.upsert_file_records([record])
        return status

    async def diff(
        self,
        project_id: str,
        current_files: dict[str, str],
        include_deleted: bool = False,
    ) -> ChangeSet:
        """Compare the current file map with the stored state without persisting."""
        records = await self.store.get_file_records(project_id)
        result = ChangeSet()
        for path, content in current_files.items():
            existing = records.get(path)
            if existing is None:
                result.created.append(path)
            elif existing.content_hash != compute_hash(content):
                result.modified.append(path)
            else:
                result.unchanged.append(path)

        if include_deleted:
            result.deleted = sorted(set(records) - set(current_files))
        return result

    async def sync(
        self,
        project_id: str,
        current_files: dict[str, str],
        prune: bool = False,
    ) -> ChangeSet:
        """Record every file in one batch.

        Records for files missing from ``current_files`` are only deleted
        when ``prune`` is set.
        """
        records = await self.store.get_file_records(project_id)
        result = ChangeSet()
        updates: list[FileRecord] = []

        for path, content in current_files.items():
            status, record = self._observe(project_id, path, content, records.get(path))
            getattr(result, status.value).append(path)
            if record is not None:
                updates.append(record)

        await self.store.upsert_file_records(updates)

        missing = sorted(set(records) - set(current_files))
        if prune and missing:
            result.deleted = missing
            await self.store.delete_file_records(project_id, missing)

        logger.info(
            f"Synced {project_id}: {len(result.created)} created, "
            f"{len(result.modified)} modified, {len(result.deleted)} deleted"
        )
        return result

    async def reset(self, project_id: str) -> None:
        """Forget every record for a project; counts restart at 1."""
        await self.store.clear_project(project_id)

    async def files_by_importance(self, project_id: str) -> list[str]:
        """Paths ordered by how often they have been modified."""
        records = await self.store.get_file_records(project_id)
        ranked = sorted(records.values(), key=lambda r: (-r.modification_count, r.path))
        return [r.path for r in ranked]
