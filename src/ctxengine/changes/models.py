"""Data models for per-file change tracking."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class FileType(str, Enum):
    """Coarse role of a file in the project."""

    PAGE = "page"
    COMPONENT = "component"
    HOOK = "hook"
    UTIL = "util"
    STORE = "store"
    TYPE = "type"
    STYLE = "style"
    CONFIG = "config"
    UNKNOWN = "unknown"


class ObservationStatus(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FileRecord(BaseModel):
    """Persisted facts about one file in one project."""

    project_id: str
    path: str
    content_hash: str
    byte_size: int = 0
    last_modified_at: datetime = Field(default_factory=_utcnow)
    file_type: FileType = FileType.UNKNOWN
    exports: list[str] = Field(default_factory=list)
    imports: list[str] = Field(default_factory=list)
    modification_count: int = Field(default=1, ge=1)

    @field_validator("exports", "imports", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        # Older rows may carry NULL arrays
        return value or []

    @field_validator("file_type", mode="before")
    @classmethod
    def _coerce_file_type(cls, value):
        if isinstance(value, FileType):
            return value
        try:
            return FileType(value)
        except ValueError:
            return FileType.UNKNOWN


class ChangeSet(BaseModel):
    """Partition of a project's files relative to the last recorded state."""

    created: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)

    @property
    def changed(self) -> list[str]:
        return self.created + self.modified

    @property
    def has_changes(self) -> bool:
        return bool(self.created or self.modified or self.deleted)
