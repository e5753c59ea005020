"""Records for the auxiliary memory collaborators."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Project memory
# ---------------------------------------------------------------------------


class CompletedTask(BaseModel):
    task: str
    timestamp: datetime = Field(default_factory=_utcnow)


class KeyEntity(BaseModel):
    name: str
    type: str
    file: str


class ProjectMemory(BaseModel):
    """Long-lived understanding of a project."""

    project_summary: str | None = None
    game_type: str | None = None
    tech_stack: list[str] = Field(default_factory=list)
    completed_tasks: list[CompletedTask] = Field(default_factory=list)
    file_importance: dict[str, float] = Field(default_factory=dict)
    key_entities: list[KeyEntity] = Field(default_factory=list)

    def trimmed(self) -> ProjectMemory:
        """Summary, game type and stack only."""
        return ProjectMemory(
            project_summary=self.project_summary,
            game_type=self.game_type,
            tech_stack=list(self.tech_stack),
        )


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class ConversationMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ConversationSummary(BaseModel):
    summary_text: str
    tasks_completed: list[str] = Field(default_factory=list)
    files_modified: list[str] = Field(default_factory=list)
    sequence_number: int = 0
    message_range_start: int = 0
    message_range_end: int = 0


# ---------------------------------------------------------------------------
# Task ledger
# ---------------------------------------------------------------------------


class TaskSubstep(BaseModel):
    step: str
    done: bool = False


class TaskLedger(BaseModel):
    current_goal: str | None = None
    substeps: list[TaskSubstep] = Field(default_factory=list)
    blockers: list[str] = Field(default_factory=list)
    last_known_state: str | None = None


class TaskDelta(BaseModel):
    """What happened in one conversation turn."""

    project_id: str
    turn_number: int
    session_id: str | None = None
    user_request: str | None = None
    what_tried: str | None = None
    what_changed: list[str] = Field(default_factory=list)
    what_succeeded: str | None = None
    what_failed: str | None = None
    what_next: str | None = None
    tokens_used: int | None = None
    duration_ms: int | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class TaskContext(BaseModel):
    ledger: TaskLedger = Field(default_factory=TaskLedger)
    recent_deltas: list[TaskDelta] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------


class AssetType(str, Enum):
    TWO_D = "2d"
    THREE_D = "3d"
    AUDIO = "audio"


class AssetCategory(str, Enum):
    CHARACTER = "character"
    BACKGROUND = "background"
    UI = "ui"
    ITEM = "item"
    TILE = "tile"
    EFFECT = "effect"
    MODEL = "model"
    TEXTURE = "texture"
    SKYBOX = "skybox"
    AUDIO = "audio"


# Manifest section key for each category, in display order
CATEGORY_SECTIONS: dict[AssetCategory, str] = {
    AssetCategory.CHARACTER: "characters",
    AssetCategory.BACKGROUND: "backgrounds",
    AssetCategory.UI: "ui",
    AssetCategory.ITEM: "items",
    AssetCategory.TILE: "tiles",
    AssetCategory.EFFECT: "effects",
    AssetCategory.MODEL: "models",
    AssetCategory.TEXTURE: "textures",
    AssetCategory.SKYBOX: "skyboxes",
    AssetCategory.AUDIO: "audio",
}


class Asset(BaseModel):
    id: str
    name: str
    display_name: str
    public_path: str
    asset_type: AssetType
    category: AssetCategory
    file_size: int = 0
    width: int | None = None
    height: int | None = None
    is_sprite_sheet: bool = False
    frame_count: int | None = None
    frame_width: int | None = None
    frame_height: int | None = None
    animations: list[str] = Field(default_factory=list)
    description: str | None = None
    tags: list[str] = Field(default_factory=list)


class AssetManifest(BaseModel):
    project_id: str
    assets: list[Asset] = Field(default_factory=list)
    categories: dict[str, list[Asset]] = Field(default_factory=dict)
    sprite_sheets: list[Asset] = Field(default_factory=list)
    models_3d: list[Asset] = Field(default_factory=list)
    total_count: int = 0
    total_size: int = 0

    @classmethod
    def from_assets(cls, project_id: str, assets: list[Asset]) -> AssetManifest:
        categories: dict[str, list[Asset]] = {key: [] for key in CATEGORY_SECTIONS.values()}
        for asset in assets:
            categories[CATEGORY_SECTIONS[asset.category]].append(asset)
        return cls(
            project_id=project_id,
            assets=list(assets),
            categories=categories,
            sprite_sheets=[a for a in assets if a.is_sprite_sheet],
            models_3d=[a for a in assets if a.asset_type == AssetType.THREE_D],
            total_count=len(assets),
            total_size=sum(a.file_size for a in assets),
        )
