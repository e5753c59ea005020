"""Auxiliary memory: project memory, task ledger, assets and conversation summaries."""

from ctxengine.memory.formatting import (
    format_asset_manifest,
    format_asset_manifest_compact,
    format_project_memory,
    format_task_context,
)
from ctxengine.memory.models import (
    Asset,
    AssetCategory,
    AssetManifest,
    AssetType,
    ConversationMessage,
    ConversationSummary,
    KeyEntity,
    ProjectMemory,
    TaskContext,
    TaskDelta,
    TaskLedger,
    TaskSubstep,
)
from ctxengine.memory.providers import (
    AssetProvider,
    InMemoryAssetLibrary,
    InMemoryProjectMemory,
    InMemoryTaskLedger,
    ProjectMemoryProvider,
    SummaryProvider,
    TaskLedgerProvider,
)
from ctxengine.memory.summarizer import ConversationSummarizer

__all__ = [
    "Asset",
    "AssetCategory",
    "AssetManifest",
    "AssetProvider",
    "AssetType",
    "ConversationMessage",
    "ConversationSummarizer",
    "ConversationSummary",
    "InMemoryAssetLibrary",
    "InMemoryProjectMemory",
    "InMemoryTaskLedger",
    "KeyEntity",
    "ProjectMemory",
    "ProjectMemoryProvider",
    "SummaryProvider",
    "TaskContext",
    "TaskDelta",
    "TaskLedger",
    "TaskLedgerProvider",
    "TaskSubstep",
    "format_asset_manifest",
    "format_asset_manifest_compact",
    "format_project_memory",
    "format_task_context",
]
